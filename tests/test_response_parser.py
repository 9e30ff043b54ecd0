import pytest

from voltlegal.core.response_parser import (
    FALLBACK_SUMMARY,
    NO_RED_FLAGS,
    SUMMARY_TITLE,
    Assessment,
    RedFlags,
    Summary,
    Unrecognized,
    parse_analysis_response,
    segment_response,
)
from tests.conftest import ANALYSIS_REPLY


def test_parses_all_sections():
    result = parse_analysis_response(ANALYSIS_REPLY)

    assert len(result.summary) == 1
    assert result.summary[0].title == SUMMARY_TITLE
    assert result.summary[0].description.startswith("This is a twelve month residential lease.")
    assert "\n" not in result.summary[0].description
    assert result.red_flags == [
        "Late fee of $100 charged after a single day",
        "Landlord may enter the unit without notice",
    ]
    assert result.assessment == "Mostly standard, but negotiate the entry clause."


def test_markdown_headers_and_numbered_flags():
    reply = (
        "**Summary:** The employer can end the job at any time.\n"
        "## Red Flags:\n"
        "1. Non-compete lasts two years\n"
        "2) Bonuses can be clawed back\n"
    )
    result = parse_analysis_response(reply)
    assert result.summary[0].description == "The employer can end the job at any time."
    assert result.red_flags == ["Non-compete lasts two years", "Bonuses can be clawed back"]
    assert result.assessment is None


def test_wrapped_bullets_are_joined():
    reply = (
        "SUMMARY: Short lease.\n"
        "RED FLAGS:\n"
        "- Tenant pays all repairs,\n"
        "  including structural ones\n"
        "• No refund of the deposit\n"
    )
    result = parse_analysis_response(reply)
    assert result.red_flags == [
        "Tenant pays all repairs, including structural ones",
        "No refund of the deposit",
    ]


def test_unbulleted_flags_are_one_per_line():
    result = parse_analysis_response("SUMMARY: ok\nRED FLAGS:\nHidden fees\nAuto renewal")
    assert result.red_flags == ["Hidden fees", "Auto renewal"]


def test_segment_response_tags_sections_in_order():
    sections = segment_response("Here is my analysis.\nSUMMARY: Fine.\nRED FLAGS: none\nOverall Assessment: ok")
    assert sections == [
        Unrecognized("Here is my analysis."),
        Summary("Fine."),
        RedFlags(["none"]),
        Assessment("ok"),
    ]


def test_bare_assessment_label_is_not_a_header():
    sections = segment_response("SUMMARY: Fine.\nRisk assessment: high")
    assert sections == [Summary("Fine. Risk assessment: high")]


def test_header_words_inside_a_flag_stay_in_the_flag():
    reply = (
        "SUMMARY: A short lease.\n"
        "RED FLAGS:\n"
        "- No summary: of fees is provided\n"
        "- Hidden fees apply\n"
    )
    result = parse_analysis_response(reply)
    assert result.summary[0].description == "A short lease."
    assert result.red_flags == ["No summary: of fees is provided", "Hidden fees apply"]


def test_header_words_inside_the_assessment_stay_in_the_assessment():
    reply = (
        "SUMMARY: A short lease.\n"
        "RED FLAGS:\n"
        "- Hidden fees\n"
        "OVERALL ASSESSMENT: In summary: the lease is fair."
    )
    result = parse_analysis_response(reply)
    assert result.summary[0].description == "A short lease."
    assert result.red_flags == ["Hidden fees"]
    assert result.assessment == "In summary: the lease is fair."


def test_segment_response_without_headers():
    assert segment_response("just prose") == [Unrecognized("just prose")]
    assert segment_response("") == []
    assert segment_response(None) == []


def test_fallback_summary_uses_leading_sentences():
    reply = "This agreement lets the company change prices at any time. You waive your right to sue."
    result = parse_analysis_response(reply)
    assert result.summary[0].description == (
        "This agreement lets the company change prices at any time. You waive your right to sue."
    )
    assert result.red_flags == ["Document contains concerning terms: waive"]


def test_only_red_flags_section_gets_placeholder_summary():
    result = parse_analysis_response("RED FLAGS:\n- Hidden fees apply")
    assert result.summary[0].description == FALLBACK_SUMMARY
    assert result.red_flags == ["Hidden fees apply"]


def test_empty_red_flags_section_falls_back():
    result = parse_analysis_response("SUMMARY: A plain contract.\nRED FLAGS:\n-\n")
    assert result.red_flags == [NO_RED_FLAGS]


@pytest.mark.parametrize("reply", [
    "",
    None,
    42,
    "no headers here at all",
    "RED FLAGS:\n- only flags",
    "SUMMARY:",
    "RED FLAGS:",
    "OVERALL ASSESSMENT: fine",
    ":::\n- - -\n***",
    "SUMMARY: SUMMARY: RED FLAGS: RED FLAGS:",
    "💥 " * 50,
])
def test_parser_never_fails(reply):
    result = parse_analysis_response(reply)
    assert len(result.summary) >= 1
    assert len(result.red_flags) >= 1
    assert all(item.description for item in result.summary)
    assert all(flag for flag in result.red_flags)


def test_to_dict_shape():
    data = parse_analysis_response(ANALYSIS_REPLY).to_dict()
    assert set(data) == {"summary", "red_flags", "assessment"}
    assert data["summary"][0]["title"] == SUMMARY_TITLE
