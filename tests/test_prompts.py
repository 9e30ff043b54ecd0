from voltlegal.core.prompts import (
    TONE_PROMPTS,
    VALID_TONES,
    build_analysis_prompt,
    build_chat_prompt,
    build_followup_prompt,
)


def test_analysis_prompt_includes_tone_type_and_sections():
    prompt = build_analysis_prompt("The tenant shall pay rent.", tone="wizard", document_type="lease")

    assert "analyzing lease contracts" in prompt
    assert TONE_PROMPTS["wizard"] in prompt
    assert "The tenant shall pay rent." in prompt
    for header in ("SUMMARY:", "RED FLAGS:", "OVERALL ASSESSMENT:"):
        assert header in prompt
    assert "Example 1" not in prompt


def test_analysis_prompt_numbers_examples():
    prompt = build_analysis_prompt("text", examples=["first chunk", "", "second chunk"])
    assert "Example 1: first chunk" in prompt
    assert "Example 2: second chunk" in prompt
    assert "Based on these examples, Analyze" in prompt


def test_analysis_prompt_keeps_braces_in_text():
    prompt = build_analysis_prompt("Fee: {amount} per {period}")
    assert "Fee: {amount} per {period}" in prompt


def test_all_tones_have_instructions():
    assert set(VALID_TONES) == {
        "serious", "sarcastic", "meme", "ominous", "child", "academic", "authoritative", "wizard",
    }


def test_chat_prompt_truncates_long_documents():
    context = {
        "legal_text": "x" * 2000,
        "summary": [{"title": "Overall Summary", "description": "A lease."}],
        "red_flags": ["High fees", "No refunds"],
        "document_type": "lease",
    }
    prompt = build_chat_prompt("Can I leave early?", context, context_chars=100)

    assert "x" * 100 + "..." in prompt
    assert "x" * 101 not in prompt
    assert "Overall Summary: A lease." in prompt
    assert "- High fees\n- No refunds" in prompt
    assert "USER QUESTION: Can I leave early?" in prompt


def test_followup_prompt_replays_history():
    prompt = build_followup_prompt(
        "Employee agrees to a non-compete.",
        [
            {"role": "user", "content": "How long does it last?"},
            {"role": "assistant", "content": "Two years."},
        ],
        "Is that enforceable?",
        tone="academic",
    )

    assert "Previous conversation:\nUser: How long does it last?\nAssistant: Two years." in prompt
    assert "Current user question: Is that enforceable?" in prompt
    assert TONE_PROMPTS["academic"] in prompt


def test_followup_prompt_without_history():
    prompt = build_followup_prompt("Doc", [], "Question?")
    assert "Previous conversation" not in prompt
