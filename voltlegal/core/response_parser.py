"""
VOLT Legal Response Parser
Splits a free-text LLM analysis into summary, red-flag and assessment sections
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union
import logging
import re

logger = logging.getLogger(__name__)

SUMMARY_TITLE = "Overall Summary"

FALLBACK_SUMMARY = (
    "The legal terms have been analyzed. The document contains various clauses and "
    "provisions that users should be aware of before agreeing to the terms."
)

NO_RED_FLAGS = "No specific red flags identified in the analysis"

CONCERNING_PHRASES = [
    'unlimited liability', 'no warranty', 'at our discretion',
    'without notice', 'may terminate', 'binding arbitration',
    'waive', 'indemnify', 'perpetual license'
]

_HEADER_RE = re.compile(
    r"^[#*_ \t]*(?P<name>summary|red[ \t]+flags?|overall[ \t]+assessment)"
    r"[*_ \t]*:[*_ \t]*",
    re.IGNORECASE | re.MULTILINE,
)
_BULLET_RE = re.compile(r"^\s*(?:[-•*]|\d+[.)])\s*(?P<content>.*)$")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")


@dataclass(frozen=True)
class Summary:
    text: str


@dataclass(frozen=True)
class RedFlags:
    items: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Assessment:
    text: str


@dataclass(frozen=True)
class Unrecognized:
    text: str


Section = Union[Summary, RedFlags, Assessment, Unrecognized]


@dataclass
class SummaryItem:
    title: str
    description: str

    def to_dict(self) -> Dict[str, str]:
        return {"title": self.title, "description": self.description}


@dataclass
class AnalysisSections:
    """Structured analysis; summary and red_flags are never empty"""
    summary: List[SummaryItem]
    red_flags: List[str]
    assessment: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": [item.to_dict() for item in self.summary],
            "red_flags": list(self.red_flags),
            "assessment": self.assessment,
        }


def _clean_paragraph(text: str) -> str:
    """Remove bullet/number prefixes and collapse whitespace"""
    text = re.sub(r"^\s*[-•*]\s*", "", text, flags=re.MULTILINE)
    text = re.sub(r"^\s*\d+\.\s*", "", text, flags=re.MULTILINE)
    return re.sub(r"\s+", " ", text).strip()


def _parse_red_flag_lines(body: str) -> List[str]:
    lines = [line.strip() for line in body.splitlines() if line.strip()]
    if not lines:
        return []

    if not any(_BULLET_RE.match(line) for line in lines):
        return [re.sub(r"\s+", " ", line) for line in lines]

    items: List[str] = []
    for line in lines:
        match = _BULLET_RE.match(line)
        if match:
            content = match.group("content").strip()
            if content:
                items.append(content)
        elif items:
            # Continuation of a wrapped bullet
            items[-1] = f"{items[-1]} {line}"
        else:
            items.append(line)
    return items


def _section_for(name: str, body: str) -> Section:
    name = re.sub(r"\s+", " ", name.lower())
    if name == "summary":
        return Summary(_clean_paragraph(body))
    if name.startswith("red flag"):
        return RedFlags(_parse_red_flag_lines(body))
    return Assessment(_clean_paragraph(body))


def segment_response(text: Optional[str]) -> List[Section]:
    """
    Split an LLM reply into tagged sections

    Each section starts at a recognised header and runs to the next header
    or the end of the text. Text before the first header is Unrecognized.
    """
    if not isinstance(text, str) or not text.strip():
        return []

    headers = list(_HEADER_RE.finditer(text))
    if not headers:
        return [Unrecognized(text.strip())]

    sections: List[Section] = []
    preamble = text[:headers[0].start()].strip()
    if preamble:
        sections.append(Unrecognized(preamble))

    for i, header in enumerate(headers):
        end = headers[i + 1].start() if i + 1 < len(headers) else len(text)
        sections.append(_section_for(header.group("name"), text[header.end():end]))

    return sections


def _fallback_summary(text: str) -> str:
    sentences = [s.strip() for s in _SENTENCE_SPLIT_RE.split(text) if len(s.strip()) > 20]
    if sentences:
        return ". ".join(sentences[:3]) + "."
    return FALLBACK_SUMMARY


def _fallback_red_flag(text: str) -> str:
    text_lower = text.lower()
    found = [phrase for phrase in CONCERNING_PHRASES if phrase in text_lower]
    if found:
        return f"Document contains concerning terms: {', '.join(found)}"
    return NO_RED_FLAGS


def parse_analysis_response(text: Optional[str]) -> AnalysisSections:
    """
    Parse an LLM analysis into summary and red flags

    Never raises. Malformed or empty replies fall back to a sentence-based
    summary (or a fixed placeholder) and a phrase-scan red flag (or a fixed
    placeholder), so callers always get at least one of each.
    """
    if not isinstance(text, str):
        text = ""

    logger.debug(f"Parsing analysis response, text length: {len(text)}")

    summary_parts: List[str] = []
    red_flags: List[str] = []
    assessment_parts: List[str] = []
    unrecognized_parts: List[str] = []

    for section in segment_response(text):
        if isinstance(section, Summary) and section.text:
            summary_parts.append(section.text)
        elif isinstance(section, RedFlags):
            red_flags.extend(section.items)
        elif isinstance(section, Assessment) and section.text:
            assessment_parts.append(section.text)
        elif isinstance(section, Unrecognized):
            unrecognized_parts.append(section.text)

    if summary_parts:
        summary = [SummaryItem(SUMMARY_TITLE, " ".join(summary_parts))]
    else:
        logger.warning("No SUMMARY section found, using fallback summary")
        summary = [SummaryItem(SUMMARY_TITLE, _fallback_summary(" ".join(unrecognized_parts)))]

    if not red_flags:
        red_flags = [_fallback_red_flag(text)]

    logger.debug(f"Parsing results: {len(summary)} summary items, {len(red_flags)} red flags")

    return AnalysisSections(
        summary=summary,
        red_flags=red_flags,
        assessment=" ".join(assessment_parts) or None,
    )
