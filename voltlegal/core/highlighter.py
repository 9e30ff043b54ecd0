"""
VOLT Legal Term Highlighter
Partitions document text into plain and glossary-term segments for tooltip rendering
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union
import html
import logging
import re

from .terms import GlossaryTerm, validate_terms

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Segment:
    """A run of input text, highlighted when it is an occurrence of a glossary term"""

    text: str
    is_highlighted: bool = False
    term: Optional[GlossaryTerm] = None

    def __post_init__(self):
        if self.is_highlighted != (self.term is not None):
            raise ValueError("Segment term must be set if and only if the segment is highlighted")

    def to_dict(self) -> Dict:
        """Serialize with the keys the frontend renderer expects"""
        d = {"text": self.text, "isHighlighted": self.is_highlighted}
        if self.term is not None:
            d["term"] = self.term.to_dict()
        return d


def _phrase_pattern(phrase: str) -> str:
    # Literal phrase; any whitespace run in the text may separate its words
    words = [re.escape(word) for word in phrase.split()]
    return r"(?<!\w)" + r"\s+".join(words) + r"(?!\w)"


class TermIndex:
    """
    Immutable, precompiled matcher over a glossary

    Terms are ordered by phrase length (longest first). Python's sort is
    stable, so equal-length phrases keep their glossary order. All phrases
    are compiled into one case-insensitive alternation with one group per
    term; at any position the regex engine tries alternatives in order, so
    the longest phrase wins and ties go to the earlier glossary entry.
    """

    def __init__(self, terms: Iterable[GlossaryTerm] = ()):
        validated = validate_terms(terms)
        self._terms: Tuple[GlossaryTerm, ...] = tuple(
            sorted(validated, key=lambda t: len(t.term), reverse=True)
        )

        if self._terms:
            alternatives = "|".join(f"({_phrase_pattern(t.term)})" for t in self._terms)
            self._pattern = re.compile(alternatives, re.IGNORECASE)
        else:
            self._pattern = None

        logger.debug(f"Compiled term index with {len(self._terms)} terms")

    @property
    def terms(self) -> Tuple[GlossaryTerm, ...]:
        """Terms in match-priority order"""
        return self._terms

    def __len__(self) -> int:
        return len(self._terms)

    def finditer(self, text: str) -> Iterator[Tuple[int, int, GlossaryTerm]]:
        """Yield non-overlapping (start, end, term) matches from left to right"""
        if self._pattern is None or not text:
            return
        for match in self._pattern.finditer(text):
            yield match.start(), match.end(), self._terms[match.lastindex - 1]


def merge_plain_segments(segments: Iterable[Segment]) -> List[Segment]:
    """Drop empty segments and join consecutive plain ones"""
    merged: List[Segment] = []
    for segment in segments:
        if not segment.text:
            continue
        if merged and not merged[-1].is_highlighted and not segment.is_highlighted:
            merged[-1] = Segment(merged[-1].text + segment.text)
        else:
            merged.append(segment)
    return merged


def highlight(text: str,
              terms: Union[TermIndex, Iterable[GlossaryTerm], None]) -> List[Segment]:
    """
    Split text into plain and highlighted segments

    Args:
        text: Input text (may be empty)
        terms: A prebuilt TermIndex, or glossary terms to index for this call only.
            None is treated as an empty glossary.

    Returns:
        Segments whose texts concatenate to exactly `text`. Empty text gives [].
    """
    if not text:
        return []

    index = terms if isinstance(terms, TermIndex) else TermIndex(terms or ())
    if not len(index):
        return [Segment(text)]

    segments: List[Segment] = []
    cursor = 0
    for start, end, term in index.finditer(text):
        if start > cursor:
            segments.append(Segment(text[cursor:start]))
        segments.append(Segment(text[start:end], True, term))
        cursor = end

    if cursor < len(text):
        segments.append(Segment(text[cursor:]))

    return merge_plain_segments(segments)


def render_html(segments: Sequence[Segment], css_class: str = "legal-term") -> str:
    """Render segments as HTML, wrapping terms in tooltip-bearing spans"""
    parts = []
    for segment in segments:
        text = html.escape(segment.text)
        if segment.is_highlighted:
            term = segment.term
            parts.append(
                f'<span class="{css_class}" data-term-id="{html.escape(term.id)}" '
                f'data-category="{html.escape(term.category)}" '
                f'title="{html.escape(term.definition)}">{text}</span>'
            )
        else:
            parts.append(text)
    return "".join(parts)


def render_markdown(segments: Sequence[Segment]) -> str:
    """Render segments as Markdown with a footnote per distinct term"""
    body = []
    footnotes: Dict[str, GlossaryTerm] = {}

    for segment in segments:
        if segment.is_highlighted:
            footnote_id = segment.term.id.replace(" ", "_").replace("-", "_")
            footnotes.setdefault(footnote_id, segment.term)
            body.append(f"{segment.text}[^{footnote_id}]")
        else:
            body.append(segment.text)

    result = "".join(body)

    if footnotes:
        lines = ["\n\n### Glossary\n"]
        for footnote_id, term in footnotes.items():
            lines.append(f"[^{footnote_id}]: **{term.term}**: {term.definition}")
        result += "\n".join(lines)

    return result
