"""
Glossary term model and load-time validation
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, List
import re

DOCUMENT_CATEGORIES = ("general", "employment", "lease")


class GlossaryError(ValueError):
    """Raised when glossary records cannot be loaded or fail validation"""


@dataclass(frozen=True)
class GlossaryTerm:
    """A single glossary entry: display phrase, plain-language definition, category"""

    id: str
    term: str
    definition: str
    category: str = "general"

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "GlossaryTerm":
        if not isinstance(record, dict):
            raise GlossaryError(f"Glossary record must be a mapping, got {type(record).__name__}")

        term = record.get("term")
        if not isinstance(term, str) or not term.strip():
            raise GlossaryError(f"Glossary record {record.get('id')!r} has an empty term")

        definition = record.get("definition")
        if not isinstance(definition, str) or not definition.strip():
            raise GlossaryError(f"Glossary term {term!r} has no definition")

        term_id = record.get("id")
        if term_id is None or not str(term_id).strip():
            raise GlossaryError(f"Glossary term {term!r} has no id")

        category = record.get("category") or "general"
        if not isinstance(category, str):
            raise GlossaryError(f"Glossary term {term!r} has a non-string category")

        return cls(
            id=str(term_id),
            term=term.strip(),
            definition=definition.strip(),
            category=category.strip().lower(),
        )

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def slugify(phrase: str) -> str:
    slug = re.sub(r"[^\w]+", "-", phrase.lower()).strip("-")
    return slug or "term"


def validate_terms(records: Iterable[Any]) -> List[GlossaryTerm]:
    """
    Convert raw records into GlossaryTerm objects, rejecting bad entries

    Args:
        records: GlossaryTerm instances or mappings with id/term/definition/category

    Returns:
        Terms in their original order

    Raises:
        GlossaryError: on an empty phrase, missing id or definition, or duplicate id
    """
    terms = []
    seen_ids = set()

    for record in records:
        if isinstance(record, GlossaryTerm):
            # Re-validate so hand-built terms get the same checks
            term = GlossaryTerm.from_dict(record.to_dict())
        else:
            term = GlossaryTerm.from_dict(record)

        if term.id in seen_ids:
            raise GlossaryError(f"Duplicate glossary id: {term.id}")
        seen_ids.add(term.id)
        terms.append(term)

    return terms
