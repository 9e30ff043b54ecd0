"""
VOLT Legal Glossary Manager
Loads the legal glossary and handles term lookup, search and tooltip generation
"""

import html
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import requests
import yaml

from .config import VoltConfig, default_config
from .highlighter import Segment, TermIndex, highlight, render_html, render_markdown
from .terms import GlossaryError, GlossaryTerm, slugify, validate_terms

logger = logging.getLogger(__name__)

# Embedded glossary of legal terms, grouped by document category
GLOSSARY_YAML = """
general:
  arbitration: "settling a dispute with a private decision-maker instead of a court"
  binding arbitration: "arbitration where the decision is final and you generally cannot go to court"
  class action waiver: "a promise not to join a group lawsuit against the other party"
  indemnify: "to pay for losses or legal costs the other party suffers because of you"
  indemnification: "a promise to cover the other party's losses or legal costs"
  limitation of liability: "a cap on how much one party can be made to pay if something goes wrong"
  liability: "legal responsibility for harm, debts or losses"
  force majeure: "events outside anyone's control (like disasters) that excuse a party from performing"
  force majeure (act of god): "a natural event nobody could prevent, such as a flood or earthquake"
  warranty: "a promise that something is true or will work as described"
  no warranty: "the seller makes no promise that the product or service will work"
  governing law: "which jurisdiction's laws apply to the contract"
  jurisdiction: "the court or location with authority to hear a dispute"
  severability: "if one part of the contract is invalid, the rest still applies"
  waiver: "giving up a right you would otherwise have"
  waive: "to voluntarily give up a right"
  breach: "failing to do what the contract requires"
  material breach: "a serious failure that defeats the purpose of the contract"
  termination: "ending the contract"
  auto-renewal: "the contract renews itself unless you cancel in time"
  confidentiality: "a duty to keep certain information secret"
  perpetual license: "permission to use something forever"
  intellectual property: "creations of the mind such as inventions, designs and writing"
  assignment: "transferring your rights or duties under the contract to someone else"
  entire agreement: "the written contract replaces any earlier promises or discussions"
  consideration: "something of value each party gives to make the contract binding"
  liquidated damages: "a fixed amount agreed in advance to be paid if the contract is broken"
  due diligence: "reasonable investigation before entering an agreement"
  at our discretion: "the company decides, and does not need your agreement"
  without notice: "changes can happen without telling you first"

employment:
  at-will employment: "either you or the employer can end the job at any time for almost any reason"
  non-compete: "a promise not to work for competitors for a period after you leave"
  non-compete clause: "the contract term that stops you working for competitors after leaving"
  non-solicitation: "a promise not to recruit the employer's staff or customers after leaving"
  non-disclosure agreement: "a contract to keep the employer's information secret"
  probationary period: "a trial period when the job can be ended more easily"
  severance: "pay given when employment ends, usually on termination without cause"
  termination for cause: "firing for a serious reason such as misconduct"
  garden leave: "you remain employed and paid but are told to stay away from work"
  exempt employee: "an employee not entitled to overtime pay"
  overtime: "hours worked beyond the standard week, often paid at a higher rate"
  clawback: "the employer can take back pay or bonuses already given"
  work made for hire: "work you create for the employer belongs to the employer"
  stock options: "the right to buy company shares at a fixed price"
  vesting: "earning full ownership of a benefit over time"

lease:
  lease: "a contract to rent property for a period of time"
  lease agreement: "the written contract setting the terms of a rental"
  lessor: "the owner who rents out the property (landlord)"
  lessee: "the person who rents the property (tenant)"
  security deposit: "money held by the landlord to cover damage or unpaid rent"
  sublease: "renting your rented property to someone else"
  sublet: "to rent part or all of your rental to another person"
  quiet enjoyment: "your right to use the property without interference from the landlord"
  holdover tenant: "a tenant who stays after the lease has ended"
  late fee: "a charge for paying rent after the due date"
  early termination fee: "a charge for ending the lease before its end date"
  joint and several liability: "each tenant can be held responsible for the whole rent, not just their share"
  habitability: "the property must be safe and fit to live in"
  normal wear and tear: "expected deterioration from ordinary use, which tenants usually do not pay for"
  right of entry: "when and how the landlord may come into the property"
  residual value: "the expected value of a leased vehicle at the end of the lease"
  excess mileage: "a charge for driving a leased vehicle beyond the allowed distance"
"""


def _records_from_mapping(data: Dict[str, Any]) -> List[Dict[str, str]]:
    """Flatten {category: {term: definition}} into glossary records"""
    records = []
    for category, entries in data.items():
        if not isinstance(entries, dict):
            raise GlossaryError(f"Category {category!r} must map terms to definitions")
        for term, definition in entries.items():
            records.append({
                "id": f"{category}-{slugify(str(term))}",
                "term": str(term),
                "definition": definition,
                "category": category,
            })
    return records


def _records_from_data(data: Any) -> List[Dict[str, Any]]:
    if data is None:
        return []
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        if isinstance(data.get("terms"), list):
            return data["terms"]
        return _records_from_mapping(data)
    raise GlossaryError(f"Unsupported glossary structure: {type(data).__name__}")


def load_default_glossary() -> List[GlossaryTerm]:
    """Load the embedded legal glossary"""
    return validate_terms(_records_from_mapping(yaml.safe_load(GLOSSARY_YAML)))


def load_glossary_file(path: str) -> List[GlossaryTerm]:
    """
    Load a glossary from a YAML or JSON file

    Accepts a list of records, a {"terms": [...]} document, or the
    {category: {term: definition}} layout of the embedded glossary.
    """
    file_path = Path(path)
    try:
        raw = file_path.read_text(encoding="utf-8")
    except OSError as e:
        raise GlossaryError(f"Cannot read glossary file {path}: {e}")

    try:
        if file_path.suffix.lower() == ".json":
            data = json.loads(raw)
        else:
            data = yaml.safe_load(raw)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise GlossaryError(f"Cannot parse glossary file {path}: {e}")

    terms = validate_terms(_records_from_data(data))
    logger.info(f"Loaded {len(terms)} glossary terms from {path}")
    return terms


def fetch_remote_glossary(base_url: str,
                          api_key: str,
                          table: str = "legal_glossary",
                          timeout: int = 30) -> List[GlossaryTerm]:
    """
    Read the full glossary table from a Supabase REST endpoint, ordered by term

    Raises:
        GlossaryError: if the request fails or returns malformed records
    """
    url = f"{base_url.rstrip('/')}/rest/v1/{table}"
    headers = {
        "apikey": api_key,
        "Authorization": f"Bearer {api_key}",
        "Accept": "application/json",
    }

    try:
        response = requests.get(
            url,
            params={"select": "*", "order": "term.asc"},
            headers=headers,
            timeout=timeout,
        )
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.error(f"Error fetching legal terms: {str(e)}")
        raise GlossaryError(f"Failed to fetch legal terms: {e}")

    terms = validate_terms(_records_from_data(data))
    logger.info(f"Fetched {len(terms)} glossary terms from {table}")
    return terms


class GlossaryManager:
    """
    Manages legal glossary lookup and term highlighting

    The term index is built once per glossary and shared by every
    highlight call; adding terms swaps in a freshly built index.
    """

    def __init__(self,
                 terms: Optional[Iterable[Any]] = None,
                 custom_terms: Optional[Iterable[Any]] = None):
        """
        Initialize glossary manager

        Args:
            terms: Base glossary records; the embedded glossary when None
            custom_terms: Optional records to add on top of the base glossary
        """
        base = load_default_glossary() if terms is None else validate_terms(terms)
        if custom_terms:
            base = base + validate_terms(custom_terms)

        self.index = TermIndex(base)
        self._by_phrase = self._build_lookup(base)
        self._terms = tuple(base)

        logger.info(f"Loaded glossary with {len(self._terms)} terms")

    @classmethod
    def from_config(cls, config: VoltConfig = default_config) -> "GlossaryManager":
        """
        Load the glossary named by the configuration

        A configured file wins, then the remote store; the embedded glossary
        is used when neither is configured or the remote store is unavailable.
        """
        store = config.glossary
        if store.glossary_path:
            return cls(load_glossary_file(store.glossary_path))

        if store.supabase_url and store.supabase_key:
            try:
                return cls(fetch_remote_glossary(
                    store.supabase_url,
                    store.supabase_key,
                    store.glossary_table,
                    timeout=config.api.request_timeout,
                ))
            except GlossaryError as e:
                logger.warning(f"Remote glossary unavailable, using embedded glossary: {e}")

        return cls()

    @staticmethod
    def _build_lookup(terms: Iterable[GlossaryTerm]) -> Dict[str, GlossaryTerm]:
        lookup = {}
        for term in terms:
            # First entry wins, matching highlight tie-breaking
            lookup.setdefault(term.term.casefold(), term)
        return lookup

    @property
    def terms(self) -> List[GlossaryTerm]:
        """Terms in glossary order"""
        return list(self._terms)

    def add_terms(self, new_terms: Iterable[Any]):
        """
        Add new terms to glossary

        Args:
            new_terms: GlossaryTerm objects or records
        """
        added = validate_terms(new_terms)
        combined = list(self._terms) + added

        # Validates id uniqueness across the whole glossary
        self.index = TermIndex(combined)
        self._by_phrase = self._build_lookup(combined)
        self._terms = tuple(combined)

        logger.info(f"Added {len(added)} terms to glossary")

    def highlight(self, text: str) -> List[Segment]:
        """Split text into plain and highlighted segments"""
        return highlight(text, self.index)

    def simplify_text(self, text: str, format: str = "html") -> str:
        """
        Add tooltips to legal terms in text

        Args:
            text: Input text
            format: Output format ("html" or "markdown")

        Returns:
            Text with tooltips added
        """
        if format == "html":
            return render_html(self.highlight(text))
        elif format == "markdown":
            return render_markdown(self.highlight(text))
        else:
            raise ValueError(f"Unknown format: {format}")

    def extract_terms(self, text: str) -> List[GlossaryTerm]:
        """Glossary terms found in text, in order of first appearance"""
        found = []
        seen = set()
        for segment in self.highlight(text):
            if segment.is_highlighted and segment.term.id not in seen:
                seen.add(segment.term.id)
                found.append(segment.term)
        return found

    def get_definition(self, term: str) -> Optional[GlossaryTerm]:
        """Case-insensitive exact lookup of a phrase"""
        if not term:
            return None
        return self._by_phrase.get(term.strip().casefold())

    def search_terms(self, query: str) -> List[GlossaryTerm]:
        """
        Search for terms whose phrase or definition contains the query

        Args:
            query: Search query

        Returns:
            Matching terms, best matches first
        """
        if not query or not query.strip():
            return []

        query_lower = query.strip().lower()
        results = [
            t for t in self._terms
            if query_lower in t.term.lower() or query_lower in t.definition.lower()
        ]

        # Sort by relevance
        def sort_key(term: GlossaryTerm):
            term_lower = term.term.lower()

            # Exact match gets highest priority
            if term_lower == query_lower:
                return (0, len(term_lower))
            # Term starts with query
            elif term_lower.startswith(query_lower):
                return (1, len(term_lower))
            # Query in term
            elif query_lower in term_lower:
                return (2, len(term_lower))
            # Query in definition
            else:
                return (3, len(term_lower))

        results.sort(key=sort_key)

        return results

    def get_terms_for_category(self, category: str) -> List[GlossaryTerm]:
        """All terms in a category, sorted by phrase"""
        category = (category or "").strip().lower()
        return sorted(
            (t for t in self._terms if t.category == category),
            key=lambda t: t.term.lower()
        )

    def export_glossary(self, format: str = "json") -> str:
        """
        Export glossary in different formats

        Args:
            format: Export format ("json", "yaml", "csv", "html")

        Returns:
            Formatted glossary string
        """
        records = [t.to_dict() for t in sorted(self._terms, key=lambda t: t.term.lower())]

        if format == "json":
            return json.dumps(records, indent=2, ensure_ascii=False)

        elif format == "yaml":
            return yaml.dump(records, default_flow_style=False, allow_unicode=True, sort_keys=False)

        elif format == "csv":
            lines = ["id,term,definition,category"]
            for record in records:
                cells = []
                for key in ("id", "term", "definition", "category"):
                    value = record[key]
                    # RFC 4180 quoting
                    if any(ch in value for ch in ',"\r\n'):
                        value = '"' + value.replace('"', '""') + '"'
                    cells.append(value)
                lines.append(",".join(cells))
            return "\n".join(lines)

        elif format == "html":
            html_out = "<dl>\n"
            for record in records:
                html_out += f"  <dt><strong>{html.escape(record['term'])}</strong></dt>\n"
                html_out += f"  <dd>{html.escape(record['definition'])}</dd>\n"
            html_out += "</dl>"
            return html_out

        else:
            raise ValueError(f"Unknown format: {format}")

    def get_stats(self) -> Dict[str, int]:
        """Get statistics about the glossary"""
        categories: Dict[str, int] = {}
        for term in self._terms:
            categories[term.category] = categories.get(term.category, 0) + 1

        return {
            'total_terms': len(self._terms),
            'unique_definitions': len({t.definition for t in self._terms}),
            **categories
        }
