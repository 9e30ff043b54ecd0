import csv
import io
import json
from unittest.mock import Mock, patch

import pytest
import requests
import yaml

from voltlegal.core.glossary import (
    GlossaryManager,
    fetch_remote_glossary,
    load_default_glossary,
    load_glossary_file,
)
from voltlegal.core.terms import GlossaryError, GlossaryTerm, slugify, validate_terms


def test_default_glossary_loads_all_categories():
    terms = load_default_glossary()
    categories = {t.category for t in terms}
    assert categories == {"general", "employment", "lease"}
    assert len({t.id for t in terms}) == len(terms)


def test_default_glossary_prefers_longer_phrases():
    manager = GlossaryManager()
    found = manager.extract_terms("This is a non-compete clause under binding arbitration.")
    assert [t.term for t in found] == ["non-compete clause", "binding arbitration"]


def test_slugify():
    assert slugify("Force Majeure (Act of God)") == "force-majeure-act-of-god"
    assert slugify("!!!") == "term"


@pytest.mark.parametrize("record, message", [
    ({"id": "x", "term": "", "definition": "d"}, "empty term"),
    ({"id": "x", "term": "   ", "definition": "d"}, "empty term"),
    ({"id": "x", "term": "lease", "definition": ""}, "no definition"),
    ({"term": "lease", "definition": "d"}, "no id"),
    ({"id": "x", "term": "lease", "definition": "d", "category": 5}, "non-string category"),
    ({"id": "x", "term": "lease", "definition": "d", "category": ["lease"]}, "non-string category"),
    ("lease", "must be a mapping"),
])
def test_validate_terms_rejects_bad_records(record, message):
    with pytest.raises(GlossaryError, match=message):
        validate_terms([record])


def test_from_dict_normalizes_fields():
    term = GlossaryTerm.from_dict({"id": 7, "term": "  Lease ", "definition": " rent ", "category": "LEASE"})
    assert term == GlossaryTerm("7", "Lease", "rent", "lease")


def test_load_yaml_category_layout(tmp_path):
    path = tmp_path / "glossary.yaml"
    path.write_text(yaml.dump({"lease": {"sublet": "rent to someone else"}}))

    terms = load_glossary_file(str(path))
    assert terms == [GlossaryTerm("lease-sublet", "sublet", "rent to someone else", "lease")]


def test_load_json_record_list(tmp_path):
    path = tmp_path / "glossary.json"
    path.write_text(json.dumps({"terms": [
        {"id": "1", "term": "waiver", "definition": "giving up a right"},
    ]}))

    terms = load_glossary_file(str(path))
    assert terms[0].term == "waiver"
    assert terms[0].category == "general"


def test_load_missing_or_broken_file(tmp_path):
    with pytest.raises(GlossaryError, match="Cannot read"):
        load_glossary_file(str(tmp_path / "missing.yaml"))

    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    with pytest.raises(GlossaryError, match="Cannot parse"):
        load_glossary_file(str(broken))


def test_fetch_remote_glossary_orders_by_term():
    response = Mock()
    response.json.return_value = [
        {"id": 1, "term": "arbitration", "definition": "private judge", "category": "general"},
    ]
    with patch("voltlegal.core.glossary.requests.get", return_value=response) as get:
        terms = fetch_remote_glossary("https://db.example.com/", "secret")

    assert terms == [GlossaryTerm("1", "arbitration", "private judge", "general")]
    url = get.call_args.args[0]
    assert url == "https://db.example.com/rest/v1/legal_glossary"
    assert get.call_args.kwargs["params"] == {"select": "*", "order": "term.asc"}
    assert get.call_args.kwargs["headers"]["apikey"] == "secret"


def test_fetch_remote_glossary_wraps_network_errors():
    with patch("voltlegal.core.glossary.requests.get",
               side_effect=requests.ConnectionError("down")):
        with pytest.raises(GlossaryError, match="Failed to fetch legal terms"):
            fetch_remote_glossary("https://db.example.com", "secret")


def test_from_config_uses_file(tmp_path, config):
    path = tmp_path / "glossary.yaml"
    path.write_text(yaml.dump({"general": {"estoppel": "you cannot go back on your word"}}))
    config.glossary.glossary_path = str(path)

    manager = GlossaryManager.from_config(config)
    assert [t.term for t in manager.terms] == ["estoppel"]


def test_from_config_falls_back_when_remote_fails(config):
    config.glossary.supabase_url = "https://db.example.com"
    config.glossary.supabase_key = "secret"

    with patch("voltlegal.core.glossary.requests.get",
               side_effect=requests.Timeout("slow")):
        manager = GlossaryManager.from_config(config)

    assert len(manager.terms) == len(load_default_glossary())


def test_from_config_falls_back_on_malformed_remote_rows(config):
    config.glossary.supabase_url = "https://db.example.com"
    config.glossary.supabase_key = "secret"
    response = Mock()
    response.json.return_value = [
        {"id": 1, "term": "arbitration", "definition": "private judge", "category": 5},
    ]

    with patch("voltlegal.core.glossary.requests.get", return_value=response):
        manager = GlossaryManager.from_config(config)

    assert len(manager.terms) == len(load_default_glossary())


def test_custom_terms_are_added(sample_terms):
    manager = GlossaryManager(sample_terms, custom_terms=[
        {"id": "extra", "term": "estoppel", "definition": "no going back"},
    ])
    assert manager.get_definition("ESTOPPEL").id == "extra"


def test_get_definition(glossary):
    assert glossary.get_definition("  Lease Agreement ").id == "lease-lease-agreement"
    assert glossary.get_definition("leasehold") is None
    assert glossary.get_definition("") is None


def test_search_ranks_exact_then_prefix_then_contains(glossary):
    results = glossary.search_terms("lease")
    assert [t.term for t in results] == ["lease", "lease agreement"]

    results = glossary.search_terms("compete")
    assert [t.term for t in results][:2] == ["compete", "non-compete"]


def test_search_matches_definitions(glossary):
    assert [t.term for t in glossary.search_terms("rent")] == ["lease", "lease agreement"]
    assert glossary.search_terms("   ") == []


def test_terms_for_category(glossary):
    assert [t.term for t in glossary.get_terms_for_category("Lease")] == ["lease", "lease agreement"]
    assert glossary.get_terms_for_category("tax") == []


def test_add_terms_rebuilds_index(glossary):
    assert glossary.extract_terms("an estoppel claim") == []

    glossary.add_terms([GlossaryTerm("general-estoppel", "estoppel", "no going back")])
    assert [t.id for t in glossary.extract_terms("an estoppel claim")] == ["general-estoppel"]

    with pytest.raises(GlossaryError):
        glossary.add_terms([GlossaryTerm("general-estoppel", "estoppel again", "dup")])


def test_extract_terms_unique_in_order(glossary):
    found = glossary.extract_terms("Lease terms: the lease agreement and the non-compete. Lease.")
    assert [t.id for t in found] == ["lease-lease", "lease-lease-agreement", "employment-non-compete"]


def test_simplify_text_formats(glossary):
    assert '<span class="legal-term"' in glossary.simplify_text("a lease")
    assert "[^lease_lease]" in glossary.simplify_text("a lease", format="markdown")
    with pytest.raises(ValueError):
        glossary.simplify_text("a lease", format="pdf")


def test_export_formats(glossary):
    records = json.loads(glossary.export_glossary("json"))
    assert [r["term"] for r in records][:2] == ["compete", "force majeure (act of god)"]

    assert yaml.safe_load(glossary.export_glossary("yaml")) == records

    csv_lines = glossary.export_glossary("csv").splitlines()
    assert csv_lines[0] == "id,term,definition,category"
    assert len(csv_lines) == len(records) + 1

    html_out = glossary.export_glossary("html")
    assert html_out.startswith("<dl>") and html_out.endswith("</dl>")
    assert "<dt><strong>lease</strong></dt>" in html_out

    with pytest.raises(ValueError):
        glossary.export_glossary("xml")


def test_csv_quotes_commas():
    manager = GlossaryManager([GlossaryTerm("x", "lien", 'a "claim", on property')])
    assert manager.export_glossary("csv").splitlines()[1] == 'x,lien,"a ""claim"", on property",general'


def test_csv_quotes_line_breaks():
    manager = GlossaryManager([
        GlossaryTerm("x", "lien", "line one\nline two"),
        GlossaryTerm("y", "levy", "a tax"),
    ])
    exported = manager.export_glossary("csv")

    assert '"line one\nline two"' in exported
    assert list(csv.reader(io.StringIO(exported))) == [
        ["id", "term", "definition", "category"],
        ["y", "levy", "a tax", "general"],
        ["x", "lien", "line one\nline two", "general"],
    ]


def test_stats(glossary):
    stats = glossary.get_stats()
    assert stats["total_terms"] == 5
    assert stats["unique_definitions"] == 5
    assert stats["lease"] == 2
    assert stats["employment"] == 1
    assert stats["general"] == 2
