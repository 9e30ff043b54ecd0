"""Shared fixtures for VOLT Legal tests"""

from types import SimpleNamespace
from unittest.mock import Mock

import pytest

from voltlegal.core.config import VoltConfig
from voltlegal.core.glossary import GlossaryManager
from voltlegal.core.terms import GlossaryTerm

ANALYSIS_REPLY = """SUMMARY:
This is a twelve month residential lease. Rent is due on the first of each month
and the tenant pays a security deposit of one month's rent.

RED FLAGS:
- Late fee of $100 charged after a single day
- Landlord may enter the unit without notice

OVERALL ASSESSMENT:
Mostly standard, but negotiate the entry clause."""


@pytest.fixture
def config():
    """Configuration isolated from the developer's environment"""
    cfg = VoltConfig()
    cfg.llm.api_key = None
    cfg.glossary.glossary_path = None
    cfg.glossary.supabase_url = None
    cfg.glossary.supabase_key = None
    cfg.speech.api_key = None
    cfg.api.block_internal_ips = False
    return cfg


@pytest.fixture
def sample_terms():
    return [
        GlossaryTerm("general-compete", "compete", "to try to win business from others"),
        GlossaryTerm("employment-non-compete", "non-compete",
                     "a promise not to work for competitors", "employment"),
        GlossaryTerm("lease-lease", "lease", "a contract to rent property", "lease"),
        GlossaryTerm("lease-lease-agreement", "lease agreement",
                     "the written rental contract", "lease"),
        GlossaryTerm("general-force-majeure-act-of-god", "force majeure (act of god)",
                     "a natural event nobody could prevent"),
    ]


@pytest.fixture
def glossary(sample_terms):
    return GlossaryManager(sample_terms)


@pytest.fixture
def fake_llm():
    llm = Mock()
    llm.invoke.return_value = SimpleNamespace(content=ANALYSIS_REPLY)
    return llm
