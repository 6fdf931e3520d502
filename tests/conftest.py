"""Test configuration and fixtures."""

import copy

import pytest

import synthesis.cache as cache_module
from synthesis.config import settings
from synthesis.config.settings import Settings
from synthesis.inputs.normalizer import InputNormalizer
from synthesis.memory.store import InMemoryArtifactStore, InMemoryRunStore, InMemoryTelemetry


# Configure pytest-asyncio
pytest_plugins = ['pytest_asyncio']


@pytest.fixture(scope="session")
def anyio_backend():
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture(autouse=True)
def shared_bundle_cache(monkeypatch):
    """Each test starts with an empty, enabled process-wide bundle cache."""
    monkeypatch.setattr(settings, "cache_enabled", True)
    monkeypatch.setattr(cache_module, "_cache_instance", None)


# =============================================================================
# Fixture data
# =============================================================================

SUBJECT_ORG = {
    "id": "org-acme",
    "name": "Acme Health",
    "sector": "healthcare",
    "website": "https://www.acmehealth.com",
}

COMPARISON_ORG = {
    "id": "org-northwind",
    "name": "Northwind Analytics",
    "sector": "healthcare analytics software",
    "metadata": {"focus": "staffing forecasts and outpatient imaging analytics"},
}

MODULE_FIELDS: dict[int, dict[str, str]] = {
    1: {
        "Market Positioning": "Regional provider holding 18% share of outpatient imaging",
        "Focus": "Shifting care delivery toward outpatient and home settings",
        "Notable Shifts": "Recent move to value-based contracts with two national payers",
        "Innovation": "Remote monitoring platform launched across cardiology clinics",
        "Collaboration": "Joint venture with a regional university hospital network",
        "Business Model": "Fee-for-service revenue transitioning to shared savings",
        "Mission": "Deliver affordable specialist care close to home",
        "Vision": "Become the most trusted outpatient network in the region",
        "Customer Segments": "Commercially insured families and Medicare Advantage members",
    },
    2: {
        "Revenue Growth": "Revenue grew 12% year over year to 2.4 billion dollars",
        "Market Outlook": "Demand for ambulatory services is growing in suburban markets",
    },
    3: {"Cost Structure": "Labor costs rose 9% as nurse staffing shortages persisted"},
    4: {"Competition": "National retail clinics are undercutting prices on routine visits"},
    5: {"Customer Retention": "Patient retention reached 87% across primary care panels"},
    6: {"Procurement": "Purchasing decisions require CFO approval above 250 thousand dollars"},
    7: {"Buying Committee": "Vendor selection runs through a clinical and finance committee"},
    8: {"Technology Stack": "Consolidating three electronic health record systems onto one platform"},
    9: {"Budget Cycle": "Capital budget is set each October for the following fiscal year"},
    10: {"Partnerships": "Expanded imaging partnership with a national diagnostics provider"},
    11: {"Chief Executive": "The CEO owns the ambulatory growth agenda and reports monthly to the board"},
    12: {"Operating Margin": "Operating margin narrowed to 4.2% from 5.1% a year earlier"},
    13: {"Strategic Initiatives": "Opening twelve new ambulatory surgery centers over three years"},
    14: {"Workforce Risk": "Turnover among imaging technicians remains above industry averages"},
    15: {"Regulation": "New price transparency rules take effect next year for outpatient services"},
}

DOMAINS = [
    "reuters.com", "bloomberg.com", "sec.gov", "fiercehealthcare.com",
    "modernhealthcare.com", "beckershospitalreview.com", "healthaffairs.org",
    "cms.gov", "kff.org", "wsj.com", "ft.com", "forbes.com",
    "investors.acmehealth.com", "prnewswire.com", "businesswire.com",
]


def module_citations(n: int) -> list[dict]:
    """Two citations per module on distinct domains."""
    first = DOMAINS[(n - 1) % len(DOMAINS)]
    second = DOMAINS[(n + 6) % len(DOMAINS)]
    return [
        {"url": f"https://www.{first}/acme/report-{n}", "title": f"Acme report {n}", "year": 2024},
        {"url": f"https://{second}/coverage/acme-{n}"},
    ]


def build_module(n: int, code: str | None = None, status: str = "completed") -> dict:
    """Raw module record in the shape the run store accepts."""
    return {
        "code": code or f"NB{n}",
        "status": status,
        "payload": {"Acme Health": {"Overview": dict(MODULE_FIELDS[n])}},
        "citations": module_citations(n),
        "tokens_used": 1000 + n,
        "duration_ms": 500,
    }


def build_fixture(
    run_id: str = "run-1",
    module_numbers: list[int] | None = None,
    comparison: bool = True,
) -> dict:
    """
    Fixture dictionary for ``InMemoryRunStore.from_fixture``.

    Args:
        run_id: Run identifier.
        module_numbers: Module numbers to include (all fifteen by default).
        comparison: Attach the comparison organization.
    """
    numbers = module_numbers if module_numbers is not None else list(range(1, 16))
    modules = [build_module(n) for n in numbers]
    if modules and numbers[0] == 1:
        modules[0]["code"] = "nb-01"
    run = {
        "id": run_id,
        "subject_org_id": SUBJECT_ORG["id"],
        "modules": modules,
        "citations": ["https://www.kff.org/briefs/outpatient-trends"],
    }
    if comparison:
        run["comparison_org_id"] = COMPARISON_ORG["id"]
    return {
        "organizations": [copy.deepcopy(SUBJECT_ORG), copy.deepcopy(COMPARISON_ORG)],
        "runs": [run],
    }


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fixture_data():
    """Fixture dictionary with one fully populated run."""
    return build_fixture()


@pytest.fixture
def run_store(fixture_data):
    """Run store loaded with the fully populated run."""
    return InMemoryRunStore.from_fixture(fixture_data)


@pytest.fixture
def artifacts():
    return InMemoryArtifactStore()


@pytest.fixture
def telemetry():
    return InMemoryTelemetry()


@pytest.fixture
def test_settings(tmp_path):
    """Settings independent of the process environment."""
    return Settings(
        pipeline_safe_mode=False,
        enable_trace_mode=False,
        enable_detailed_trace_logging=False,
        enable_coherence_engine=False,
        enable_pattern_comparator=False,
        enable_enhanced_citations=False,
        auto_run_diagnostics=True,
        cache_enabled=True,
        resolver_mode="none",
        resolver_batch_size=20,
        resolver_max_batches=3,
        resolver_timeout=5.0,
        executive_word_limit=140,
        output_dir=str(tmp_path),
        log_level="INFO",
    )


@pytest.fixture
def make_fixture():
    """Factory for fixture dictionaries (see ``build_fixture``)."""
    return build_fixture


@pytest.fixture
def normalized_inputs(run_store):
    """Normalized inputs of the fully populated run."""
    return InputNormalizer(run_store, run_store).normalize("run-1")
