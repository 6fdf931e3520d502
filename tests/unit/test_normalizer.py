"""Unit tests for input normalization."""

import pytest

from synthesis.errors.exceptions import InputMissing
from synthesis.inputs.normalizer import (
    InputNormalizer,
    canonical_code,
    code_aliases,
    decode_citations,
    decode_payload,
    normalize,
)
from synthesis.memory.store import InMemoryRunStore
from synthesis.state.enums import ModuleStatus
from synthesis.state.models import AnalysisModule, CitationSource, Organization, Run
from synthesis.state.tree import MapNode


RUN = Run(id="run-1", subject_org_id="org-acme")
SUBJECT = Organization(id="org-acme", name="Acme Health")


class TestCanonicalCode:
    """Tests for module code canonicalization."""

    @pytest.mark.parametrize("raw", ["nb-01", "NB_01", "Nb01", "NB1", " nb1 "])
    def test_alias_forms(self, raw):
        """Every alias spelling canonicalizes to NB1."""
        assert canonical_code(raw) == "NB1"

    def test_code_without_digits(self):
        """A code without digits is upper-cased."""
        assert canonical_code("summary") == "SUMMARY"

    def test_aliases_resolve_back(self):
        """Registered aliases include the zero-padded form."""
        aliases = code_aliases("NB7")
        assert "nb-7" in aliases
        assert "Nb07" in aliases


class TestDecoding:
    """Tests for payload and citation decoding."""

    def test_invalid_payload_gives_empty_map(self):
        """Invalid JSON text decodes to an empty map."""
        tree = decode_payload("{broken", "NB1")
        assert isinstance(tree, MapNode)
        assert tree.is_empty()

    def test_payload_text_and_structure(self):
        """JSON text and decoded structures give the same tree."""
        assert decode_payload('{"a": "b"}', "NB1") == decode_payload({"a": "b"}, "NB1")

    def test_citation_shapes(self):
        """URL strings and objects are accepted; entries without URL are skipped."""
        sources = decode_citations(
            ["https://a.com/x", {"url": "https://b.com/y", "title": "B", "year": "2023"}, {"title": "no url"}],
            origin="NB2",
        )
        assert [s.url for s in sources] == ["https://a.com/x", "https://b.com/y"]
        assert sources[1].year == 2023
        assert all(s.origin == "NB2" for s in sources)

    def test_citations_from_json_text(self):
        """Citation lists may arrive as JSON text."""
        sources = decode_citations('["https://a.com/x"]')
        assert sources[0].url == "https://a.com/x"

    def test_invalid_citation_text(self):
        """Undecodable citation text gives no citations."""
        assert decode_citations("not json") == []


class TestNormalize:
    """Tests for normalize()."""

    def test_canonical_keys_and_aliases(self):
        """Module codes are canonical and aliases resolve to records."""
        modules = [
            AnalysisModule(code="nb-01", payload={"Acme": {"Overview": {"Focus": "Care"}}}),
            AnalysisModule(code="NB_02", payload='{"Acme": {"Finance": {"Revenue": "up"}}}'),
        ]
        inputs = normalize(RUN, modules, SUBJECT)
        assert inputs.module_keys == ["NB1", "NB2"]
        assert inputs.lookup("nb-01").code == "NB1"
        assert inputs.lookup("nb2").code == "NB2"
        assert inputs.lookup("NB9") is None

    def test_data_envelope_unwrapped(self):
        """A top-level data envelope is removed."""
        modules = [AnalysisModule(code="NB1", payload={"data": {"Acme": {"S": {"F": "v"}}}})]
        inputs = normalize(RUN, modules, SUBJECT)
        assert inputs.modules["NB1"].tree.keys() == ["Acme"]

    def test_empty_run_raises(self):
        """A run without modules is fatal."""
        with pytest.raises(InputMissing):
            normalize(RUN, [], SUBJECT)

    def test_missing_status_is_skipped(self):
        """Modules marked missing are not normalized."""
        modules = [
            AnalysisModule(code="NB1", payload={"a": "b"}),
            AnalysisModule(code="NB2", status=ModuleStatus.MISSING),
        ]
        inputs = normalize(RUN, modules, SUBJECT)
        assert inputs.module_keys == ["NB1"]
        assert "NB2" in inputs.stats["missing"]

    def test_placeholder_detection(self):
        """Placeholder status or payload flags mark a module as placeholder."""
        modules = [
            AnalysisModule(code="NB1", payload={"placeholder": True}),
            AnalysisModule(code="NB2", payload={"execution_status": "failed"}),
            AnalysisModule(code="NB3", status=ModuleStatus.FAILED, failure_reason="timeout"),
            AnalysisModule(code="NB4", payload={"a": "b"}),
        ]
        inputs = normalize(RUN, modules, SUBJECT)
        assert inputs.stats["placeholders"] == ["NB1", "NB2", "NB3"]
        assert inputs.modules["NB3"].placeholder_reason == "timeout"
        assert inputs.stats["completed_modules"] == ["NB4"]

    def test_duplicate_prefers_completed(self):
        """A completed duplicate replaces a placeholder, never the reverse."""
        modules = [
            AnalysisModule(code="NB1", status=ModuleStatus.PLACEHOLDER),
            AnalysisModule(code="nb-01", payload={"a": "real"}),
            AnalysisModule(code="NB01", status=ModuleStatus.PLACEHOLDER),
        ]
        inputs = normalize(RUN, modules, SUBJECT)
        assert inputs.modules["NB1"].is_completed

    def test_citation_pool_deduplicated(self):
        """Pooled citation count deduplicates URLs across modules and the run."""
        modules = [
            AnalysisModule(code="NB1", payload={"a": "b"}, citations=["https://a.com/1", "https://b.com/2"]),
            AnalysisModule(code="NB2", payload={"a": "b"}, citations=["https://a.com/1"]),
        ]
        inputs = normalize(RUN, modules, SUBJECT, run_citations=["https://b.com/2", "https://c.com/3"])
        assert inputs.stats["citation_count"] == 3
        assert [c.url for c in inputs.citations] == ["https://b.com/2", "https://c.com/3"]

    def test_unique_citation_urls(self):
        """URLs differing only in case, query or trailing slash count once."""
        modules = [
            AnalysisModule(
                code="NB1",
                payload={"a": "b"},
                citations=[
                    "https://a.com/report",
                    "https://A.com/report/?utm=feed",
                    "https://b.com/2",
                ],
            ),
        ]
        inputs = normalize(RUN, modules, SUBJECT)
        assert inputs.stats["citation_count"] == 3
        assert inputs.stats["unique_citation_urls"] == 2

    def test_low_coverage_warns(self):
        """Fewer than twelve modules proceeds with a warning."""
        modules = [AnalysisModule(code=f"NB{n}", payload={"a": "b"}) for n in range(1, 6)]
        inputs = normalize(RUN, modules, SUBJECT)
        assert any("Only 5 of 15 modules" in w for w in inputs.warnings)
        assert inputs.stats["coverage_ratio"] == 0.33
        assert "NB7" in inputs.stats["missing_core"]


class TestInputNormalizer:
    """Tests for store-backed normalization."""

    def test_normalizes_fixture_run(self, run_store):
        """The fixture run normalizes to fifteen modules with a comparison."""
        inputs = InputNormalizer(run_store, run_store).normalize("run-1")
        assert len(inputs.modules) == 15
        assert inputs.comparison is not None
        assert inputs.comparison.name == "Northwind Analytics"
        assert inputs.stats["missing"] == []
        assert inputs.stats["citation_count"] == 31
        assert inputs.aliases["nb-01"] == "NB1"

    def test_unknown_run(self, run_store):
        """An unknown run id raises InputMissing."""
        with pytest.raises(InputMissing):
            InputNormalizer(run_store, run_store).normalize("nope")

    def test_missing_subject_org_placeholder(self, make_fixture):
        """A missing subject organization is replaced by its id."""
        data = make_fixture()
        data["organizations"] = []
        store = InMemoryRunStore.from_fixture(data)
        inputs = InputNormalizer(store, store).normalize("run-1")
        assert inputs.subject.id == "org-acme"
        assert inputs.comparison is None

    def test_run_citation_objects(self, make_fixture):
        """Run-level citations may be CitationSource objects."""
        store = InMemoryRunStore.from_fixture(make_fixture())
        store.add_run_citation("run-1", CitationSource(url="https://www.sec.gov/filing"))
        inputs = InputNormalizer(store, store).normalize("run-1")
        assert inputs.citations[-1].url == "https://www.sec.gov/filing"
