"""Tests for citation metadata resolvers and batched enrichment."""

import httpx
import pytest

from synthesis.citations.enrichment import collect_enrichment_targets, enrich_citations
from synthesis.citations.ledger import CitationLedger
from synthesis.citations.resolver import (
    CitationResolver,
    HttpCitationResolver,
    UrlCitationResolver,
    build_resolver,
    parse_page_metadata,
    resolve_from_url,
)

PAGE = """
<html><head>
<title>  Acme   Health expands outpatient network </title>
<meta property="og:site_name" content="Healthcare Weekly">
<meta property="article:published_time" content="2024-03-18T09:00:00Z">
</head><body>...</body></html>
"""


class FlakyResolver(CitationResolver):
    """Fails the first batch, then derives metadata from URLs."""

    def __init__(self):
        self.calls: list[list[str]] = []

    def resolve(self, urls):
        self.calls.append(list(urls))
        if len(self.calls) == 1:
            raise TimeoutError("resolver timed out")
        return [resolve_from_url(url) for url in urls]


def make_ledger(count: int) -> CitationLedger:
    ledger = CitationLedger()
    ledger.add_citations([f"https://news{i}.com/story-{i}" for i in range(1, count + 1)])
    return ledger


# =============================================================================
# Resolver Tests
# =============================================================================


class TestResolvers:
    """Tests for the resolvers."""

    def test_resolve_from_url(self):
        """Test URL-derived metadata."""
        resolved = resolve_from_url("https://www.kff.org/briefs/outpatient-trends/")
        assert resolved.title == "Outpatient Trends"
        assert resolved.domain == "kff.org"
        assert resolved.fingerprint == "www.kff.org/briefs/outpatient-trends"

    def test_url_resolver(self):
        """Test the URL resolver answers every URL."""
        resolved = UrlCitationResolver().resolve(["https://a.com/x", "https://b.com/y"])
        assert [r.domain for r in resolved] == ["a.com", "b.com"]

    def test_parse_page_metadata(self):
        """Test title, publisher and date are read from the page."""
        resolved = parse_page_metadata("https://hw.com/acme", PAGE)
        assert resolved.title == "Acme Health expands outpatient network"
        assert resolved.publisher == "Healthcare Weekly"
        assert resolved.year == 2024
        assert resolved.published_at.startswith("2024-03-18")

    def test_parse_meta_attribute_order_and_quotes(self):
        """Test meta tags are read whatever the attribute order or quoting."""
        page = (
            "<html><head><title>Clinic &amp; Payer Update</title>"
            "<meta content='Acme News' property='og:site_name'>"
            '<meta content="2023-11-02" name="date">'
            "</head><body></body></html>"
        )
        resolved = parse_page_metadata("https://acmenews.com/update", page)
        assert resolved.title == "Clinic & Payer Update"
        assert resolved.publisher == "Acme News"
        assert resolved.year == 2023

    def test_parse_empty_page(self):
        """Test an empty body keeps the URL-derived metadata."""
        resolved = parse_page_metadata("https://a.com/quarterly-review", "")
        assert resolved.title == "Quarterly Review"
        assert resolved.publisher is None

    def test_http_resolver_reads_pages(self):
        """Test the HTTP resolver parses HTML responses."""
        def handler(request):
            return httpx.Response(200, text=PAGE, headers={"content-type": "text/html"})

        client = httpx.Client(transport=httpx.MockTransport(handler))
        resolved = HttpCitationResolver(client=client).resolve(["https://hw.com/acme"])
        assert resolved[0].publisher == "Healthcare Weekly"

    def test_http_resolver_degrades_per_url(self):
        """Test failed fetches fall back to URL-derived metadata."""
        def handler(request):
            if "missing" in request.url.path:
                return httpx.Response(404)
            if "down" in request.url.path:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, text="%PDF", headers={"content-type": "application/pdf"})

        client = httpx.Client(transport=httpx.MockTransport(handler))
        resolver = HttpCitationResolver(max_retries=0, client=client)
        resolved = resolver.resolve([
            "https://a.com/missing-report",
            "https://b.com/down-page",
            "https://c.com/annual-report.pdf",
        ])
        assert [r.title for r in resolved] == ["Missing Report", "Down Page", "Annual Report"]
        assert all(r.publisher is None for r in resolved)

    @pytest.mark.parametrize("mode,expected", [
        ("none", type(None)),
        ("url", UrlCitationResolver),
        ("HTTP", HttpCitationResolver),
    ])
    def test_build_resolver(self, mode, expected):
        """Test resolver construction by mode."""
        assert isinstance(build_resolver(mode), expected)

    def test_build_resolver_unknown(self):
        """Test unknown modes are rejected."""
        with pytest.raises(ValueError):
            build_resolver("dns")


# =============================================================================
# Enrichment Tests
# =============================================================================


class TestEnrichment:
    """Tests for enrich_citations."""

    def test_targets_prefer_referenced(self):
        """Test referenced citations are enriched first."""
        ledger = make_ledger(3)
        ledger.add_citation("ftp://files.com/x")
        ledger.attach("risk_signals", [3])
        targets = collect_enrichment_targets(ledger)
        assert list(targets.values()) == [3, 1, 2]

    def test_targets_deduplicate_normalized(self):
        """Test URLs normalizing to the same value keep the first id."""
        ledger = CitationLedger()
        ledger.add_citations(["https://a.com/X/", "https://A.com/x?utm=1"])
        assert collect_enrichment_targets(ledger) == {"https://a.com/x": 1}

    def test_batches_are_bounded(self):
        """Test at most batch_size * max_batches URLs are resolved."""
        ledger = make_ledger(5)
        report = enrich_citations(ledger, UrlCitationResolver(), batch_size=2, max_batches=2)
        assert report.batches_run == 2
        assert report.resolved == 4
        assert report.skipped_urls == 1
        assert ledger.get(1).title == "Story 1"
        assert ledger.get(5).title == ""
        assert report.to_dict()["failed_batches"] == 0

    def test_failed_batch_is_isolated(self):
        """Test a failing batch becomes a warning and later batches still run."""
        ledger = make_ledger(4)
        resolver = FlakyResolver()
        report = enrich_citations(ledger, resolver, batch_size=2, max_batches=3)
        assert len(resolver.calls) == 2
        assert report.resolved == 2
        assert len(report.warnings) == 1
        assert report.warnings[0].section == "citations"
        assert "resolver timed out" in report.warnings[0].warning
        assert ledger.get(1).provenance.validation_status == "pending"
        assert ledger.get(3).provenance.validation_status == "resolved"

    def test_numeric_id_map(self):
        """Test the report maps normalized URLs to citation ids."""
        ledger = make_ledger(2)
        report = enrich_citations(ledger, UrlCitationResolver())
        assert report.numeric_id == {
            "https://news1.com/story-1": 1,
            "https://news2.com/story-2": 2,
        }
