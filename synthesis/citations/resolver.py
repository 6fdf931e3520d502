"""Citation metadata resolvers.

A resolver takes a batch of URLs and returns whatever metadata it can
find for each (title, publisher, year). Two implementations:

- ``UrlCitationResolver`` derives metadata from the URL alone (no I/O).
- ``HttpCitationResolver`` fetches each page with httpx and reads its
  ``<title>`` and common meta tags, falling back to the URL-derived values.
"""

import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx
from lxml import etree, html as lxml_html

from synthesis.citations.formatter import extract_domain, fallback_title, url_fingerprint

logger = logging.getLogger(__name__)


# =============================================================================
# Rate Limit Configuration
# =============================================================================

MAX_RETRIES = 3
INITIAL_BACKOFF = 1.0  # seconds
BACKOFF_MULTIPLIER = 2.0

_YEAR = re.compile(r"\b(19|20)\d{2}\b")


@dataclass
class ResolvedCitation:
    """Metadata resolved for one URL."""

    url: str
    title: str
    domain: str
    fingerprint: str
    publisher: str | None = None
    year: int | None = None
    published_at: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


def resolve_from_url(url: str) -> ResolvedCitation:
    """Metadata derivable from the URL alone."""
    return ResolvedCitation(
        url=url,
        title=fallback_title(url),
        domain=extract_domain(url),
        fingerprint=url_fingerprint(url),
    )


class CitationResolver(ABC):
    """Resolves metadata for batches of citation URLs."""

    @abstractmethod
    def resolve(self, urls: list[str]) -> list[ResolvedCitation]:
        """Resolve a batch of URLs. May raise; callers isolate batch failures."""


class UrlCitationResolver(CitationResolver):
    """Resolver that never performs I/O."""

    def resolve(self, urls: list[str]) -> list[ResolvedCitation]:
        return [resolve_from_url(url) for url in urls]


def _make_request_with_retry(
    client: httpx.Client,
    url: str,
    max_retries: int = MAX_RETRIES,
) -> httpx.Response:
    """Make HTTP request with exponential backoff retry for rate limits."""
    backoff = INITIAL_BACKOFF
    last_exception = None

    for attempt in range(max_retries + 1):
        try:
            response = client.get(url)
            if response.status_code == 429:
                if attempt < max_retries:
                    time.sleep(backoff)
                    backoff *= BACKOFF_MULTIPLIER
                    continue
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 429 and attempt < max_retries:
                time.sleep(backoff)
                backoff *= BACKOFF_MULTIPLIER
                last_exception = e
                continue
            raise
        except httpx.RequestError as e:
            last_exception = e
            if attempt < max_retries:
                time.sleep(backoff)
                backoff *= BACKOFF_MULTIPLIER
                continue
            raise

    if last_exception:
        raise last_exception
    raise RuntimeError("Request failed after retries")


def _page_meta(tree: lxml_html.HtmlElement) -> dict[str, str]:
    """Meta tag values keyed by their lowercased ``property`` or ``name``."""
    meta: dict[str, str] = {}
    for element in tree.xpath("//meta[@content]"):
        key = element.get("property") or element.get("name")
        if key:
            meta.setdefault(key.strip().lower(), " ".join(element.get("content").split()))
    return meta


def parse_page_metadata(url: str, body: str) -> ResolvedCitation:
    """Extract title, publisher and date from an HTML page."""
    resolved = resolve_from_url(url)
    try:
        tree = lxml_html.fromstring(body)
    except (etree.ParserError, etree.XMLSyntaxError, ValueError):
        return resolved

    meta = _page_meta(tree)
    title = meta.get("og:title") or " ".join(" ".join(tree.xpath("//title//text()")).split())
    if title:
        resolved.title = title[:300]
    resolved.publisher = meta.get("og:site_name") or None

    published = meta.get("article:published_time") or meta.get("date") or None
    if published:
        resolved.published_at = published[:25]
        year = _YEAR.search(published)
        if year:
            resolved.year = int(year.group(0))
    return resolved


class HttpCitationResolver(CitationResolver):
    """
    Resolver that fetches each URL.

    A failed fetch for one URL degrades to URL-derived metadata; only an
    unexpected error fails the whole batch.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        max_retries: int = 1,
        client: httpx.Client | None = None,
    ):
        self.timeout = timeout
        self.max_retries = max_retries
        self._client = client

    def resolve(self, urls: list[str]) -> list[ResolvedCitation]:
        if self._client is not None:
            return [self._resolve_one(self._client, url) for url in urls]
        with httpx.Client(timeout=self.timeout, follow_redirects=True) as client:
            return [self._resolve_one(client, url) for url in urls]

    def _resolve_one(self, client: httpx.Client, url: str) -> ResolvedCitation:
        try:
            response = _make_request_with_retry(client, url, max_retries=self.max_retries)
        except httpx.HTTPStatusError as e:
            logger.debug(f"Resolver: HTTP {e.response.status_code} for {url}")
            return resolve_from_url(url)
        except httpx.RequestError as e:
            logger.debug(f"Resolver: request failed for {url}: {e}")
            return resolve_from_url(url)

        content_type = response.headers.get("content-type", "")
        if "html" not in content_type:
            return resolve_from_url(url)
        return parse_page_metadata(url, response.text)


RESOLVER_MODES = ("none", "url", "http")


def build_resolver(mode: str, timeout: float = 10.0) -> CitationResolver | None:
    """
    Create the resolver named by ``mode``.

    Args:
        mode: ``none`` disables enrichment, ``url`` derives metadata from
            URLs only, ``http`` fetches each page.
        timeout: Request timeout for the HTTP resolver.

    Raises:
        ValueError: If the mode is unknown.
    """
    mode = (mode or "none").lower()
    if mode == "none":
        return None
    if mode == "url":
        return UrlCitationResolver()
    if mode == "http":
        return HttpCitationResolver(timeout=timeout)
    raise ValueError(f"Unknown resolver mode: {mode}")
