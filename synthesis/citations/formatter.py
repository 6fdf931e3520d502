"""Citation formatting and URL helpers.

Numeric citation markers (``[3]``, ``[EI1]``), source list entries, and
the URL normalization shared by the ledger, the rebalancer and the
metadata resolver.
"""

import re
from typing import Any
from urllib.parse import urlsplit, urlunsplit


# Section prefixes used by enhanced markers
SECTION_PREFIXES: dict[str, str] = {
    "executive_insight": "EI",
    "customer_fundamentals": "CF",
    "financial_trajectory": "FT",
    "margin_pressures": "MP",
    "strategic_priorities": "SP",
    "growth_levers": "GL",
    "buying_behavior": "BB",
    "current_initiatives": "CI",
    "risk_signals": "RS",
}

UNKNOWN_SECTION_PREFIX = "XX"

CITATION_TOKEN = re.compile(r"\[(\d+)\]")


# =============================================================================
# URL helpers
# =============================================================================


def extract_domain(url: str) -> str:
    """
    Return the lower-cased host of a URL without a leading ``www.``.

    Bare hosts (``example.com/path``) are accepted. Unparseable input
    yields ``"unknown"``.
    """
    if not url or not url.strip():
        return "unknown"
    candidate = url.strip()
    if "://" not in candidate:
        candidate = f"//{candidate}"
    try:
        host = urlsplit(candidate).hostname or ""
    except ValueError:
        return "unknown"
    host = host.lower()
    if host.startswith("www."):
        host = host[4:]
    return host or "unknown"


def normalize_url(url: str) -> str | None:
    """
    Normalize a URL for deduplication before metadata resolution.

    Only http(s) URLs are kept. The result is lower-cased, without query
    string or fragment, and without a trailing slash.

    Returns:
        Normalized URL, or None if the URL is not http(s).
    """
    if not url:
        return None
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return None
    if parts.scheme.lower() not in ("http", "https") or not parts.netloc:
        return None
    path = parts.path.rstrip("/")
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path.lower(), "", ""))


def url_fingerprint(url: str) -> str:
    """Scheme-less, lower-cased URL without trailing slashes."""
    fingerprint = url.strip().lower()
    fingerprint = re.sub(r"^[a-z][a-z0-9+.-]*://", "", fingerprint)
    return fingerprint.rstrip("/")


def fallback_title(url: str) -> str:
    """
    Derive a readable title from the last path segment of a URL.

    ``https://x.com/reports/annual-report_2024.pdf`` gives
    ``"Annual Report 2024"``. Falls back to the domain.
    """
    try:
        path = urlsplit(url).path
    except ValueError:
        path = ""
    segment = path.rstrip("/").rsplit("/", 1)[-1] if path else ""
    if "." in segment:
        segment = segment.rsplit(".", 1)[0]
    segment = re.sub(r"[-_]+", " ", segment).strip()
    if not segment:
        return extract_domain(url)
    return segment.title()


# =============================================================================
# Markers
# =============================================================================


def section_prefix(section: str) -> str:
    """Return the two-letter marker prefix of a section."""
    return SECTION_PREFIXES.get(section, UNKNOWN_SECTION_PREFIX)


def format_marker(
    position: int,
    section: str | None = None,
    confidence: float | None = None,
    enhanced: bool = False,
) -> str | None:
    """
    Format an inline citation marker.

    Args:
        position: 1-based position of the citation within its section.
        section: Section name (enhanced mode only).
        confidence: Citation confidence (enhanced mode only).
        enhanced: Use section-prefixed markers with confidence flags.

    Returns:
        Marker text, or None when enhanced mode suppresses a citation
        with confidence below 0.4.
    """
    if not enhanced:
        return f"[{position}]"
    if confidence is not None and confidence < 0.4:
        return None
    marker = f"[{section_prefix(section or '')}{position}]"
    if confidence is not None and confidence < 0.6:
        marker += "*"
    return marker


def extract_citation_ids(text: str) -> list[int]:
    """
    Extract numeric citation ids from ``[n]`` tokens.

    Returns:
        Unique positive ids in first-appearance order.
    """
    ids: list[int] = []
    for match in CITATION_TOKEN.finditer(text or ""):
        value = int(match.group(1))
        if value > 0 and value not in ids:
            ids.append(value)
    return ids


# =============================================================================
# Source entries
# =============================================================================


def format_source_entry(
    citation_id: int,
    title: str,
    url: str,
    publisher: str | None = None,
    year: int | None = None,
    domain: str | None = None,
) -> str:
    """
    Format a source list entry.

    Example:
        ``[3] "Annual Report 2024", Acme Corp (2024) (acme.com)``
    """
    entry = f'[{citation_id}] "{title or fallback_title(url)}"'
    if publisher:
        entry += f", {publisher}"
    if year:
        entry += f" ({year})"
    entry += f" ({domain or extract_domain(url)})"
    return entry


def normalize_citation_urls(sources: list[Any]) -> list[str]:
    """
    Collect unique http(s) URLs from citation sources.

    Sources may be URL strings, dicts with a ``url`` key, or objects with
    a ``url`` attribute. Deduplication uses ``normalize_url``; the first
    spelling seen is returned.
    """
    seen: set[str] = set()
    urls: list[str] = []
    for source in sources or []:
        if isinstance(source, str):
            url = source
        elif isinstance(source, dict):
            url = source.get("url") or ""
        else:
            url = getattr(source, "url", "") or ""
        key = normalize_url(url)
        if key is None or key in seen:
            continue
        seen.add(key)
        urls.append(url.strip())
    return urls
