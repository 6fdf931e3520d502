"""Citation ledger for allocating, tracking and emitting citations."""

import logging
from dataclasses import dataclass, field
from typing import Any

from synthesis.citations.confidence import calculate_confidence, classify_source_type
from synthesis.citations.formatter import (
    CITATION_TOKEN,
    extract_citation_ids,
    extract_domain,
    format_marker,
    section_prefix,
)
from synthesis.state.models import MAX_CITATIONS_PER_SECTION, Citation, CitationSource

logger = logging.getLogger(__name__)


@dataclass
class CitationUsage:
    """Tracks where a citation is referenced."""

    citation_id: int
    section: str
    position: int  # 1-based position within the section


@dataclass
class SectionCitations:
    """Result of scanning one section's text for citation tokens."""

    section: str
    text: str
    used_ids: list[int] = field(default_factory=list)
    dropped_ids: list[int] = field(default_factory=list)


@dataclass
class CitationOutput:
    """Citations referenced by at least one section."""

    global_order: list[int]
    sources: list[Citation]

    def to_dict(self) -> dict[str, Any]:
        return {
            "global_order": self.global_order,
            "sources": [c.model_dump(mode="json") for c in self.sources],
        }


class CitationLedger:
    """
    Allocate citation ids and track their use across sections.

    Invariants:
    - The URL is the unique key; adding a known URL returns its id.
    - Ids start at 1, increase monotonically, and are never reused.
    - A section references at most 8 distinct ids.
    - Only referenced citations appear in ``get_output()``.

    One ledger lives for one build; it is not shared between runs.
    """

    def __init__(self, enhanced: bool = False):
        """
        Initialize the ledger.

        Args:
            enhanced: Use confidence scoring and section-prefixed markers.
        """
        self._entries: dict[int, Citation] = {}
        self._by_url: dict[str, int] = {}
        self._next_id = 1
        self._usages: list[CitationUsage] = []
        self._by_section: dict[str, list[int]] = {}
        self._first_use: list[int] = []
        self.enhanced = enhanced

    # =========================================================================
    # Allocation
    # =========================================================================

    def add_citation(self, source: CitationSource | str | dict[str, Any]) -> int:
        """
        Add a citation source, deduplicating by exact URL.

        Args:
            source: CitationSource, URL string, or ``{url, title, ...}`` dict.

        Returns:
            The citation id, or 0 when the source has no URL.
        """
        if isinstance(source, str):
            source = CitationSource(url=source)
        elif isinstance(source, dict):
            source = CitationSource.model_validate(source)

        url = (source.url or "").strip()
        if not url:
            return 0

        existing = self._by_url.get(url)
        if existing is not None:
            entry = self._entries[existing]
            entry.provenance.corroboration_count += 1
            if self.enhanced:
                self._score(entry)
            return existing

        citation_id = self._next_id
        self._next_id += 1

        domain = extract_domain(url)
        entry = Citation(
            id=citation_id,
            url=url,
            title=source.title or "",
            publisher=source.publisher or "",
            year=source.year,
            published_at=source.published_at,
            domain=domain,
            snippet=source.snippet,
        )
        if self.enhanced:
            entry.source_type = classify_source_type(domain)
            self._score(entry)

        self._entries[citation_id] = entry
        self._by_url[url] = citation_id
        return citation_id

    def add_citations(self, sources: list[CitationSource | str | dict[str, Any]]) -> list[int]:
        """Add multiple sources; returns their ids (0 for sources without URL)."""
        return [self.add_citation(source) for source in sources]

    def get(self, citation_id: int) -> Citation | None:
        return self._entries.get(citation_id)

    def get_by_url(self, url: str) -> Citation | None:
        citation_id = self._by_url.get((url or "").strip())
        return self._entries.get(citation_id) if citation_id else None

    def update_metadata(
        self,
        citation_id: int,
        title: str | None = None,
        publisher: str | None = None,
        year: int | None = None,
        published_at: str | None = None,
    ) -> bool:
        """Fill in resolved metadata. Existing non-empty values are kept."""
        entry = self._entries.get(citation_id)
        if entry is None:
            return False
        if title and not entry.title:
            entry.title = title
        if publisher and not entry.publisher:
            entry.publisher = publisher
        if year and not entry.year:
            entry.year = year
        if published_at and not entry.published_at:
            entry.published_at = published_at
        entry.provenance.validation_status = "resolved"
        if self.enhanced:
            self._score(entry)
        return True

    def __len__(self) -> int:
        return len(self._entries)

    # =========================================================================
    # Usage tracking
    # =========================================================================

    def process_section_citations(self, text: str, section: str) -> SectionCitations:
        """
        Scan a section for ``[n]`` tokens and record its citations.

        Ids are kept in first-appearance order. Tokens for ids that were
        never allocated, or beyond the per-section cap, are removed from
        the text. Re-processing a section replaces its previous list.

        Args:
            text: Section text.
            section: Section name.

        Returns:
            SectionCitations with the cleaned text and the recorded ids.
        """
        used: list[int] = []
        dropped: list[int] = []
        for citation_id in extract_citation_ids(text):
            if citation_id not in self._entries:
                dropped.append(citation_id)
            elif len(used) >= MAX_CITATIONS_PER_SECTION:
                dropped.append(citation_id)
            else:
                used.append(citation_id)

        cleaned = text
        if dropped:
            cleaned = CITATION_TOKEN.sub(
                lambda m: "" if int(m.group(1)) in dropped else m.group(0), text
            )
            cleaned = " ".join(cleaned.split())
            logger.debug(f"CITATIONS: dropped {dropped} from {section}")

        self._record_section(section, used)
        return SectionCitations(section=section, text=cleaned, used_ids=used, dropped_ids=dropped)

    def attach(self, section: str, citation_ids: list[int]) -> list[int]:
        """
        Append citations to a section without a text token, respecting the cap.

        Returns:
            The ids actually attached.
        """
        current = list(self._by_section.get(section, []))
        attached = []
        for citation_id in citation_ids:
            if citation_id not in self._entries or citation_id in current:
                continue
            if len(current) >= MAX_CITATIONS_PER_SECTION:
                break
            current.append(citation_id)
            attached.append(citation_id)
        self._record_section(section, current)
        return attached

    def _record_section(self, section: str, ids: list[int]) -> None:
        self._by_section[section] = list(ids)
        self._usages = [u for u in self._usages if u.section != section]
        for position, citation_id in enumerate(ids, 1):
            self._usages.append(CitationUsage(citation_id, section, position))
            if citation_id not in self._first_use:
                self._first_use.append(citation_id)
            entry = self._entries[citation_id]
            if entry.section is None:
                entry.section = section

    def section_ids(self, section: str) -> list[int]:
        return list(self._by_section.get(section, []))

    def get_used_ids(self) -> set[int]:
        """Ids referenced by at least one section."""
        return {u.citation_id for u in self._usages}

    def is_used(self, citation_id: int) -> bool:
        return citation_id in self.get_used_ids()

    def get_citations_by_section(self) -> dict[str, list[int]]:
        return {section: list(ids) for section, ids in self._by_section.items() if ids}

    # =========================================================================
    # Markers and output
    # =========================================================================

    def marker(self, citation_id: int, section: str) -> str | None:
        """
        Return the inline marker for a citation in a section.

        Plain mode gives ``[id]``. Enhanced mode gives the section prefix
        and the citation's position in the section (``[EI2]``), appends
        ``*`` below 0.6 confidence, and returns None below 0.4.
        """
        entry = self._entries.get(citation_id)
        if entry is None:
            return None
        if not self.enhanced:
            return format_marker(citation_id)

        ids = self._by_section.get(section, [])
        position = ids.index(citation_id) + 1 if citation_id in ids else len(ids) + 1
        marker = format_marker(position, section, entry.confidence, enhanced=True)
        if marker and marker not in entry.markers:
            entry.markers.append(marker)
        return marker

    def get_output(self) -> CitationOutput:
        """
        Return referenced citations with their original ids (no renumbering).
        """
        used = self.get_used_ids()
        order = [cid for cid in self._first_use if cid in used]
        return CitationOutput(
            global_order=order,
            sources=[self._entries[cid] for cid in order],
        )

    # =========================================================================
    # Enhanced mode
    # =========================================================================

    def enable_enhancements(self) -> None:
        """Switch to confidence scoring and section-prefixed markers."""
        self.enhanced = True
        for entry in self._entries.values():
            entry.source_type = classify_source_type(entry.domain)
            self._score(entry)

    def _score(self, entry: Citation) -> None:
        text = " ".join(filter(None, [entry.title, entry.snippet or ""]))
        entry.confidence = calculate_confidence(
            domain=entry.domain,
            published=entry.published_at or (str(entry.year) if entry.year else None),
            corroboration_count=entry.provenance.corroboration_count,
            text=text,
            section=entry.section,
        )

    def enhanced_metrics(self) -> dict[str, Any]:
        """Confidence statistics and section coverage of referenced citations."""
        used = [self._entries[cid] for cid in self.get_output().global_order]
        confidences = [c.confidence for c in used]
        coverage: dict[str, int] = {}
        for section, ids in self._by_section.items():
            if ids:
                coverage[section_prefix(section)] = len(ids)
        mappings = {
            marker: entry.id for entry in used for marker in entry.markers
        }
        return {
            "enhanced": self.enhanced,
            "total_citations": len(self._entries),
            "used_citations": len(used),
            "confidence": {
                "average": round(sum(confidences) / len(confidences), 2) if confidences else 0.0,
                "min": min(confidences) if confidences else 0.0,
                "max": max(confidences) if confidences else 0.0,
                "low_count": sum(1 for c in confidences if c < 0.6),
                "suppressed_count": sum(1 for c in confidences if c < 0.4),
            },
            "coverage": coverage,
            "mappings": mappings,
        }
