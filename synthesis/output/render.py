"""Report rendering: HTML, Markdown and the JSON payload.

All three renderings share the same order: title, the nine sections with
their inline markers, the source list of referenced citations, and an
appendix of modules that were unavailable or placeholders.
"""

import html
import logging
from datetime import datetime, timezone
from typing import Any

from synthesis.citations.formatter import CITATION_TOKEN, extract_citation_ids, format_source_entry
from synthesis.citations.ledger import CitationLedger
from synthesis.errors.exceptions import RenderFailure
from synthesis.state.models import Bridge, NormalizedInputs, PatternSet, Section

logger = logging.getLogger(__name__)

REPORT_TITLE = "Intelligence Playbook"
APPENDIX_TITLE = "Data Processing Notes"


# =============================================================================
# Shared pieces
# =============================================================================


def report_title(inputs: NormalizedInputs) -> str:
    subject = inputs.subject.name or inputs.subject.id
    if inputs.comparison is not None:
        comparison = inputs.comparison.name or inputs.comparison.id
        return f"{REPORT_TITLE}: {subject} and {comparison}"
    return f"{REPORT_TITLE}: {subject}"


def appendix_notes(inputs: NormalizedInputs) -> list[str]:
    """One note per placeholder module, then one per missing module."""
    notes = []
    for record in inputs.placeholders:
        reason = record.placeholder_reason or "analysis did not complete"
        notes.append(f"{record.code}: placeholder data ({reason})")
    for code in inputs.stats.get("missing", []):
        notes.append(f"{code}: not available for this run")
    return notes


def apply_markers(text: str, section: Section, ledger: CitationLedger) -> str:
    """
    Replace ``[n]`` tokens with the ledger's markers for this section.

    Suppressed markers (enhanced mode, low confidence) are removed.
    """
    name = section.name.value

    def replace(match) -> str:
        marker = ledger.marker(int(match.group(1)), name)
        return marker or ""

    return " ".join(CITATION_TOKEN.sub(replace, text or "").split())


def trailing_markers(section: Section, ledger: CitationLedger) -> str:
    """Markers for citations attached to the section without a text token."""
    in_text = set(extract_citation_ids(section.full_text))
    markers = [
        ledger.marker(cid, section.name.value)
        for cid in section.citation_ids
        if cid not in in_text
    ]
    return " ".join(m for m in markers if m)


def source_entries(ledger: CitationLedger) -> list[str]:
    """Formatted source list of referenced citations, in first-use order."""
    return [
        format_source_entry(c.id, c.title, c.url, c.publisher, c.year, c.domain)
        for c in ledger.get_output().sources
    ]


# =============================================================================
# Markdown
# =============================================================================


def render_markdown(
    sections: list[Section],
    ledger: CitationLedger,
    inputs: NormalizedInputs,
    selfcheck: dict[str, Any] | None = None,
) -> str:
    """
    Render the report as Markdown.

    Raises:
        RenderFailure: If rendering fails.
    """
    try:
        lines = [f"# {report_title(inputs)}", ""]
        for section in sections:
            lines.append(f"## {section.title}")
            lines.append("")
            body = apply_markers(section.text, section, ledger)
            trailing = trailing_markers(section, ledger)
            if trailing and not section.items:
                body = f"{body} {trailing}".strip()
            if body:
                lines.append(body)
                lines.append("")
            for item in section.items:
                lines.append(f"- **{item.title}**: {apply_markers(item.body, section, ledger)}")
            if section.items:
                if trailing:
                    lines.append(f"- Sources: {trailing}")
                lines.append("")

        sources = source_entries(ledger)
        if sources:
            lines.append("## Sources")
            lines.append("")
            lines.extend(f"- {entry}" for entry in sources)
            lines.append("")

        notes = appendix_notes(inputs)
        if notes:
            lines.append(f"## {APPENDIX_TITLE}")
            lines.append("")
            lines.extend(f"- {note}" for note in notes)
            lines.append("")

        if selfcheck is not None and not selfcheck.get("passed", True):
            lines.append(f"_Self-check: {selfcheck.get('failure_count', 0)} checks failed._")
            lines.append("")

        return "\n".join(lines).rstrip() + "\n"
    except Exception as e:
        raise RenderFailure(f"Markdown rendering failed: {e}", output_format="markdown") from e


# =============================================================================
# HTML
# =============================================================================


def render_html(
    sections: list[Section],
    ledger: CitationLedger,
    inputs: NormalizedInputs,
    selfcheck: dict[str, Any] | None = None,
) -> str:
    """
    Render the report as a standalone HTML document.

    Raises:
        RenderFailure: If rendering fails.
    """
    try:
        title = html.escape(report_title(inputs))
        parts = [
            "<!DOCTYPE html>",
            '<html lang="en">',
            f"<head><meta charset=\"utf-8\"><title>{title}</title></head>",
            "<body>",
            f"<h1>{title}</h1>",
        ]
        for section in sections:
            name = html.escape(section.name.value)
            parts.append(f'<section id="{name}" class="report-section">')
            parts.append(f"<h2>{html.escape(section.title)}</h2>")
            body = html.escape(apply_markers(section.text, section, ledger))
            trailing = html.escape(trailing_markers(section, ledger))
            if body:
                parts.append(f"<p>{body}</p>")
            if section.items:
                parts.append("<ul>")
                for item in section.items:
                    item_body = html.escape(apply_markers(item.body, section, ledger))
                    parts.append(f"<li><strong>{html.escape(item.title)}</strong>: {item_body}</li>")
                parts.append("</ul>")
            if trailing:
                parts.append(f'<p class="citations">{trailing}</p>')
            parts.append("</section>")

        sources = source_entries(ledger)
        if sources:
            parts.append('<section id="sources"><h2>Sources</h2><ol>')
            parts.extend(f"<li>{html.escape(entry)}</li>" for entry in sources)
            parts.append("</ol></section>")

        notes = appendix_notes(inputs)
        if notes:
            parts.append(f'<section id="appendix"><h2>{APPENDIX_TITLE}</h2><ul>')
            parts.extend(f"<li>{html.escape(note)}</li>" for note in notes)
            parts.append("</ul></section>")

        if selfcheck is not None and not selfcheck.get("passed", True):
            parts.append(
                f'<p class="selfcheck">Self-check: {selfcheck.get("failure_count", 0)} checks failed.</p>'
            )

        parts.append("</body></html>")
        return "\n".join(parts)
    except Exception as e:
        raise RenderFailure(f"HTML rendering failed: {e}", output_format="html") from e


# =============================================================================
# JSON payload
# =============================================================================


def compile_json(
    sections: list[Section],
    ledger: CitationLedger,
    inputs: NormalizedInputs,
    patterns: PatternSet | None = None,
    bridge: Bridge | None = None,
    selfcheck: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Compile the JSON payload of the report.

    Raises:
        RenderFailure: If the payload cannot be built.
    """
    try:
        output = ledger.get_output()
        return {
            "title": report_title(inputs),
            "run_id": inputs.run.id,
            "sections": {
                section.name.value: {
                    "title": section.title,
                    "text": section.text,
                    "items": [item.model_dump() for item in section.items],
                    "citation_ids": section.citation_ids,
                    "status": section.status.value,
                    "is_fallback": section.is_fallback,
                }
                for section in sections
            },
            "citations": output.to_dict(),
            "patterns": patterns.counts() if patterns is not None else {},
            "bridge": bridge.model_dump() if bridge is not None else None,
            "selfcheck": selfcheck or {},
            "appendix": appendix_notes(inputs),
            "metadata": {
                "subject": inputs.subject.name or inputs.subject.id,
                "comparison": (
                    (inputs.comparison.name or inputs.comparison.id) if inputs.comparison else None
                ),
                "module_count": inputs.stats.get("module_count", 0),
                "coverage_ratio": inputs.stats.get("coverage_ratio", 0.0),
                "enhanced_citations": ledger.enhanced,
                "generated_at": datetime.now(timezone.utc).isoformat(),
            },
        }
    except Exception as e:
        raise RenderFailure(f"JSON compilation failed: {e}", output_format="json") from e
