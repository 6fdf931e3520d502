"""Report rendering to HTML, Markdown and JSON."""

from synthesis.output.render import (
    APPENDIX_TITLE,
    REPORT_TITLE,
    appendix_notes,
    apply_markers,
    compile_json,
    render_html,
    render_markdown,
    report_title,
    source_entries,
)

__all__ = [
    "APPENDIX_TITLE",
    "REPORT_TITLE",
    "appendix_notes",
    "apply_markers",
    "compile_json",
    "render_html",
    "render_markdown",
    "report_title",
    "source_entries",
]
