"""Section drafting.

Pluggable providers for the nine report sections, their deterministic
fallbacks, and the drafter that isolates provider failures.
"""

from synthesis.writers.base import DraftContext, SectionContent, SectionProvider
from synthesis.writers.drafter import (
    DraftResult,
    attach_inline_citations,
    build_section,
    draft_sections,
    refresh_section_citations,
)
from synthesis.writers.fallbacks import FALLBACK_TEXT, fallback_content
from synthesis.writers.sections import DEFAULT_PROVIDERS, default_providers

__all__ = [
    "DraftContext",
    "SectionContent",
    "SectionProvider",
    "DraftResult",
    "attach_inline_citations",
    "build_section",
    "draft_sections",
    "refresh_section_citations",
    "FALLBACK_TEXT",
    "fallback_content",
    "DEFAULT_PROVIDERS",
    "default_providers",
]
