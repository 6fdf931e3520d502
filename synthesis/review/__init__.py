"""Review module for synthesized reports.

Section contract validation, QA scoring, the final self-check, and the
optional coherence and pattern alignment checks.
"""

from synthesis.review.coherence import calculate_coherence, compare_patterns, content_terms
from synthesis.review.qa import QA_DIMENSIONS, calculate_qa_scores, weighted_overall
from synthesis.review.selfcheck import SelfCheckReport, run_selfcheck
from synthesis.review.validation import (
    SECTION_CONTRACTS,
    SectionContract,
    ValidationResult,
    is_empty,
    section_ok,
    section_ok_tolerant,
)

__all__ = [
    "calculate_coherence",
    "compare_patterns",
    "content_terms",
    "QA_DIMENSIONS",
    "calculate_qa_scores",
    "weighted_overall",
    "SelfCheckReport",
    "run_selfcheck",
    "SECTION_CONTRACTS",
    "SectionContract",
    "ValidationResult",
    "is_empty",
    "section_ok",
    "section_ok_tolerant",
]
