"""Final self-check over the drafted report."""

import logging
from dataclasses import dataclass, field
from typing import Any

from synthesis.review.validation import section_ok
from synthesis.state.enums import SECTION_ORDER
from synthesis.state.models import MAX_CITATIONS_PER_SECTION, Section
from synthesis.style.banned_words import BannedWordsFilter

logger = logging.getLogger(__name__)


@dataclass
class SelfCheckReport:
    """Outcome of the self-check: one entry per check, failed or not."""

    passed: bool = True
    checks: list[dict[str, Any]] = field(default_factory=list)

    def add(self, check: str, section: str | None, passed: bool, detail: str = "") -> None:
        self.checks.append({
            "check": check,
            "section": section,
            "status": "pass" if passed else "fail",
            "detail": detail,
        })
        if not passed:
            self.passed = False

    @property
    def failures(self) -> list[dict[str, Any]]:
        return [c for c in self.checks if c["status"] == "fail"]

    def to_dict(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "checks": self.checks,
            "failure_count": len(self.failures),
        }


def run_selfcheck(
    sections: list[Section],
    banned_filter: BannedWordsFilter | None = None,
) -> SelfCheckReport:
    """
    Check that the report is complete and clean.

    Checks, per canonical section: present, non-empty, at most eight
    citation markers, no banned terms left in the text.

    Returns:
        SelfCheckReport; ``passed`` is False when any check fails.
    """
    banned_filter = banned_filter or BannedWordsFilter()
    report = SelfCheckReport()
    by_name = {section.name.value: section for section in sections}

    for name in SECTION_ORDER:
        key = name.value
        section = by_name.get(key)
        if section is None:
            report.add("present", key, False, "section missing")
            continue

        result = section_ok(key, section)
        report.add("non_empty", key, result.is_valid, "; ".join(result.errors))

        count = len(section.citation_ids)
        report.add(
            "citation_cap", key, count <= MAX_CITATIONS_PER_SECTION,
            f"{count} citations",
        )

        found = sorted({m.word.lower() for m in banned_filter.find_banned_words(section.full_text)})
        report.add("banned_terms", key, not found, ", ".join(found))

    if not report.passed:
        logger.info(f"SELF_CHECK: {len(report.failures)} checks failed")
    return report
