"""Voice enforcement for drafted report sections.

Runs a fixed sequence of checks over a section's text and rewrites what
it can:

1. casual_asides: remove "honestly", "frankly", "basically" and the like
2. ban_list: replace consultant-speak with plain wording
3. execution_details: replace sales execution vocabulary
4. sentence_breath: split sentences so the average stays at or under
   25 words with at most 20% long sentences
5. concrete_numbers: summary-style sections should carry at least one
   figure or date (reported, never invented)

The score is the percentage of checks that pass after the rewrites.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from synthesis.style.banned_words import (
    CONSULTANT_REPLACEMENTS,
    EXECUTION_REPLACEMENTS,
    BannedWordsFilter,
)

logger = logging.getLogger(__name__)


CASUAL_ASIDES: tuple[str, ...] = (
    "to be honest", "let me be clear",
    "honestly", "frankly", "clearly", "obviously",
    "essentially", "basically", "actually", "literally",
)

MAX_AVERAGE_SENTENCE_WORDS = 25
LONG_SENTENCE_WORDS = 25
MAX_LONG_SENTENCE_SHARE = 0.2

# Sections expected to cite at least one figure or date
NUMBERS_REQUIRED_SECTIONS: frozenset[str] = frozenset({
    "executive_insight", "financial_trajectory", "growth_levers",
})

_ASIDE_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(a) for a in CASUAL_ASIDES) + r")\b,?\s*",
    re.IGNORECASE,
)
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")
_BREAK_POINT = re.compile(r"\s+(?:and|but|while|because|since|although)\s+")
_NUMBER = re.compile(
    r"\b\d+(?:,\d{3})*(?:\.\d+)?\s*(?:%|percent|million|billion|thousand)?"
)
_DATE = re.compile(
    r"\b(?:\d{4}-\d{2}-\d{2}|Q[1-4]\s+\d{4}|"
    r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\s+\d{4})\b"
)


@dataclass
class VoiceResult:
    """Result of enforcing voice rules on one text."""

    text: str
    checks: dict[str, dict[str, Any]] = field(default_factory=dict)
    score: float = 0.0  # 0-100, share of passed checks
    rewrites: list[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(check.get("passed", False) for check in self.checks.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "checks": self.checks,
            "score": self.score,
            "rewrites": self.rewrites,
            "passed": self.passed,
        }


def split_sentences(text: str) -> list[str]:
    """Split text at sentence-ending punctuation followed by whitespace."""
    return [s.strip() for s in _SENTENCE_BOUNDARY.split(text or "") if s.strip()]


def _capitalize_sentences(text: str) -> str:
    text = re.sub(r"([.!?]\s+)([a-z])", lambda m: m.group(1) + m.group(2).upper(), text)
    return text[:1].upper() + text[1:] if text else text


class VoiceEnforcer:
    """Apply the report voice rules to section text."""

    def __init__(self):
        self.consultant_filter = BannedWordsFilter(
            banned_words=set(CONSULTANT_REPLACEMENTS),
            replacements=CONSULTANT_REPLACEMENTS,
        )
        self.execution_filter = BannedWordsFilter(
            banned_words=set(EXECUTION_REPLACEMENTS),
            replacements=EXECUTION_REPLACEMENTS,
        )

    # =========================================================================
    # Checks
    # =========================================================================

    def check_casual_asides(self, text: str) -> dict[str, Any]:
        found = [m.group(1) for m in _ASIDE_PATTERN.finditer(text)]
        return {"passed": not found, "found": len(found), "examples": found[:3]}

    def check_ban_list(self, text: str) -> dict[str, Any]:
        found = sorted({m.word.lower() for m in self.consultant_filter.find_banned_words(text)})
        return {"passed": not found, "found_terms": found, "banned_count": len(found)}

    def check_execution_details(self, text: str) -> dict[str, Any]:
        found = sorted({m.word.lower() for m in self.execution_filter.find_banned_words(text)})
        return {"passed": not found, "found_terms": found, "execution_count": len(found)}

    def check_sentence_breath(self, text: str) -> dict[str, Any]:
        counts = [len(s.split()) for s in split_sentences(text)]
        if not counts:
            return {"passed": True, "average_words": 0.0, "max_words": 0,
                    "long_sentences": 0, "total_sentences": 0}
        average = sum(counts) / len(counts)
        long_sentences = sum(1 for c in counts if c > LONG_SENTENCE_WORDS)
        return {
            "passed": (
                average <= MAX_AVERAGE_SENTENCE_WORDS
                and long_sentences <= len(counts) * MAX_LONG_SENTENCE_SHARE
            ),
            "average_words": round(average, 1),
            "max_words": max(counts),
            "long_sentences": long_sentences,
            "total_sentences": len(counts),
        }

    def check_concrete_numbers(self, text: str, section: str | None = None) -> dict[str, Any]:
        numbers = _NUMBER.findall(text)
        dates = _DATE.findall(text)
        required = 1 if section in NUMBERS_REQUIRED_SECTIONS else 0
        return {
            "passed": len(numbers) + len(dates) >= required,
            "found_numbers": len(numbers),
            "found_dates": len(dates),
            "required": required,
        }

    # =========================================================================
    # Rewrites
    # =========================================================================

    def remove_casual_asides(self, text: str) -> str:
        text = _ASIDE_PATTERN.sub("", text)
        text = " ".join(text.split())
        return _capitalize_sentences(text)

    def fix_sentence_length(self, text: str) -> str:
        """Split each long sentence once at its first conjunction."""
        fixed = []
        for sentence in split_sentences(text):
            if len(sentence.split()) > LONG_SENTENCE_WORDS:
                match = _BREAK_POINT.search(sentence)
                if match:
                    head = sentence[:match.start()].rstrip(",;")
                    tail = sentence[match.end():]
                    if len(head.split()) >= 4 and len(tail.split()) >= 4:
                        sentence = f"{head}. {tail[:1].upper()}{tail[1:]}"
            fixed.append(sentence)
        return " ".join(fixed)

    # =========================================================================
    # Entry point
    # =========================================================================

    def enforce(self, text: str, section: str | None = None) -> VoiceResult:
        """
        Enforce the voice rules on a text.

        Args:
            text: Section text.
            section: Section name, used by the concrete numbers check.

        Returns:
            VoiceResult with the rewritten text, per-check details, the
            score and the list of rewrites applied.
        """
        result = VoiceResult(text=text or "")
        if not result.text.strip():
            result.score = 100.0
            return result

        current = result.text

        if not self.check_casual_asides(current)["passed"]:
            current = self.remove_casual_asides(current)
            result.rewrites.append("Removed casual asides")
        result.checks["casual_asides"] = self.check_casual_asides(current)

        if not self.check_ban_list(current)["passed"]:
            current, count = self.consultant_filter.replace_banned_words(current)
            result.rewrites.append(f"Replaced {count} consultant-speak terms")
        result.checks["ban_list"] = self.check_ban_list(current)

        if not self.check_execution_details(current)["passed"]:
            current, count = self.execution_filter.replace_banned_words(current)
            result.rewrites.append(f"Replaced {count} execution detail terms")
        result.checks["execution_details"] = self.check_execution_details(current)

        if not self.check_sentence_breath(current)["passed"]:
            current = self.fix_sentence_length(current)
            result.rewrites.append("Split long sentences")
        result.checks["sentence_breath"] = self.check_sentence_breath(current)

        result.checks["concrete_numbers"] = self.check_concrete_numbers(current, section)

        passed = sum(1 for check in result.checks.values() if check["passed"])
        result.score = round(passed / len(result.checks) * 100, 1)
        result.text = current

        if result.rewrites:
            logger.debug(f"VOICE: {section or 'text'} rewrites: {', '.join(result.rewrites)}")
        return result
