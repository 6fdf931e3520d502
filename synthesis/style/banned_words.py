"""Banned terms filter for report prose.

Filters consultant-speak and sales execution vocabulary from drafted
sections. Each banned term has a plain replacement, so the filter can
both report and rewrite.
"""

import re
from dataclasses import dataclass


# Consultant-speak and the plain wording that replaces it
CONSULTANT_REPLACEMENTS: dict[str, str] = {
    "synergy": "collaboration",
    "synergies": "collaboration",
    "leverage": "use",
    "strategic alignment": "coordination",
    "roadmap": "plan",
    "workstream": "project",
    "best practices": "proven methods",
    "low-hanging fruit": "easy wins",
    "circle back": "follow up",
    "touch base": "connect",
    "deep dive": "detailed analysis",
    "drill down": "examine",
    "move the needle": "make progress",
    "paradigm shift": "major change",
    "disruptive": "new",
    "game-changer": "significant advantage",
    "thought leadership": "expertise",
    "actionable insights": "useful findings",
    "scalable solutions": "adaptable approaches",
}

# Sales execution details that do not belong in a strategic report
EXECUTION_REPLACEMENTS: dict[str, str] = {
    "email": "communication",
    "emails": "communication",
    "schedule": "timing",
    "scheduling": "timing",
    "sequence": "approach",
    "sequences": "approach",
    "cadence": "frequency",
    "cadences": "frequency",
    "call": "conversation",
    "calls": "conversations",
    "calling": "engaging",
    "cold call": "connection",
    "direct message": "message",
    "linkedin": "professional network",
    "outreach": "connection",
    "script": "framework",
    "scripts": "frameworks",
    "template": "structure",
    "templates": "structures",
    "automation": "systematic process",
}

WORD_REPLACEMENTS: dict[str, str] = {**CONSULTANT_REPLACEMENTS, **EXECUTION_REPLACEMENTS}

BANNED_WORDS: set[str] = set(WORD_REPLACEMENTS)


@dataclass
class BannedWordMatch:
    """A match of a banned term in text."""

    word: str
    position: int
    context: str  # Surrounding text
    suggestion: str | None


class BannedWordsFilter:
    """Find and replace banned terms."""

    def __init__(
        self,
        banned_words: set[str] | None = None,
        replacements: dict[str, str] | None = None,
    ):
        """
        Initialize the filter.

        Args:
            banned_words: Banned terms. Defaults to BANNED_WORDS.
            replacements: Term replacements. Defaults to WORD_REPLACEMENTS.
        """
        self.banned_words = {w.lower() for w in (banned_words or BANNED_WORDS)}
        self.replacements = {k.lower(): v for k, v in (replacements or WORD_REPLACEMENTS).items()}

        # Longest first so multi-word phrases match before their parts
        sorted_words = sorted(self.banned_words, key=len, reverse=True)
        pattern = r"\b(" + "|".join(re.escape(w) for w in sorted_words) + r")\b"
        self._pattern = re.compile(pattern, re.IGNORECASE)

    def find_banned_words(self, text: str) -> list[BannedWordMatch]:
        """
        Find all banned terms in the text.

        Returns:
            Matches in order of appearance.
        """
        matches: list[BannedWordMatch] = []
        for match in self._pattern.finditer(text or ""):
            start = max(0, match.start() - 20)
            end = min(len(text), match.end() + 20)
            matches.append(BannedWordMatch(
                word=match.group(1),
                position=match.start(),
                context=text[start:end],
                suggestion=self.replacements.get(match.group(1).lower()),
            ))
        return matches

    def replace_banned_words(self, text: str) -> tuple[str, int]:
        """
        Replace banned terms with their plain alternatives.

        Returns:
            Tuple of (processed text, number of replacements).
        """
        replacement_count = 0

        def replace_match(match: re.Match) -> str:
            nonlocal replacement_count
            word = match.group(1)
            replacement = self.replacements.get(word.lower())
            if replacement is None:
                return word
            if word[0].isupper():
                replacement = replacement[0].upper() + replacement[1:]
            replacement_count += 1
            return replacement

        processed = self._pattern.sub(replace_match, text or "")
        return processed, replacement_count

    def is_word_banned(self, word: str) -> bool:
        return word.lower() in self.banned_words

    def get_suggestion(self, word: str) -> str | None:
        return self.replacements.get(word.lower())
