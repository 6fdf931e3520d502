"""Coherence and pattern alignment checks.

Both are optional pipeline phases. They read the drafted sections and
return a 0-1 score plus details; neither rewrites text.
"""

import re
from typing import Any

from synthesis.state.models import PatternSet, Section

# Transitions sharing less than this are reported as weak
WEAK_TRANSITION_THRESHOLD = 0.1

# Keywords taken from each pattern for alignment
KEYWORDS_PER_PATTERN = 3

STOP_WORDS = frozenset({
    "about", "above", "after", "again", "against", "among", "because", "before",
    "being", "below", "between", "could", "during", "every", "first", "their",
    "there", "these", "those", "through", "under", "until", "where", "which",
    "while", "whose", "would", "other", "should", "within", "without", "across",
    "also", "have", "from", "that", "this", "with", "into", "over", "more",
})

_WORD = re.compile(r"[a-z][a-z\-]{4,}")


def content_terms(text: str) -> set[str]:
    """Lower-cased words of five or more letters, minus stop words."""
    return {w for w in _WORD.findall((text or "").lower()) if w not in STOP_WORDS}


def _overlap(left: set[str], right: set[str]) -> float:
    if not left or not right:
        return 0.0
    return len(left & right) / min(len(left), len(right))


def calculate_coherence(sections: list[Section]) -> dict[str, Any]:
    """
    Score vocabulary shared between adjacent sections.

    Each transition scores the shared terms over the smaller vocabulary;
    the report score is the mean over transitions.

    Returns:
        ``{"score", "transitions", "weak_transitions"}``. Fewer than two
        sections scores 1.0.
    """
    transitions = []
    for previous, current in zip(sections, sections[1:]):
        left = content_terms(previous.full_text)
        right = content_terms(current.full_text)
        transitions.append({
            "from": previous.name.value,
            "to": current.name.value,
            "shared_terms": sorted(left & right)[:10],
            "score": round(_overlap(left, right), 3),
        })

    if not transitions:
        return {"score": 1.0, "transitions": [], "weak_transitions": []}

    score = sum(t["score"] for t in transitions) / len(transitions)
    weak = [
        f"{t['from']} -> {t['to']}"
        for t in transitions
        if t["score"] < WEAK_TRANSITION_THRESHOLD
    ]
    return {
        "score": round(min(1.0, score), 3),
        "transitions": transitions,
        "weak_transitions": weak,
    }


def pattern_keywords(patterns: PatternSet) -> set[str]:
    """The first few content terms of each pressure, lever, timing and executive pattern."""
    keywords: set[str] = set()
    for pattern in patterns.pressures + patterns.levers + patterns.timing + patterns.executives:
        terms = [w for w in _WORD.findall(pattern.text.lower()) if w not in STOP_WORDS]
        keywords.update(terms[:KEYWORDS_PER_PATTERN])
    return keywords


def compare_patterns(sections: list[Section], patterns: PatternSet) -> dict[str, Any]:
    """
    Measure how much of the extracted pattern vocabulary reached the draft.

    Returns:
        ``{"score", "matched", "total", "missing"}``. No keywords scores 1.0.
    """
    keywords = pattern_keywords(patterns)
    if not keywords:
        return {"score": 1.0, "matched": 0, "total": 0, "missing": []}

    drafted = content_terms(" ".join(section.full_text for section in sections))
    matched = keywords & drafted
    return {
        "score": round(len(matched) / len(keywords), 3),
        "matched": len(matched),
        "total": len(keywords),
        "missing": sorted(keywords - drafted)[:20],
    }
