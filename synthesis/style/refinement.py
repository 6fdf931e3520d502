"""Executive text refinement.

Tightens summary prose: removes filler phrases and ellipses, shortens
wordy constructions, and caps the text at a word limit, preferring to
end on a sentence boundary.
"""

import re

DEFAULT_WORD_LIMIT = 140

FILLER_REPLACEMENTS: list[tuple[str, str]] = [
    (r"\bit is worth noting that\s*", ""),
    (r"\bit should be noted that\s*", ""),
    (r"\bgoing forward,?\s*", ""),
    (r"\bmoving forward,?\s*", ""),
    (r"\bat the end of the day,?\s*", ""),
    (r"\bwith that being said,?\s*", ""),
    (r"\bfor all intents and purposes,?\s*", ""),
    (r"\bdue to the fact that\b", "because"),
    (r"\bin order to\b", "to"),
    (r"\bin terms of\b", "regarding"),
    (r"\bwith regard to\b", "regarding"),
    (r"\bin the event that\b", "if"),
    (r"\bthe fact that\b", "that"),
]

_INTENSIFIERS = re.compile(r"\b(very|really|quite|rather|somewhat|fairly)\b\s*", re.IGNORECASE)

# Only cut back to a sentence end when it keeps most of the capped text
MIN_SENTENCE_CUT_RATIO = 0.7


def remove_filler_phrases(text: str) -> str:
    """Remove filler phrases and shorten wordy constructions."""
    for pattern, replacement in FILLER_REPLACEMENTS:
        text = re.sub(pattern, replacement, text, flags=re.IGNORECASE)
    return text


def cap_words(text: str, word_limit: int) -> str:
    """
    Cap text at ``word_limit`` words.

    Ends at the last full stop when that stop lies in the final 30% of the
    capped text; otherwise a full stop is appended.
    """
    words = text.split()
    if len(words) <= word_limit:
        return text
    capped = " ".join(words[:word_limit])
    last_period = capped.rfind(".")
    if last_period != -1 and last_period > len(capped) * MIN_SENTENCE_CUT_RATIO:
        return capped[:last_period + 1]
    return capped.rstrip(",;:") + "."


def refine_executive_text(text: str, word_limit: int = DEFAULT_WORD_LIMIT) -> str:
    """
    Refine summary text.

    Args:
        text: Text to refine.
        word_limit: Maximum number of words.

    Returns:
        Refined text; empty input gives an empty string.
    """
    if not text or not text.strip():
        return ""
    text = remove_filler_phrases(text)
    text = text.replace("...", ".").replace("…", ".")
    text = _INTENSIFIERS.sub("", text)
    text = re.sub(r"\.{2,}", ".", text)
    text = " ".join(text.split())
    text = re.sub(r"(^|[.!?]\s+)([a-z])", lambda m: m.group(1) + m.group(2).upper(), text)
    return cap_words(text, word_limit).strip()
