"""Style enforcement for report prose.

Banned term filtering, voice enforcement and executive text refinement.
"""

from synthesis.style.banned_words import BannedWordsFilter, BANNED_WORDS, WORD_REPLACEMENTS
from synthesis.style.enforcer import VoiceEnforcer, VoiceResult, split_sentences
from synthesis.style.refinement import (
    DEFAULT_WORD_LIMIT,
    cap_words,
    refine_executive_text,
    remove_filler_phrases,
)

__all__ = [
    "BannedWordsFilter",
    "BANNED_WORDS",
    "WORD_REPLACEMENTS",
    "VoiceEnforcer",
    "VoiceResult",
    "split_sentences",
    "DEFAULT_WORD_LIMIT",
    "cap_words",
    "refine_executive_text",
    "remove_filler_phrases",
]
