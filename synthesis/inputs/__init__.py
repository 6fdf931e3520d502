"""Input normalization for synthesis runs."""

from synthesis.inputs.normalizer import (
    ALL_MODULES,
    InputNormalizer,
    canonical_code,
    code_aliases,
    decode_citations,
    decode_payload,
    normalize,
)

__all__ = [
    "ALL_MODULES",
    "InputNormalizer",
    "canonical_code",
    "code_aliases",
    "decode_citations",
    "decode_payload",
    "normalize",
]
