"""
OCR text normalizer.
Corrects letters that OCR engines commonly return in place of digits.
"""
import logging
from typing import Tuple

logger = logging.getLogger(__name__)

# Applied in order; mapping is case-sensitive ("d" and "z" stay untouched).
CONFUSION_TABLE: Tuple[Tuple[str, str], ...] = (
    ("O", "0"),
    ("o", "0"),
    ("D", "0"),
    ("I", "1"),
    ("l", "1"),
    ("S", "5"),
    ("s", "5"),
    ("Z", "2"),
    ("B", "8"),
)

_TRANSLATION = str.maketrans(dict(CONFUSION_TABLE))


def normalize_text(raw_text: str) -> str:
    """
    Replace digit look-alike letters in raw OCR text.

    The substitution is one character for one character, so offsets in the
    normalized text line up with offsets in the raw text.

    Args:
        raw_text: Text returned by the recognition engine

    Returns:
        Text with look-alike letters replaced by digits
    """
    if not raw_text:
        return ""
    normalized = raw_text.translate(_TRANSLATION)
    if normalized != raw_text:
        logger.debug(f"Normalized OCR text: {raw_text[:50]!r} -> {normalized[:50]!r}")
    return normalized
