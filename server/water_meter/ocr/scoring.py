"""
Heuristic scoring of reading hypotheses.

Two independent scales are used:
- a coarse score that ranks the per-variant winners against each other, and
- a fine score that ranks digit runs inside one recognized text when no run
  has the preferred length.
The weights are fixed constants; higher wins and ties keep the first seen.
"""
import logging
import re
from typing import List, Optional, Sequence

from water_meter.models.reading import Candidate

logger = logging.getLogger(__name__)

MAX_READING_VALUE = 9_999_999
CONTEXT_WINDOW = 20

UNIT_MARKERS = ("m3", "m³")
BRACKET_GLYPHS = ("□", "■", "[", "]")
TECHNICAL_KEYWORDS = ("mm", "bar", "pn", "dn", "kg", "mpa", "cert", "no")
BRAND_TOKENS = (
    "itron", "sensus", "elster", "zenner", "kamstrup", "diehl", "apator",
    "actaris", "maddalena", "badger", "neptune", "arad", "baylan",
)

YEAR_RANGE = (2000, 2030)

_FIVE_DIGITS = re.compile(r"^\d{5}$")
_FOUR_DIGITS = re.compile(r"^\d{4}$")


def _word_pattern(words: Sequence[str]) -> "re.Pattern[str]":
    # Letters must not continue the word; digits may ("DN25", "PN16").
    alternatives = "|".join(re.escape(w) for w in words)
    return re.compile(rf"(?<![a-z])(?:{alternatives})(?![a-z])")


_TECHNICAL_PATTERN = _word_pattern(TECHNICAL_KEYWORDS)
_BRAND_PATTERN = _word_pattern(BRAND_TOKENS)


def _parse_value(text: str) -> Optional[int]:
    try:
        return int(text)
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Cross-variant (coarse) scoring
# ---------------------------------------------------------------------------

def score_variant_result(result: str) -> float:
    """Coarse score for the reading one preprocessing variant produced."""
    score = 0.0
    length = len(result)
    if length >= 6:
        score += 50.0
    elif length >= 4:
        score += 30.0
    elif length >= 3:
        score += 10.0

    value = _parse_value(result)
    if value is not None and 0 < value <= MAX_READING_VALUE:
        score += 25.0

    # Calendar years show up on meter plates
    if not result.startswith("20") and "2024" not in result:
        score += 15.0

    return score


def select_best_reading(results: Sequence[str]) -> str:
    """
    Pick one reading from the per-variant results, given in generation order.

    A 5-digit result wins outright, then a 4-digit one; otherwise the coarse
    score decides and the earliest variant wins ties.

    Returns:
        The winning reading, or "" when every variant came back empty
    """
    valid = [r for r in results if r]
    if not valid:
        return ""

    for pattern in (_FIVE_DIGITS, _FOUR_DIGITS):
        for result in valid:
            if pattern.match(result):
                return result

    if len(valid) == 1:
        return valid[0]

    best = valid[0]
    best_score = score_variant_result(best)
    scores = {best: best_score}
    for result in valid[1:]:
        score = score_variant_result(result)
        scores.setdefault(result, score)
        if score > best_score:
            best, best_score = result, score

    logger.info(f"Multiple OCR results scores: {scores}")
    return best


# ---------------------------------------------------------------------------
# Within-text (fine) scoring
# ---------------------------------------------------------------------------

def _length_score(length: int) -> float:
    if length in (6, 7):
        return 100.0
    if length == 5:
        return 80.0
    if length == 4:
        return 60.0
    if length == 3:
        return 20.0
    if length >= 8:
        return -30.0
    return 0.0


def _line_of(text: str, position: int) -> str:
    line_start = text.rfind("\n", 0, position) + 1
    line_end = text.find("\n", position)
    if line_end == -1:
        line_end = len(text)
    return text[line_start:line_end]


def _joined_by_separator(text: str, start: int, end: int) -> bool:
    """True when the run is glued to more digits by '-' or '.' (serials, model codes)."""
    if start >= 2 and text[start - 1] in "-." and text[start - 2].isdigit():
        return True
    if end + 1 < len(text) and text[end] in "-." and text[end + 1].isdigit():
        return True
    return False


def _adjacent_letter(text: str, start: int, end: int) -> bool:
    before = text[start - 1] if start > 0 else ""
    after = text[end] if end < len(text) else ""
    return before.isalpha() or after.isalpha()


def score_candidate(
    candidate: Candidate,
    normalized_text: str,
    raw_text: Optional[str] = None,
) -> float:
    """
    Fine score for one digit run inside the text it was extracted from.

    Context keywords are matched against the raw text when it is available
    (normalization rewrites letters such as "DN" or "No"); offsets are shared
    because normalization maps one character to one character.

    Args:
        candidate: Digit run with its offset in `normalized_text`
        normalized_text: Text the candidate was extracted from
        raw_text: Text before look-alike correction, same length

    Returns:
        Additive score, higher is more likely the meter reading
    """
    context_source = normalized_text
    if raw_text is not None and len(raw_text) == len(normalized_text):
        context_source = raw_text

    text = candidate.text
    start, end = candidate.start, candidate.end
    window = context_source[max(0, start - CONTEXT_WINDOW):end + CONTEXT_WINDOW]
    window_lower = window.lower()
    value = _parse_value(text)

    score = _length_score(len(text))

    if any(marker in window_lower for marker in UNIT_MARKERS):
        score += 50.0

    if any(glyph in window for glyph in BRACKET_GLYPHS):
        score += 40.0

    if _joined_by_separator(normalized_text, start, end):
        score -= 80.0

    if _adjacent_letter(normalized_text, start, end):
        score -= 30.0

    if _TECHNICAL_PATTERN.search(window_lower):
        score -= 40.0

    if value is not None and YEAR_RANGE[0] <= value <= YEAR_RANGE[1]:
        score -= 60.0

    if _BRAND_PATTERN.search(window_lower):
        score += 10.0

    if value is not None and 0 < value <= MAX_READING_VALUE:
        score += 15.0
    elif value == 0 and len(text) > 3:
        # All-zero readings are legitimate on new meters
        score += 5.0

    if _line_of(normalized_text, start).strip() == text:
        score += 30.0

    if text.startswith("000") and len(text) >= 6:
        score += 35.0

    return score


def select_best_candidate(
    candidates: Sequence[Candidate],
    normalized_text: str,
    raw_text: Optional[str] = None,
) -> Optional[Candidate]:
    """Highest fine score wins; the first candidate in scan order wins ties."""
    best: Optional[Candidate] = None
    best_score = float("-inf")
    scored: List[str] = []

    for candidate in candidates:
        score = score_candidate(candidate, normalized_text, raw_text)
        scored.append(f"{candidate.text}={score:g}")
        if score > best_score:
            best, best_score = candidate, score

    if scored:
        logger.debug(f"Candidate scores: {', '.join(scored)}")
    return best
