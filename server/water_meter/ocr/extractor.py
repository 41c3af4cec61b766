"""
Candidate extraction: pulls digit runs out of normalized OCR text.
"""
import logging
import re
from typing import List, Optional

from water_meter.models.reading import Candidate
from water_meter.ocr.normalizer import normalize_text
from water_meter.ocr.scoring import UNIT_MARKERS, select_best_candidate

logger = logging.getLogger(__name__)

DIGIT_RUN = re.compile(r"[0-9]+")

# Exact lengths taken immediately, in this order of preference
PREFERRED_LENGTHS = (5, 4)


def has_unit_marker(text: str) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in UNIT_MARKERS)


def _keep_line(line: str) -> bool:
    """Lines with letters are labels or model plates, unless they carry the m3 unit."""
    if any(ch.isalpha() for ch in line):
        return has_unit_marker(line)
    return True


def find_candidates(normalized_text: str, variant: Optional[str] = None) -> List[Candidate]:
    """
    Collect every maximal digit run from the lines that survive filtering.

    Args:
        normalized_text: OCR text after look-alike correction
        variant: Preprocessing variant the text came from (provenance only)

    Returns:
        Candidates in scan order (line by line, left to right)
    """
    if not normalized_text:
        return []

    candidates: List[Candidate] = []
    offset = 0
    for line_index, line in enumerate(normalized_text.split("\n")):
        if _keep_line(line):
            for match in DIGIT_RUN.finditer(line):
                candidates.append(
                    Candidate(
                        text=match.group(0),
                        start=offset + match.start(),
                        line_index=line_index,
                        variant=variant,
                    )
                )
        offset += len(line) + 1
    return candidates


def pick_candidate(
    candidates: List[Candidate],
    normalized_text: str,
    raw_text: Optional[str] = None,
) -> Optional[Candidate]:
    """
    Choose one candidate: first 5-digit run, else first 4-digit run, else the
    best by the weighted score.
    """
    if not candidates:
        return None

    for length in PREFERRED_LENGTHS:
        for candidate in candidates:
            if len(candidate.text) == length:
                return candidate

    return select_best_candidate(candidates, normalized_text, raw_text)


def extract_reading(raw_text: str, variant: Optional[str] = None) -> str:
    """
    Turn the raw text of one variant into its best reading string.

    Returns:
        The winning digit string, or "" when the text holds no usable digits
    """
    if not raw_text:
        return ""

    normalized = normalize_text(raw_text)
    candidates = find_candidates(normalized, variant=variant)
    best = pick_candidate(candidates, normalized, raw_text)

    if best is None:
        logger.info(f"No digit runs found for variant '{variant}' in: {raw_text[:50]!r}")
        return ""

    logger.info(
        f"Variant '{variant}': selected {best.text} from "
        f"{[c.text for c in candidates]}"
    )
    return best.text
