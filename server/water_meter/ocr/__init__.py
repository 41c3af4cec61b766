"""OCR processing module for water meter reading recognition."""
from .extractor import extract_reading, find_candidates
from .normalizer import normalize_text
from .processor import WaterMeterProcessor
from .scoring import select_best_candidate, select_best_reading

__all__ = [
    "WaterMeterProcessor",
    "extract_reading",
    "find_candidates",
    "normalize_text",
    "select_best_candidate",
    "select_best_reading",
]
