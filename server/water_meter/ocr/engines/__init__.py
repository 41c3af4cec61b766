import logging
from typing import Optional

from water_meter.config import Settings
from .base import TextRecognizer, join_text_boxes

logger = logging.getLogger(__name__)

# Order tried by "auto": best digit accuracy first
AUTO_ORDER = ("paddle", "easyocr", "tesseract")


def _build(name: str, settings: Settings) -> TextRecognizer:
    if name == "paddle":
        from .paddle_engine import PaddleOCRRecognizer
        return PaddleOCRRecognizer()
    if name == "easyocr":
        from .easyocr_engine import EasyOCRRecognizer
        return EasyOCRRecognizer()
    if name == "tesseract":
        from .tesseract_engine import TesseractRecognizer
        return TesseractRecognizer()
    if name == "remote":
        from .remote_engine import RemoteRecognizer
        return RemoteRecognizer(settings.ocr_remote_url, timeout=settings.ocr_remote_timeout)
    raise ValueError(f"Unknown OCR engine: '{name}'")


def make_recognizer(name: Optional[str] = None, settings: Optional[Settings] = None) -> TextRecognizer:
    """
    Factory. Supported names:
      - 'auto' (default): paddle, then easyocr, then tesseract
      - 'paddle' (requires the paddle extra)
      - 'easyocr'
      - 'tesseract'
      - 'remote' (requires OCR_REMOTE_URL)
    """
    settings = settings or Settings.from_env()
    n = (name or settings.ocr_engine or "auto").strip().lower()
    if n != "auto":
        return _build(n, settings)

    for candidate in AUTO_ORDER:
        try:
            recognizer = _build(candidate, settings)
            logger.info(f"Using OCR engine: {candidate}")
            return recognizer
        except Exception as e:
            logger.warning(f"Failed to initialize {candidate}: {e}. Trying next engine.")
    raise RuntimeError(f"No OCR engine available (tried {', '.join(AUTO_ORDER)})")


__all__ = [
    "TextRecognizer",
    "join_text_boxes",
    "make_recognizer",
]
