"""
Final result assembly: confidence estimate plus diagnostic trail.
"""
import logging
from typing import Optional, Sequence

from water_meter.models.reading import RawOcrText
from water_meter.models.result import MeterType, WaterMeterResult
from water_meter.ocr.normalizer import normalize_text

logger = logging.getLogger(__name__)


def estimate_confidence(reading: str) -> float:
    """
    Coarse confidence bucket for a reading.

    This is a heuristic, not a calibrated probability: a leading "000" is
    typical of the odometer-style wheels, and 5 to 7 digits is the usual
    length of a water meter counter.
    """
    if not reading:
        return 0.0
    if reading.startswith("000"):
        return 0.9
    if 5 <= len(reading) <= 7:
        return 0.7
    return 0.3


def assemble_result(
    reading: str,
    variant_readings: Sequence[str],
    raw_texts: Sequence[RawOcrText] = (),
    diagnostics: Sequence[str] = (),
    image_bytes: Optional[bytes] = None,
    annotated_image: Optional[bytes] = None,
) -> WaterMeterResult:
    """
    Build the output record for one processed image.

    Args:
        reading: Winning reading ("" when nothing was found)
        variant_readings: Extracted string per variant, in generation order
        raw_texts: Recognizer output per variant, same order
        diagnostics: Extra messages (failed variants etc.) appended to debug_info
        image_bytes: Encoded region that was fed to OCR
        annotated_image: Encoded source image with detector boxes drawn

    Returns:
        Immutable WaterMeterResult
    """
    raw_ocr_text = None
    processed_text = None
    if reading:
        # The first variant that produced the winner supplies the text trail
        for index, variant_reading in enumerate(variant_readings):
            if variant_reading == reading and index < len(raw_texts):
                raw_ocr_text = raw_texts[index].text
                processed_text = normalize_text(raw_ocr_text)
                break

    confidence = estimate_confidence(reading)
    logger.info(f"Assembled result: reading='{reading}', confidence={confidence}")

    return WaterMeterResult(
        reading=reading,
        confidence=confidence,
        image_bytes=image_bytes,
        annotated_image=annotated_image,
        debug_info=tuple(variant_readings) + tuple(diagnostics),
        raw_ocr_text=raw_ocr_text,
        processed_text=processed_text,
        meter_type=MeterType.from_reading(reading),
    )
