"""
Final output record of the meter reading pipeline.
"""
import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class MeterType(str, Enum):
    """Coarse meter family guessed from the number of digits in the reading."""

    FOUR_DIGIT = "four_digit"
    SEVEN_DIGIT = "seven_digit"
    UNKNOWN = "unknown"

    @classmethod
    def from_reading(cls, reading: str) -> Optional["MeterType"]:
        if not reading:
            return None
        digit_count = sum(1 for ch in reading if ch.isdigit())
        if digit_count <= 4:
            return cls.FOUR_DIGIT
        if digit_count >= 7:
            return cls.SEVEN_DIGIT
        return cls.UNKNOWN


def _b64(data: Optional[bytes]) -> Optional[str]:
    if data is None:
        return None
    return base64.b64encode(data).decode("ascii")


def _unb64(data: Optional[str]) -> Optional[bytes]:
    if data is None:
        return None
    return base64.b64decode(data)


@dataclass(frozen=True)
class WaterMeterResult:
    """Reading extracted from one image, built once and never mutated."""

    reading: str
    confidence: float  # Coarse heuristic in [0, 1], not a calibrated probability
    image_bytes: Optional[bytes] = None  # JPEG of the region fed to OCR
    annotated_image: Optional[bytes] = None  # JPEG of the source with detector boxes
    debug_info: Optional[Tuple[str, ...]] = None  # Per-variant extracted strings
    raw_ocr_text: Optional[str] = None
    processed_text: Optional[str] = None
    meter_type: Optional[MeterType] = field(default=None)

    @classmethod
    def empty(cls, message: Optional[str] = None) -> "WaterMeterResult":
        """Result for an image where nothing could be read."""
        return cls(
            reading="",
            confidence=0.0,
            debug_info=(message,) if message else None,
        )

    @property
    def has_reading(self) -> bool:
        return bool(self.reading)

    def to_dict(self) -> dict:
        return {
            "reading": self.reading,
            "confidence": self.confidence,
            "image_bytes": _b64(self.image_bytes),
            "annotated_image": _b64(self.annotated_image),
            "debug_info": list(self.debug_info) if self.debug_info is not None else None,
            "raw_ocr_text": self.raw_ocr_text,
            "processed_text": self.processed_text,
            "meter_type": self.meter_type.value if self.meter_type else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WaterMeterResult":
        debug_info: Optional[List[str]] = data.get("debug_info")
        meter_type = data.get("meter_type")
        return cls(
            reading=data["reading"],
            confidence=float(data["confidence"]),
            image_bytes=_unb64(data.get("image_bytes")),
            annotated_image=_unb64(data.get("annotated_image")),
            debug_info=tuple(debug_info) if debug_info is not None else None,
            raw_ocr_text=data.get("raw_ocr_text"),
            processed_text=data.get("processed_text"),
            meter_type=MeterType(meter_type) if meter_type else None,
        )
