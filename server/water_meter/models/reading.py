"""
Intermediate records passed between pipeline stages.
"""
from dataclasses import dataclass
from typing import Optional

from PIL import Image

from water_meter.errors import RecognitionFailure


@dataclass(frozen=True)
class PreprocessingVariant:
    """One transformed view of the source image."""

    name: str  # "original", "high_contrast", "threshold" or "center_crop"
    image: Image.Image


@dataclass(frozen=True)
class RawOcrText:
    """Unstructured text returned by the recognizer for one variant."""

    variant: str
    text: str
    error: Optional[RecognitionFailure] = None  # Set when the recognizer call failed

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class Candidate:
    """A digit run pulled out of normalized OCR text."""

    text: str
    start: int  # Offset of the first digit in the whole normalized text
    line_index: int
    variant: Optional[str] = None

    @property
    def end(self) -> int:
        return self.start + len(self.text)

    @property
    def value(self) -> Optional[int]:
        try:
            return int(self.text)
        except ValueError:
            return None
