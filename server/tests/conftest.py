import io
import threading
from dataclasses import replace
from typing import Callable, List, Optional, Tuple

import pytest
from PIL import Image

from water_meter.config import Settings
from water_meter.models.detection import BoundingBox

SOURCE_SIZE = (100, 80)
CENTER_CROP_SIZE = (48, 48)  # int(min(100, 80) * 0.6)
HIGH_CONTRAST_SIZE = (800, 600)


def encode_image(size: Tuple[int, int] = SOURCE_SIZE, color=(200, 200, 200), fmt: str = "JPEG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


class StubRecognizer:
    """Deterministic recognizer: maps each image to text through a callable."""

    name = "stub"

    def __init__(self, text_for: Callable[[Image.Image], str], reentrant: bool = True):
        self.text_for = text_for
        self.reentrant = reentrant
        self.seen_sizes: List[Tuple[int, int]] = []
        self._lock = threading.Lock()
        self.in_flight = 0
        self.max_in_flight = 0

    def recognize(self, image: Image.Image) -> str:
        with self._lock:
            self.seen_sizes.append(image.size)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            return self.text_for(image)
        finally:
            with self._lock:
                self.in_flight -= 1


class StubDetector:
    def __init__(self, boxes: Optional[List[BoundingBox]] = None, error: Optional[Exception] = None):
        self.boxes = boxes or []
        self.error = error

    def detect(self, image: Image.Image) -> List[BoundingBox]:
        if self.error is not None:
            raise self.error
        return list(self.boxes)


@pytest.fixture
def settings(monkeypatch) -> Settings:
    for name in ("OCR_ENGINE", "NMS_IOU_THRESHOLD", "DETECT_BEFORE_OCR", "MAX_CONCURRENT_RECOGNITIONS"):
        monkeypatch.delenv(name, raising=False)
    return Settings.from_env()


@pytest.fixture
def make_settings(settings) -> Callable[..., Settings]:
    def _make(**overrides) -> Settings:
        return replace(settings, **overrides)
    return _make


@pytest.fixture
def jpeg_bytes() -> bytes:
    return encode_image()
