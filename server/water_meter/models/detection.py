"""
Detection models: bounding boxes produced by the meter-window detector.
"""
from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in source-image pixel coordinates."""

    x1: int
    y1: int
    x2: int
    y2: int
    confidence: float = 0.0  # Detector score in [0, 1]
    label: Optional[str] = None

    def __post_init__(self):
        if self.x1 > self.x2 or self.y1 > self.y2:
            raise ValueError(
                f"Invalid box corners: ({self.x1}, {self.y1}, {self.x2}, {self.y2})"
            )

    @property
    def width(self) -> int:
        return self.x2 - self.x1

    @property
    def height(self) -> int:
        return self.y2 - self.y1

    @property
    def area(self) -> int:
        return self.width * self.height

    def clamped(self, image_width: int, image_height: int) -> "BoundingBox":
        """Return a copy with corners clamped to the image bounds."""
        return BoundingBox(
            x1=min(max(self.x1, 0), image_width),
            y1=min(max(self.y1, 0), image_height),
            x2=min(max(self.x2, 0), image_width),
            y2=min(max(self.y2, 0), image_height),
            confidence=self.confidence,
            label=self.label,
        )

    def to_dict(self) -> dict:
        return {
            "x1": self.x1,
            "y1": self.y1,
            "x2": self.x2,
            "y2": self.y2,
            "confidence": round(float(self.confidence), 4),
            "label": self.label,
        }


@dataclass(frozen=True)
class DetectionResult:
    """Boxes surviving NMS for one detection call, highest confidence first."""

    boxes: Tuple[BoundingBox, ...] = field(default_factory=tuple)
    image_width: int = 0
    image_height: int = 0
    inference_ms: float = 0.0

    @property
    def best(self) -> Optional[BoundingBox]:
        return self.boxes[0] if self.boxes else None

    def to_dict(self) -> dict:
        return {
            "boxes": [box.to_dict() for box in self.boxes],
            "image_width": self.image_width,
            "image_height": self.image_height,
            "inference_ms": round(self.inference_ms, 2),
        }
