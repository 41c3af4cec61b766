"""Data models package."""

from .detection import BoundingBox, DetectionResult
from .reading import Candidate, PreprocessingVariant, RawOcrText
from .result import MeterType, WaterMeterResult

__all__ = [
    "BoundingBox",
    "DetectionResult",
    "Candidate",
    "PreprocessingVariant",
    "RawOcrText",
    "MeterType",
    "WaterMeterResult",
]
