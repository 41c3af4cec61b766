"""
Error taxonomy for the meter reading pipeline.

None of these reach the caller of the processor: each one is caught where the
pipeline can degrade to an empty or low-confidence result.
"""
from typing import Optional


class MeterReadingError(Exception):
    """Base class for all pipeline errors."""


class DecodeFailure(MeterReadingError, ValueError):
    """Image bytes could not be decoded into a pixel buffer."""


class RecognitionFailure(MeterReadingError):
    """The text-recognition engine failed for one preprocessing variant."""

    def __init__(self, message: str, variant: Optional[str] = None):
        super().__init__(message)
        self.variant = variant


class NoCandidateFound(MeterReadingError):
    """No digit run survived filtering in any variant."""
