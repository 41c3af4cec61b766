import os
from dataclasses import dataclass
from typing import Optional


def _get_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Recognition engine: auto | paddle | easyocr | tesseract | remote
    ocr_engine: str
    ocr_remote_url: str
    ocr_remote_timeout: float

    # Detection
    yolo_model_path: Optional[str]
    detection_confidence: float
    nms_iou_threshold: float
    detect_before_ocr: bool

    # At most one in-flight recognition call per preprocessing variant
    max_concurrent_recognitions: int

    log_level: str

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            ocr_engine=(os.getenv("OCR_ENGINE") or "auto").strip().lower(),
            ocr_remote_url=(os.getenv("OCR_REMOTE_URL") or "").strip(),
            ocr_remote_timeout=_get_float("OCR_REMOTE_TIMEOUT", 15.0),
            yolo_model_path=(os.getenv("YOLO_METER_MODEL_PATH") or "").strip() or None,
            detection_confidence=_get_float("DETECTION_CONFIDENCE", 0.3),
            nms_iou_threshold=_get_float("NMS_IOU_THRESHOLD", 0.45),
            detect_before_ocr=_get_bool("DETECT_BEFORE_OCR", False),
            max_concurrent_recognitions=max(1, min(4, _get_int("MAX_CONCURRENT_RECOGNITIONS", 4))),
            log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper() or "INFO",
        )
