"""
Meter-window detection collaborator.

The detector only proposes boxes; NMS and cropping happen in this package so
that any backend producing (box, confidence) pairs can be plugged in.
"""
import logging
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

import numpy as np
from PIL import Image

from water_meter.detection.geometry import clamp_box
from water_meter.models.detection import BoundingBox

logger = logging.getLogger(__name__)

DEFAULT_LABEL = "Water"


class Detector(Protocol):
    """Anything that proposes meter-window boxes for an image."""

    def detect(self, image: Image.Image) -> List[BoundingBox]:
        ...


def decode_yolo_output(
    output: Sequence[Sequence[float]],
    image_width: int,
    image_height: int,
    confidence_threshold: float = 0.3,
    label: str = DEFAULT_LABEL,
) -> List[BoundingBox]:
    """
    Convert a raw single-class YOLO head into pixel boxes.

    Public helper for tensor backends (TFLite, ONNX) that return the bare
    output head. `YoloDetector` does not need it: ultralytics already
    returns decoded boxes.

    Args:
        output: Channel-major array of shape (5, N): x-center, y-center,
            width, height (all normalized to [0, 1]) and confidence
        image_width: Source image width in pixels
        image_height: Source image height in pixels
        confidence_threshold: Boxes scoring at or below this are dropped
        label: Label attached to every decoded box

    Returns:
        Boxes clamped to the image bounds, in output order
    """
    arr = np.asarray(output, dtype=np.float32)
    if arr.ndim != 2 or arr.shape[0] < 5:
        raise ValueError(f"Expected output of shape (5, N), got {arr.shape}")

    x_c, y_c, w, h, conf = arr[0], arr[1], arr[2], arr[3], arr[4]
    boxes: List[BoundingBox] = []

    for i in np.flatnonzero(conf > confidence_threshold):
        xc = float(x_c[i]) * image_width
        yc = float(y_c[i]) * image_height
        bw = float(w[i]) * image_width
        bh = float(h[i]) * image_height

        x1 = int(min(max(xc - bw / 2, 0.0), image_width))
        y1 = int(min(max(yc - bh / 2, 0.0), image_height))
        x2 = int(min(max(xc + bw / 2, 0.0), image_width))
        y2 = int(min(max(yc + bh / 2, 0.0), image_height))

        boxes.append(
            BoundingBox(x1=x1, y1=y1, x2=x2, y2=y2, confidence=float(conf[i]), label=label)
        )

    return boxes


def crop_to_box(image: Image.Image, box: BoundingBox) -> Image.Image:
    """Crop the image to a box clamped to its bounds."""
    clamped = clamp_box(box, image.width, image.height)
    return image.crop((clamped.x1, clamped.y1, clamped.x2, clamped.y2))


class YoloDetector:
    """Meter-window detector backed by an ultralytics YOLO model."""

    def __init__(self, model_path: Optional[str] = None, confidence_threshold: float = 0.3):
        from ultralytics import YOLO

        if model_path and Path(model_path).exists():
            self.model = YOLO(model_path)
            logger.info(f"YOLO detector initialized with custom model: {model_path}")
        else:
            if model_path:
                logger.warning(f"YOLO model not found at {model_path}, using pre-trained yolov8n.pt")
            self.model = YOLO("yolov8n.pt")
            logger.info("YOLO detector initialized (using pre-trained model)")
        self.confidence_threshold = confidence_threshold

    def detect(self, image: Image.Image) -> List[BoundingBox]:
        results = self.model(image, verbose=False)
        if not results:
            return []

        result = results[0]
        if result.boxes is None or len(result.boxes) == 0:
            return []

        names = getattr(result, "names", None) or {}
        width, height = image.size
        boxes: List[BoundingBox] = []

        for box in result.boxes:
            conf = float(box.conf[0].cpu().numpy())
            if conf <= self.confidence_threshold:
                continue
            x1, y1, x2, y2 = box.xyxy[0].cpu().numpy()
            cls_id = int(box.cls[0].cpu().numpy()) if box.cls is not None else None
            label = names.get(cls_id, DEFAULT_LABEL) if cls_id is not None else DEFAULT_LABEL
            boxes.append(
                BoundingBox(
                    x1=int(x1), y1=int(y1), x2=int(x2), y2=int(y2),
                    confidence=conf, label=label,
                ).clamped(width, height)
            )

        logger.info(f"YOLO proposed {len(boxes)} boxes above confidence {self.confidence_threshold}")
        return boxes
