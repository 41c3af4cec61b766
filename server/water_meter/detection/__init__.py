"""Meter-window detection: geometry, NMS and detector backends."""
from .detector import Detector, YoloDetector, crop_to_box, decode_yolo_output
from .geometry import contains, iou
from .nms import DEFAULT_IOU_THRESHOLD, non_max_suppression

__all__ = [
    "Detector",
    "YoloDetector",
    "crop_to_box",
    "decode_yolo_output",
    "contains",
    "iou",
    "DEFAULT_IOU_THRESHOLD",
    "non_max_suppression",
]
