"""
Non-maximum suppression over detector boxes.
"""
import logging
from typing import Iterable, List, Tuple

from water_meter.detection.geometry import iou
from water_meter.models.detection import BoundingBox

logger = logging.getLogger(__name__)

DEFAULT_IOU_THRESHOLD = 0.45


def non_max_suppression(
    boxes: Iterable[BoundingBox],
    iou_threshold: float = DEFAULT_IOU_THRESHOLD,
) -> Tuple[BoundingBox, ...]:
    """
    Reduce overlapping detections to a minimal set.

    Boxes are visited in descending confidence (stable for ties). Each box
    still active is kept, and every later active box whose IoU with it is
    strictly greater than `iou_threshold` is dropped.

    Args:
        boxes: Raw detector boxes in any order
        iou_threshold: Overlap above which a lower-confidence box is suppressed

    Returns:
        Kept boxes in selection order (highest confidence first)
    """
    ordered: List[BoundingBox] = sorted(boxes, key=lambda b: b.confidence, reverse=True)
    if not ordered:
        return ()

    active = [True] * len(ordered)
    selected: List[BoundingBox] = []

    for i, box in enumerate(ordered):
        if not active[i]:
            continue
        selected.append(box)
        for j in range(i + 1, len(ordered)):
            if active[j] and iou(box, ordered[j]) > iou_threshold:
                active[j] = False

    logger.debug(f"NMS kept {len(selected)} of {len(ordered)} boxes (iou > {iou_threshold} suppressed)")
    return tuple(selected)
