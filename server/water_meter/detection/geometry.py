"""
Box geometry helpers used by NMS and cropping.
"""
from water_meter.models.detection import BoundingBox


def intersection_area(a: BoundingBox, b: BoundingBox) -> int:
    """Area of the overlap of two boxes, 0 when they do not overlap."""
    inter_w = min(a.x2, b.x2) - max(a.x1, b.x1)
    inter_h = min(a.y2, b.y2) - max(a.y1, b.y1)
    if inter_w <= 0 or inter_h <= 0:
        return 0
    return inter_w * inter_h


def iou(a: BoundingBox, b: BoundingBox) -> float:
    """
    Intersection-over-Union of two boxes.

    Returns:
        Overlap ratio in [0, 1]; 0 for disjoint, touching or degenerate boxes.
    """
    inter = intersection_area(a, b)
    if inter == 0:
        return 0.0
    union = a.area + b.area - inter
    if union <= 0:
        return 0.0
    return inter / union


def contains(outer: BoundingBox, inner: BoundingBox) -> bool:
    """True when `inner` lies completely inside `outer` (edges may touch)."""
    return (
        outer.x1 <= inner.x1
        and outer.y1 <= inner.y1
        and inner.x2 <= outer.x2
        and inner.y2 <= outer.y2
    )


def clamp_box(box: BoundingBox, image_width: int, image_height: int) -> BoundingBox:
    """Clamp box corners to an image of the given size."""
    return box.clamped(image_width, image_height)
