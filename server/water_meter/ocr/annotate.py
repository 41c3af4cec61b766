"""
Debug imagery: detector boxes drawn on the source, JPEG encoding.
"""
import io
from typing import Iterable

import cv2
import numpy as np
from PIL import Image

from water_meter.models.detection import BoundingBox

BOX_COLOR = (0, 255, 0)  # RGB
BOX_THICKNESS = 2


def annotate_boxes(image: Image.Image, boxes: Iterable[BoundingBox]) -> Image.Image:
    """Return a copy of the image with each box and its `label: NN.N%` caption drawn."""
    canvas = np.array(image.convert("RGB"))
    for box in boxes:
        cv2.rectangle(canvas, (box.x1, box.y1), (box.x2, box.y2), BOX_COLOR, BOX_THICKNESS)
        caption = f"{box.label or 'box'}: {box.confidence * 100:.1f}%"
        cv2.putText(
            canvas, caption, (box.x1, max(12, box.y1 - 6)),
            cv2.FONT_HERSHEY_SIMPLEX, 0.5, BOX_COLOR, 1, cv2.LINE_AA,
        )
    return Image.fromarray(canvas)


def encode_jpeg(image: Image.Image, quality: int = 95) -> bytes:
    buffer = io.BytesIO()
    image.convert("RGB").save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()
