import logging

import cv2
import numpy as np
from paddleocr import PaddleOCR
from PIL import Image

from water_meter.errors import RecognitionFailure
from water_meter.ocr.engines.base import join_text_boxes

logger = logging.getLogger(__name__)


class PaddleOCRRecognizer:
    """PaddleOCR (det + cls + rec), the most accurate engine for digit wheels."""

    name = "paddle"
    reentrant = False

    def __init__(self, lang: str = "en"):
        self.reader = PaddleOCR(
            use_angle_cls=True,
            lang=lang,
            use_gpu=False,
            show_log=False,
        )
        logger.info("PaddleOCR initialized successfully")

    def recognize(self, image: Image.Image) -> str:
        bgr = cv2.cvtColor(np.array(image.convert("RGB")), cv2.COLOR_RGB2BGR)
        try:
            result = self.reader.ocr(bgr, cls=True)
        except Exception as e:
            raise RecognitionFailure(f"PaddleOCR failed: {e}") from e

        if not result or not result[0]:
            logger.info("PaddleOCR found no text")
            return ""

        boxes = []
        for line in result[0]:
            if not line:
                continue
            bbox, (text, _confidence) = line
            boxes.append((bbox, text))
        return join_text_boxes(boxes)
