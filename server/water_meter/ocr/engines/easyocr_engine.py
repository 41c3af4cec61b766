import logging
import os

import certifi
import easyocr
import numpy as np
from PIL import Image

from water_meter.errors import RecognitionFailure
from water_meter.ocr.engines.base import join_text_boxes

logger = logging.getLogger(__name__)


class EasyOCRRecognizer:
    """EasyOCR reader, English model, CPU."""

    name = "easyocr"
    reentrant = False  # torch model shared between calls

    def __init__(self, languages=("en",), gpu: bool = False):
        # Model download fails behind some SSL setups without an explicit CA bundle
        os.environ.setdefault("SSL_CERT_FILE", certifi.where())
        os.environ.setdefault("REQUESTS_CA_BUNDLE", certifi.where())

        self.reader = easyocr.Reader(list(languages), gpu=gpu, verbose=False)
        logger.info("EasyOCR initialized successfully")

    def recognize(self, image: Image.Image) -> str:
        try:
            results = self.reader.readtext(np.array(image.convert("RGB")))
        except Exception as e:
            raise RecognitionFailure(f"EasyOCR failed: {e}") from e

        if not results:
            logger.info("EasyOCR found no text")
            return ""

        return join_text_boxes([(bbox, text) for bbox, text, _conf in results])
