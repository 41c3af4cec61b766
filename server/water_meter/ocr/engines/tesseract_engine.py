import logging
import shutil

import pytesseract
from PIL import Image

from water_meter.errors import RecognitionFailure

logger = logging.getLogger(__name__)


class TesseractRecognizer:
    """
    Tesseract via pytesseract.

    No character whitelist: letters and units on the meter face are needed
    to tell the counter apart from plates and serial numbers.
    """

    name = "tesseract"
    reentrant = True  # Each call spawns its own tesseract process

    def __init__(self, psm: int = 6):
        tesseract_path = shutil.which("tesseract")
        if tesseract_path:
            pytesseract.pytesseract.tesseract_cmd = tesseract_path
            logger.info(f"Tesseract found at: {tesseract_path}")
        else:
            logger.warning("Tesseract not found in PATH, using default")
        self.config = f"--psm {psm}"

    def recognize(self, image: Image.Image) -> str:
        try:
            text = pytesseract.image_to_string(image, config=self.config)
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, OSError) as e:
            raise RecognitionFailure(f"Tesseract failed: {e}") from e
        return text.strip()
