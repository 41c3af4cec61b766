import logging
from typing import Optional

import httpx
from PIL import Image

from water_meter.errors import RecognitionFailure
from water_meter.ocr.annotate import encode_jpeg

logger = logging.getLogger(__name__)


class RemoteRecognizer:
    """
    Cloud OCR endpoint that reads a cropped meter window.

    The endpoint takes a multipart upload in field `image` and answers
    `{"status_code": 0, "data": {"success": true, "result": "<text>"}}`.
    """

    name = "remote"
    reentrant = True

    def __init__(self, url: str, timeout: float = 15.0, client: Optional[httpx.Client] = None):
        if not url:
            raise ValueError("Remote OCR requires OCR_REMOTE_URL")
        self.url = url
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout, connect=4.0))

    def close(self) -> None:
        self._client.close()

    def recognize(self, image: Image.Image) -> str:
        files = {"image": ("meter.jpg", encode_jpeg(image), "image/jpeg")}
        try:
            response = self._client.post(self.url, files=files)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise RecognitionFailure(f"Remote OCR request failed: {e}") from e

        if not isinstance(payload, dict):
            raise RecognitionFailure(f"Remote OCR returned unexpected payload: {str(payload)[:200]}")
        data = payload.get("data")
        if payload.get("status_code") != 0 or not isinstance(data, dict) or data.get("success") is not True:
            raise RecognitionFailure(f"Remote OCR returned no result: {str(payload)[:200]}")

        result = data.get("result") or ""
        logger.info(f"Remote OCR result: {result!r}")
        return str(result)
