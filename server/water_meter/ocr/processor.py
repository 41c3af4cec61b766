"""
OCR processing pipeline for water meter reading recognition.

source image -> four preprocessing variants -> recognizer (one call per
variant, concurrently) -> normalizer -> candidate extraction -> cross-variant
selection -> result assembly.

Optionally a detector first locates the meter window; its boxes go through
NMS and the best one is cropped before the text pipeline runs.
"""
import asyncio
import logging
import threading
import time
from typing import List, Optional, Sequence

from PIL import Image

from water_meter.config import Settings
from water_meter.detection.detector import Detector, crop_to_box
from water_meter.detection.nms import non_max_suppression
from water_meter.errors import DecodeFailure, NoCandidateFound, RecognitionFailure
from water_meter.models.detection import DetectionResult
from water_meter.models.reading import PreprocessingVariant, RawOcrText
from water_meter.models.result import WaterMeterResult
from water_meter.ocr.annotate import annotate_boxes, encode_jpeg
from water_meter.ocr.assembler import assemble_result
from water_meter.ocr.engines.base import TextRecognizer
from water_meter.ocr.extractor import extract_reading
from water_meter.ocr.preprocess import decode_image, generate_variants
from water_meter.ocr.scoring import select_best_reading

logger = logging.getLogger(__name__)


class WaterMeterProcessor:
    """
    Reads one meter image per call.

    The processor keeps no per-request state: the injected recognizer (and
    optional detector) are the only things shared between concurrent calls.
    """

    def __init__(
        self,
        recognizer: TextRecognizer,
        detector: Optional[Detector] = None,
        settings: Optional[Settings] = None,
    ):
        self.recognizer = recognizer
        self.detector = detector
        self.settings = settings or Settings.from_env()

        # Engines that are not reentrant get one call at a time, across requests
        self._engine_lock = None if getattr(recognizer, "reentrant", True) else threading.Lock()

        logger.info(
            f"WaterMeterProcessor initialized (engine={getattr(recognizer, 'name', type(recognizer).__name__)}, "
            f"detector={'yes' if detector is not None else 'no'})"
        )

    # ------------------------------------------------------------------
    # Recognition
    # ------------------------------------------------------------------

    def _recognize_variant(self, variant: PreprocessingVariant) -> RawOcrText:
        """Run the recognizer on one variant; any failure becomes empty text."""
        try:
            if self._engine_lock is not None:
                with self._engine_lock:
                    text = self.recognizer.recognize(variant.image)
            else:
                text = self.recognizer.recognize(variant.image)
        except Exception as e:
            logger.warning(f"Recognition failed for variant '{variant.name}': {e}", exc_info=True)
            failure = RecognitionFailure(str(e) or type(e).__name__, variant=variant.name)
            return RawOcrText(variant=variant.name, text="", error=failure)

        logger.info(f"OCR result for {variant.name}: {(text or '')[:100]!r}")
        return RawOcrText(variant=variant.name, text=text or "")

    async def _recognize_all(self, variants: Sequence[PreprocessingVariant]) -> List[RawOcrText]:
        semaphore = asyncio.Semaphore(self.settings.max_concurrent_recognitions)

        async def run(variant: PreprocessingVariant) -> RawOcrText:
            async with semaphore:
                return await asyncio.to_thread(self._recognize_variant, variant)

        # gather keeps generation order regardless of completion order
        return list(await asyncio.gather(*(run(v) for v in variants)))

    async def _read_image(
        self,
        image: Image.Image,
        image_bytes: Optional[bytes] = None,
        annotated_image: Optional[bytes] = None,
    ) -> WaterMeterResult:
        variants = generate_variants(image)
        raw_texts = await self._recognize_all(variants)

        variant_readings: List[str] = []
        diagnostics: List[str] = []
        for raw in raw_texts:
            if raw.failed:
                diagnostics.append(f"{raw.error.variant}: recognition failed: {raw.error}")
                variant_readings.append("")
                continue
            variant_readings.append(extract_reading(raw.text, variant=raw.variant))

        logger.info(f"Per-variant readings: {dict(zip([v.name for v in variants], variant_readings))}")

        try:
            reading = self._select_reading(variant_readings)
        except NoCandidateFound as e:
            logger.warning(str(e))
            diagnostics.append(str(e))
            reading = ""

        return assemble_result(
            reading,
            variant_readings,
            raw_texts=raw_texts,
            diagnostics=diagnostics,
            image_bytes=image_bytes,
            annotated_image=annotated_image,
        )

    @staticmethod
    def _select_reading(variant_readings: Sequence[str]) -> str:
        reading = select_best_reading(variant_readings)
        if not reading:
            raise NoCandidateFound("No digit candidates found in any variant")
        return reading

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def aprocess_reading(self, image_bytes: bytes) -> WaterMeterResult:
        """
        Read a meter value from encoded image bytes.

        Never raises: undecodable images and engine errors produce an empty
        result with the reason in `debug_info`.
        """
        try:
            image = decode_image(image_bytes)
        except DecodeFailure as e:
            logger.error(f"Could not decode image: {e}")
            return WaterMeterResult.empty("Failed to decode image")

        try:
            return await self._read_image(image)
        except Exception as e:
            logger.error(f"OCR processing failed: {str(e)}", exc_info=True)
            return WaterMeterResult.empty(f"Error processing image: {e}")

    def process_reading(self, image_bytes: bytes) -> WaterMeterResult:
        """Blocking form of `aprocess_reading` for callers without an event loop."""
        return asyncio.run(self.aprocess_reading(image_bytes))

    def detect_image(self, image: Image.Image) -> DetectionResult:
        """Run the detector on a decoded image and suppress overlapping boxes."""
        if self.detector is None:
            raise RuntimeError("No detector configured")

        start_time = time.time()
        raw_boxes = self.detector.detect(image)
        boxes = non_max_suppression(
            (box.clamped(image.width, image.height) for box in raw_boxes),
            self.settings.nms_iou_threshold,
        )
        elapsed_ms = (time.time() - start_time) * 1000

        logger.info(f"Detection: {len(raw_boxes)} raw boxes, {len(boxes)} after NMS ({elapsed_ms:.1f} ms)")
        return DetectionResult(
            boxes=boxes,
            image_width=image.width,
            image_height=image.height,
            inference_ms=elapsed_ms,
        )

    def detect(self, image_bytes: bytes) -> DetectionResult:
        """
        Detect meter windows in encoded image bytes.

        Raises:
            DecodeFailure: image bytes are unreadable
            RuntimeError: no detector was configured
        """
        return self.detect_image(decode_image(image_bytes))

    async def aprocess_meter_image(self, image_bytes: bytes) -> WaterMeterResult:
        """
        Detect the meter window, crop the best box and read it.

        Without a detector, or when nothing is detected, the whole image is
        read instead.
        """
        try:
            image = decode_image(image_bytes)
        except DecodeFailure as e:
            logger.error(f"Could not decode image: {e}")
            return WaterMeterResult.empty("Failed to decode image")

        try:
            region = image
            annotated = None
            if self.detector is not None:
                try:
                    detection = await asyncio.to_thread(self.detect_image, image)
                except Exception as e:
                    logger.warning(f"Detection failed: {e}. Reading the whole image.", exc_info=True)
                    detection = None

                if detection is not None and detection.best is not None and detection.best.area > 0:
                    box = detection.best
                    logger.info(f"Cropping to detected box {box.to_dict()}")
                    region = crop_to_box(image, box)
                    annotated = encode_jpeg(annotate_boxes(image, detection.boxes))
                else:
                    logger.info("No meter window detected, reading the whole image")

            return await self._read_image(
                region,
                image_bytes=encode_jpeg(region),
                annotated_image=annotated,
            )
        except Exception as e:
            logger.error(f"OCR processing failed: {str(e)}", exc_info=True)
            return WaterMeterResult.empty(f"Error processing image: {e}")

    def process_meter_image(self, image_bytes: bytes) -> WaterMeterResult:
        """Blocking form of `aprocess_meter_image`."""
        return asyncio.run(self.aprocess_meter_image(image_bytes))
