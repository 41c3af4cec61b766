import io
import time

import pytest
from PIL import Image

from conftest import CENTER_CROP_SIZE, HIGH_CONTRAST_SIZE, StubDetector, StubRecognizer, encode_image
from water_meter.errors import DecodeFailure, RecognitionFailure
from water_meter.models.detection import BoundingBox
from water_meter.models.reading import PreprocessingVariant
from water_meter.ocr.processor import WaterMeterProcessor


def by_size(mapping, default=""):
    def text_for(image):
        return mapping.get(image.size, default)
    return text_for


def test_reads_best_variant(settings, jpeg_bytes):
    recognizer = StubRecognizer(by_size({
        HIGH_CONTRAST_SIZE: "SN 2019-88\n4567",
        CENTER_CROP_SIZE: "00123",
    }))
    processor = WaterMeterProcessor(recognizer, settings=settings)

    result = processor.process_reading(jpeg_bytes)

    assert result.reading == "00123"
    assert result.confidence == 0.7
    assert result.debug_info == ("", "4567", "", "00123")
    assert result.raw_ocr_text == "00123"
    assert result.processed_text == "00123"
    assert len(recognizer.seen_sizes) == 4


def test_survives_three_failed_variants(settings, jpeg_bytes):
    def text_for(image):
        if image.size == CENTER_CROP_SIZE:
            return "0045217"
        raise RecognitionFailure("engine crashed")

    processor = WaterMeterProcessor(StubRecognizer(text_for), settings=settings)
    result = processor.process_reading(jpeg_bytes)

    assert result.reading == "0045217"
    assert result.confidence == 0.7
    assert result.debug_info[:4] == ("", "", "", "0045217")
    failures = [m for m in result.debug_info[4:] if "recognition failed" in m]
    assert len(failures) == 3
    assert any(m.startswith("original:") for m in failures)


def test_failed_variant_is_named_on_the_error(settings):
    def text_for(image):
        raise ValueError("bad tensor")

    processor = WaterMeterProcessor(StubRecognizer(text_for), settings=settings)
    raw = processor._recognize_variant(PreprocessingVariant("threshold", Image.new("RGB", (8, 8))))

    assert raw.failed
    assert raw.text == ""
    assert isinstance(raw.error, RecognitionFailure)
    assert raw.error.variant == "threshold"
    assert str(raw.error) == "bad tensor"


def test_unexpected_engine_errors_are_contained(settings, jpeg_bytes):
    def text_for(image):
        raise RuntimeError("segfault-ish")

    result = WaterMeterProcessor(StubRecognizer(text_for), settings=settings).process_reading(jpeg_bytes)

    assert result.reading == ""
    assert result.confidence == 0.0
    assert "No digit candidates found in any variant" in result.debug_info


def test_undecodable_bytes_give_empty_result(settings):
    processor = WaterMeterProcessor(StubRecognizer(lambda image: "12345"), settings=settings)
    result = processor.process_reading(b"definitely not an image")

    assert result.reading == ""
    assert result.confidence == 0.0
    assert result.debug_info == ("Failed to decode image",)


def test_no_digits_anywhere(settings, jpeg_bytes):
    processor = WaterMeterProcessor(StubRecognizer(lambda image: "WATER METER"), settings=settings)
    result = processor.process_reading(jpeg_bytes)

    assert result.reading == ""
    assert result.debug_info[:4] == ("", "", "", "")
    assert result.debug_info[-1] == "No digit candidates found in any variant"


def test_non_reentrant_engine_is_serialized(settings, jpeg_bytes):
    def slow(image):
        time.sleep(0.02)
        return "12345"

    recognizer = StubRecognizer(slow, reentrant=False)
    result = WaterMeterProcessor(recognizer, settings=settings).process_reading(jpeg_bytes)

    assert result.reading == "12345"
    assert recognizer.max_in_flight == 1


def test_concurrency_is_bounded(make_settings, jpeg_bytes):
    def slow(image):
        time.sleep(0.02)
        return "12345"

    recognizer = StubRecognizer(slow)
    processor = WaterMeterProcessor(recognizer, settings=make_settings(max_concurrent_recognitions=1))
    processor.process_reading(jpeg_bytes)

    assert recognizer.max_in_flight == 1
    assert len(recognizer.seen_sizes) == 4


# --- detection path ----------------------------------------------------------

@pytest.fixture
def wide_jpeg():
    return encode_image((200, 100))


def test_detect_applies_nms_and_clamps(settings, wide_jpeg):
    detector = StubDetector([
        BoundingBox(22, 12, 118, 58, confidence=0.6),
        BoundingBox(20, 10, 120, 60, confidence=0.9),
        BoundingBox(-5, -5, 250, 120, confidence=0.1),
    ])
    processor = WaterMeterProcessor(StubRecognizer(lambda image: ""), detector=detector, settings=settings)

    detection = processor.detect(wide_jpeg)

    assert [b.confidence for b in detection.boxes] == [0.9, 0.1]
    assert detection.boxes[1].to_dict()["x2"] == 200
    assert (detection.image_width, detection.image_height) == (200, 100)


def test_detect_requires_detector(settings, wide_jpeg):
    processor = WaterMeterProcessor(StubRecognizer(lambda image: ""), settings=settings)
    with pytest.raises(RuntimeError):
        processor.detect(wide_jpeg)


def test_detect_rejects_bad_bytes(settings):
    processor = WaterMeterProcessor(StubRecognizer(lambda image: ""), detector=StubDetector(), settings=settings)
    with pytest.raises(DecodeFailure):
        processor.detect(b"nope")


def test_meter_image_reads_cropped_window(settings, wide_jpeg):
    detector = StubDetector([
        BoundingBox(20, 10, 120, 60, confidence=0.9, label="Water"),
        BoundingBox(22, 12, 118, 58, confidence=0.6, label="Water"),
    ])
    recognizer = StubRecognizer(lambda image: "12345")
    processor = WaterMeterProcessor(recognizer, detector=detector, settings=settings)

    result = processor.process_meter_image(wide_jpeg)

    assert result.reading == "12345"
    assert (100, 50) in recognizer.seen_sizes
    assert (200, 100) not in recognizer.seen_sizes
    assert Image.open(io.BytesIO(result.image_bytes)).size == (100, 50)
    assert Image.open(io.BytesIO(result.annotated_image)).size == (200, 100)


def test_meter_image_falls_back_when_detector_fails(settings, wide_jpeg):
    detector = StubDetector(error=RuntimeError("model not loaded"))
    recognizer = StubRecognizer(lambda image: "12345")
    processor = WaterMeterProcessor(recognizer, detector=detector, settings=settings)

    result = processor.process_meter_image(wide_jpeg)

    assert result.reading == "12345"
    assert (200, 100) in recognizer.seen_sizes
    assert result.annotated_image is None


def test_meter_image_without_detector_reads_whole_image(settings, wide_jpeg):
    recognizer = StubRecognizer(lambda image: "4321")
    result = WaterMeterProcessor(recognizer, settings=settings).process_meter_image(wide_jpeg)

    assert result.reading == "4321"
    assert result.confidence == 0.3
    assert (200, 100) in recognizer.seen_sizes


def test_meter_image_undecodable(settings):
    processor = WaterMeterProcessor(StubRecognizer(lambda image: "1"), detector=StubDetector(), settings=settings)
    result = processor.process_meter_image(b"")
    assert result.reading == ""
    assert result.debug_info == ("Failed to decode image",)
