import numpy as np
import pytest
from PIL import Image

from conftest import encode_image
from water_meter.errors import DecodeFailure
from water_meter.ocr.preprocess import VARIANT_NAMES, decode_image, generate_variants


def test_decode_image_returns_rgb():
    image = decode_image(encode_image((64, 32), fmt="PNG"))
    assert image.mode == "RGB"
    assert image.size == (64, 32)


@pytest.mark.parametrize("payload", [b"", b"not an image", b"<html>nope</html>"])
def test_decode_image_rejects_garbage(payload):
    with pytest.raises(DecodeFailure):
        decode_image(payload)


def test_decode_failure_is_a_value_error():
    with pytest.raises(ValueError):
        decode_image(b"junk")


def test_four_variants_in_fixed_order():
    variants = generate_variants(Image.new("RGB", (100, 80), (10, 20, 30)))
    assert [v.name for v in variants] == ["original", "high_contrast", "threshold", "center_crop"]
    assert tuple(v.name for v in variants) == VARIANT_NAMES


def test_variant_geometry():
    variants = {v.name: v.image for v in generate_variants(Image.new("RGB", (100, 80)))}
    assert variants["original"].size == (100, 80)
    assert variants["high_contrast"].size == (800, 600)
    assert variants["threshold"].size == (100, 80)
    assert variants["center_crop"].size == (48, 48)


def test_center_crop_is_centered():
    source = Image.new("RGB", (200, 100), (0, 0, 0))
    # Mark the exact center square white
    source.paste((255, 255, 255), (70, 20, 130, 80))
    crop = {v.name: v.image for v in generate_variants(source)}["center_crop"]

    assert crop.size == (60, 60)
    pixels = np.asarray(crop)
    assert pixels.min() == 255


def test_threshold_binarizes_on_luminance():
    source = Image.new("RGB", (4, 1))
    source.putpixel((0, 0), (129, 129, 129))  # luminance 129 -> white
    source.putpixel((1, 0), (128, 128, 128))  # luminance 128 -> black
    source.putpixel((2, 0), (200, 50, 50))    # ~95 -> black
    source.putpixel((3, 0), (50, 200, 50))    # ~138 -> white

    threshold = {v.name: v.image for v in generate_variants(source)}["threshold"]
    row = [threshold.getpixel((x, 0)) for x in range(4)]

    assert row == [(255, 255, 255), (0, 0, 0), (0, 0, 0), (255, 255, 255)]


@pytest.mark.parametrize(
    "pixel, expected",
    [
        ((129, 128, 128), (0, 0, 0)),        # 128.299 rounds to 128
        ((130, 128, 128), (255, 255, 255)),  # 128.598 rounds to 129
        ((128, 129, 127), (0, 0, 0)),        # 128.473 rounds to 128
        ((128, 129, 128), (255, 255, 255)),  # 128.587 rounds to 129
        ((255, 0, 0), (0, 0, 0)),            # 76.245
        ((0, 255, 0), (255, 255, 255)),      # 149.685
    ],
)
def test_threshold_rounds_weighted_luminance(pixel, expected):
    threshold = {v.name: v.image for v in generate_variants(Image.new("RGB", (1, 1), pixel))}["threshold"]
    assert threshold.getpixel((0, 0)) == expected


def test_high_contrast_brightens_mid_gray():
    source = Image.new("RGB", (10, 10), (150, 150, 150))
    boosted = {v.name: v.image for v in generate_variants(source)}["high_contrast"]
    assert boosted.getpixel((400, 300))[0] > 150


def test_variants_do_not_alias_the_source():
    source = Image.new("RGB", (100, 80), (90, 90, 90))
    variants = generate_variants(source)
    variants[0].image.putpixel((0, 0), (1, 2, 3))
    assert source.getpixel((0, 0)) == (90, 90, 90)
    assert all(v.image is not source for v in variants)
