"""
Image decoding and the fixed set of preprocessing variants.

Every variant is derived from the decoded source image, never from another
variant, so the four recognizer calls can run independently.
"""
import io
import logging
from typing import Callable, List, Tuple

import numpy as np
from PIL import Image, ImageEnhance, UnidentifiedImageError

from water_meter.errors import DecodeFailure
from water_meter.models.reading import PreprocessingVariant

logger = logging.getLogger(__name__)

WORKING_SIZE = (800, 600)
HIGH_CONTRAST_FACTOR = 2.0
HIGH_CONTRAST_BRIGHTNESS = 1.3
THRESHOLD_LEVEL = 128
LUMINANCE_WEIGHTS = (0.299, 0.587, 0.114)
CENTER_CROP_RATIO = 0.6
CENTER_CROP_CONTRAST = 1.8


def decode_image(image_bytes: bytes) -> Image.Image:
    """
    Decode encoded image bytes to an RGB PIL image.

    Raises:
        DecodeFailure: bytes are empty or not a readable image
    """
    if not image_bytes:
        raise DecodeFailure("Empty image payload")
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            return img.convert("RGB")
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise DecodeFailure(f"Failed to decode image: {e}") from e


def _original(image: Image.Image) -> Image.Image:
    return image.copy()


def _high_contrast(image: Image.Image) -> Image.Image:
    resized = image.resize(WORKING_SIZE, Image.BILINEAR)
    boosted = ImageEnhance.Contrast(resized).enhance(HIGH_CONTRAST_FACTOR)
    return ImageEnhance.Brightness(boosted).enhance(HIGH_CONTRAST_BRIGHTNESS)


def _threshold(image: Image.Image) -> Image.Image:
    rgb = np.asarray(image.convert("RGB"), dtype=np.float64)
    wr, wg, wb = LUMINANCE_WEIGHTS
    luminance = wr * rgb[..., 0] + wg * rgb[..., 1] + wb * rgb[..., 2]
    # Round half up, then strictly above the level is white
    white = np.floor(luminance + 0.5) > THRESHOLD_LEVEL
    binary = np.where(white, 255, 0).astype(np.uint8)
    return Image.fromarray(binary).convert("RGB")


def _center_crop(image: Image.Image) -> Image.Image:
    width, height = image.size
    side = int(min(width, height) * CENTER_CROP_RATIO)
    left = width // 2 - side // 2
    top = height // 2 - side // 2
    cropped = image.crop((left, top, left + side, top + side))
    return ImageEnhance.Contrast(cropped).enhance(CENTER_CROP_CONTRAST)


# Generation order doubles as the tie-break order when scoring variants.
VARIANT_TRANSFORMS: Tuple[Tuple[str, Callable[[Image.Image], Image.Image]], ...] = (
    ("original", _original),
    ("high_contrast", _high_contrast),
    ("threshold", _threshold),
    ("center_crop", _center_crop),
)

VARIANT_NAMES: Tuple[str, ...] = tuple(name for name, _ in VARIANT_TRANSFORMS)


def generate_variants(image: Image.Image) -> List[PreprocessingVariant]:
    """Produce the four preprocessing variants of a decoded image, in fixed order."""
    variants = []
    for name, transform in VARIANT_TRANSFORMS:
        transformed = transform(image)
        logger.debug(f"Variant '{name}': {transformed.size[0]}x{transformed.size[1]}")
        variants.append(PreprocessingVariant(name=name, image=transformed))
    return variants
