"""Thumbnail generation and thumbnail key helpers.

Everything here is pure: no I/O beyond in-memory buffers, and the same
input bytes always produce the same output bytes.
"""

import io
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from .exceptions import DecodeError

DEFAULT_THUMBNAIL_WIDTH = 300
DEFAULT_THUMBNAIL_PREFIX = "thumbnails/"
THUMBNAIL_CONTENT_TYPE = "image/jpeg"
SUPPORTED_FORMATS = ("JPEG", "PNG")


def thumbnail_key_for(key: str, prefix: str = DEFAULT_THUMBNAIL_PREFIX) -> str:
    """
    Derive the thumbnail key for an original object key.

    Args:
        key: Original S3 key
        prefix: Reserved thumbnail namespace

    Returns:
        The original key under the thumbnail namespace
    """
    return f"{prefix}{key}"


def is_thumbnail_key(key: str, prefix: str = DEFAULT_THUMBNAIL_PREFIX) -> bool:
    """True when the key lives in the thumbnail namespace."""
    return key.startswith(prefix)


def calculate_thumbnail_size(
    width: int, height: int, target_width: int = DEFAULT_THUMBNAIL_WIDTH
) -> Tuple[int, int]:
    """
    Size of the thumbnail for an image of ``width`` x ``height``.

    The height keeps the aspect ratio, rounded half up, and is at least 1.
    Images narrower than the target are scaled up like any other.
    """
    if width <= 0 or height <= 0:
        raise DecodeError(f"Invalid image dimensions: {width}x{height}")
    scaled_height = (2 * height * target_width + width) // (2 * width)
    return target_width, max(1, scaled_height)


def _to_rgb(image: "Image.Image") -> "Image.Image":
    if image.mode == "RGB":
        return image
    has_alpha = image.mode in ("RGBA", "LA") or (
        image.mode == "P" and "transparency" in image.info
    )
    if has_alpha:
        # JPEG has no alpha; flatten onto white
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return image.convert("RGB")


def decode_image(image_bytes: bytes) -> "Image.Image":
    """
    Decode JPEG or PNG bytes into a fully loaded Pillow image.

    Raises:
        DecodeError: If the bytes are not a supported raster image
    """
    try:
        image = Image.open(io.BytesIO(image_bytes), formats=SUPPORTED_FORMATS)
        image.load()
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        SyntaxError,
        ValueError,
    ) as e:
        raise DecodeError(f"Cannot decode image: {e}") from e
    return image


def resize(image_bytes: bytes, width: int = DEFAULT_THUMBNAIL_WIDTH) -> bytes:
    """
    Resize an image to ``width`` pixels wide and re-encode it as JPEG.

    Args:
        image_bytes: Original JPEG or PNG bytes
        width: Target width in pixels

    Returns:
        JPEG bytes encoded with the library's default quality; no EXIF or
        ICC data is carried over.

    Raises:
        DecodeError: If the input cannot be decoded
    """
    image = decode_image(image_bytes)
    size = calculate_thumbnail_size(image.width, image.height, width)

    try:
        thumbnail = _to_rgb(image).resize(size, Image.Resampling.LANCZOS)
    except (OSError, ValueError) as e:
        raise DecodeError(f"Cannot convert image: {e}") from e

    output = io.BytesIO()
    thumbnail.save(output, format="JPEG")
    return output.getvalue()
