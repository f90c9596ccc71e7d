"""Image decoding and encoding helpers."""

from __future__ import annotations

from io import BytesIO
from typing import Tuple, cast

import numpy as np
from PIL import Image

from .errors import InvalidImageDimensionsError

_MIME_BY_FORMAT = {"png": "image/png", "jpeg": "image/jpeg", "webp": "image/webp"}


def open_image(image_bytes: bytes) -> Image.Image:
    """Decode image bytes, rejecting undecodable or zero-sized input."""
    try:
        img = cast(Image.Image, Image.open(BytesIO(image_bytes)))
        img.load()
    except Exception as exc:
        raise InvalidImageDimensionsError("Unable to determine image dimensions") from exc

    width, height = img.size
    if width <= 0 or height <= 0:
        raise InvalidImageDimensionsError(f"Invalid image dimensions {width}x{height}")
    return img


def has_alpha_channel(img: Image.Image) -> bool:
    return "A" in img.getbands() or "transparency" in img.info


def load_rgba_image(image_bytes: bytes) -> Image.Image:
    """Decode image bytes into an RGBA PIL Image; opaque inputs get alpha 255."""
    img = open_image(image_bytes)
    if img.mode != "RGBA":
        img = img.convert("RGBA")
    return img


def to_rgba_array(img: Image.Image) -> np.ndarray:
    if img.mode != "RGBA":
        img = img.convert("RGBA")
    return np.asarray(img, dtype=np.uint8)


def load_rgba_array(image_bytes: bytes) -> np.ndarray:
    """Decode image bytes into an ``(height, width, 4)`` uint8 array."""
    return to_rgba_array(load_rgba_image(image_bytes))


def encode_image_bytes(
    img: Image.Image, *, format: str = "png", quality: int = 90
) -> Tuple[bytes, str]:
    """Encode ``img``; PNG is lossless, JPEG and WebP honour ``quality``."""
    fmt = format.lower()
    if fmt == "jpg":
        fmt = "jpeg"
    if fmt not in _MIME_BY_FORMAT:
        raise ValueError(f"Unsupported output format '{format}'")

    buf = BytesIO()
    save_kwargs = {"format": fmt.upper()}
    if fmt == "jpeg":
        if img.mode in ("RGBA", "LA", "P"):
            img = _flatten(img.convert("RGBA"))
        elif img.mode != "RGB":
            img = img.convert("RGB")
        save_kwargs["quality"] = quality
        save_kwargs["optimize"] = True
    elif fmt == "webp":
        save_kwargs["quality"] = quality
    img.save(buf, **save_kwargs)
    return buf.getvalue(), _MIME_BY_FORMAT[fmt]


def _flatten(img: Image.Image, color: Tuple[int, int, int] = (255, 255, 255)) -> Image.Image:
    backdrop = Image.new("RGBA", img.size, color + (255,))
    return Image.alpha_composite(backdrop, img).convert("RGB")
