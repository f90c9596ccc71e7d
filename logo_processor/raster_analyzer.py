"""Raster logo analysis: dimensions, alpha, dominant colours and trim box."""

from __future__ import annotations

import logging
from typing import List, Optional

import cv2
import numpy as np
from PIL import Image

from . import config
from .geometry_types import BoundingBox, RasterAnalysis
from .image_io import has_alpha_channel, open_image, to_rgba_array

logger = logging.getLogger(__name__)

# Samples with alpha below this (out of 255) are ignored for colour ranking.
MIN_SAMPLE_ALPHA = 25


def analyze_raster(image_bytes: bytes) -> RasterAnalysis:
    """Analyze bitmap bytes.

    Raises:
        InvalidImageDimensionsError: the bytes cannot be decoded or the image
            has zero width or height.
    """
    img = open_image(image_bytes)
    width, height = img.size
    has_alpha = has_alpha_channel(img)
    channels = _channel_count(img, has_alpha)
    rgba = to_rgba_array(img)

    dominant_colors = extract_dominant_colors(rgba)
    trim_box = estimate_trim_box(img, rgba) if has_alpha else None

    logger.debug(
        "analyze_raster: %dx%d mode=%s alpha=%s trim=%s",
        width,
        height,
        img.mode,
        has_alpha,
        trim_box.as_tuple() if trim_box else None,
    )
    return RasterAnalysis(
        width=width,
        height=height,
        channels=channels,
        has_alpha=has_alpha,
        bounding_box=BoundingBox(0, 0, width, height),
        dominant_colors=dominant_colors,
        trim_box=trim_box,
    )


def _channel_count(img: Image.Image, has_alpha: bool) -> int:
    if img.mode == "P":
        return 4 if has_alpha else 3
    return len(img.getbands())


def _rgb_to_hex(r: int, g: int, b: int) -> str:
    return f"#{r:02x}{g:02x}{b:02x}"


def extract_dominant_colors(
    rgba: np.ndarray,
    *,
    sample_size: Optional[int] = None,
    quant_step: Optional[int] = None,
    max_colors: Optional[int] = None,
) -> List[str]:
    """Most frequent colours of a downsampled copy, quantised to a colour cube.

    Ties keep the order in which the colour first appears (row-major).
    Returns an empty list when every sample is near-transparent or the
    sampling fails.
    """
    sample_size = sample_size or config.COLOR_SAMPLE_SIZE
    quant_step = quant_step or config.COLOR_QUANT_STEP
    max_colors = max_colors or config.MAX_DOMINANT_COLORS
    try:
        small = cv2.resize(rgba, (sample_size, sample_size), interpolation=cv2.INTER_AREA)
        pixels = small.reshape(-1, 4)
        pixels = pixels[pixels[:, 3] >= MIN_SAMPLE_ALPHA]
        if len(pixels) == 0:
            return []

        buckets = pixels[:, :3].astype(np.int32) // quant_step
        centers = np.minimum(buckets * quant_step + quant_step // 2, 255)
        colors, first_index, counts = np.unique(
            centers, axis=0, return_index=True, return_counts=True
        )
        order = sorted(range(len(colors)), key=lambda i: (-counts[i], first_index[i]))
        return [_rgb_to_hex(*(int(v) for v in colors[i])) for i in order[:max_colors]]
    except Exception:
        logger.exception("Failed to extract dominant colors")
        return []


def scan_trim_box(alpha: np.ndarray) -> Optional[BoundingBox]:
    """Scan rows and columns inward from each edge for the first opaque pixel."""
    height, width = alpha.shape
    opaque = alpha > 0

    top = 0
    while top < height and not opaque[top].any():
        top += 1
    if top == height:
        return None
    bottom = height - 1
    while not opaque[bottom].any():
        bottom -= 1
    left = 0
    while not opaque[:, left].any():
        left += 1
    right = width - 1
    while not opaque[:, right].any():
        right -= 1
    return BoundingBox(left, top, right - left + 1, bottom - top + 1)


def estimate_trim_box(img: Image.Image, rgba: np.ndarray) -> Optional[BoundingBox]:
    """Minimal rectangle enclosing non-transparent pixels.

    Uses the decoder's bounding-box primitive on the alpha band, falling back
    to edge scanning, and finally to the full image if both fail. ``None``
    means the image is fully transparent.
    """
    height, width = rgba.shape[:2]
    try:
        alpha_band = Image.fromarray(np.ascontiguousarray(rgba[:, :, 3]))
        bbox = alpha_band.getbbox()
        if bbox is None:
            return None
        left, top, right, bottom = bbox
        return BoundingBox(left, top, right - left, bottom - top)
    except Exception:
        logger.warning("Decoder trim failed for %s image; scanning edges", img.mode, exc_info=True)

    try:
        return scan_trim_box(rgba[:, :, 3])
    except Exception:
        logger.exception("Trim box estimation failed; using the full image")
        return BoundingBox(0, 0, width, height)


def extract_alpha_mask(image_bytes: bytes) -> Optional[np.ndarray]:
    """Raw alpha channel, or ``None`` for images without transparency."""
    img = open_image(image_bytes)
    if not has_alpha_channel(img):
        return None
    return to_rgba_array(img)[:, :, 3].copy()
