"""Coverage masks derived from alpha channels.

Pipeline: alpha -> optional blur -> binarize -> dilate xN -> erode xN ->
optional Sobel edge enhancement. Every pass reads one buffer and returns a
newly allocated one; borders replicate the outermost pixels so a fully
opaque image keeps full coverage.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

import cv2
import numpy as np
from PIL import Image

from .errors import CompositeDimensionMismatchError
from .geometry_types import BoundingBox, Mask, MaskOptions
from .image_io import encode_image_bytes, load_rgba_image, to_rgba_array

logger = logging.getLogger(__name__)

COVERAGE_THRESHOLD = 10
EDGE_WEIGHT = 0.3

ImageInput = Union[bytes, Image.Image, np.ndarray]


def _padded_neighbors(buf: np.ndarray) -> np.ndarray:
    """The 3x3 neighbourhood of every pixel as a ``(9, H, W)`` stack."""
    height, width = buf.shape
    padded = np.pad(buf, 1, mode="edge")
    return np.stack(
        [padded[dy : dy + height, dx : dx + width] for dy in range(3) for dx in range(3)]
    )


def dilate(buf: np.ndarray, iterations: int = 1) -> np.ndarray:
    """3x3 max filter applied ``iterations`` times."""
    out = buf
    for _ in range(iterations):
        out = _padded_neighbors(out).max(axis=0)
    return out if iterations else buf.copy()


def erode(buf: np.ndarray, iterations: int = 1) -> np.ndarray:
    """3x3 min filter applied ``iterations`` times."""
    out = buf
    for _ in range(iterations):
        out = _padded_neighbors(out).min(axis=0)
    return out if iterations else buf.copy()


def sobel_magnitude(buf: np.ndarray) -> np.ndarray:
    """Gradient magnitude ``sqrt(gx^2 + gy^2)`` of the 3x3 Sobel kernels, as float64."""
    height, width = buf.shape
    p = np.pad(buf.astype(np.float64), 1, mode="edge")

    def at(dy: int, dx: int) -> np.ndarray:
        return p[1 + dy : 1 + dy + height, 1 + dx : 1 + dx + width]

    gx = (at(-1, 1) + 2 * at(0, 1) + at(1, 1)) - (at(-1, -1) + 2 * at(0, -1) + at(1, -1))
    gy = (at(1, -1) + 2 * at(1, 0) + at(1, 1)) - (at(-1, -1) + 2 * at(-1, 0) + at(-1, 1))
    return np.hypot(gx, gy)


def binarize(buf: np.ndarray, threshold: int) -> np.ndarray:
    return np.where(buf >= threshold, 255, 0).astype(np.uint8)


def gaussian_blur(buf: np.ndarray, sigma: float) -> np.ndarray:
    return cv2.GaussianBlur(buf, (0, 0), sigmaX=sigma, borderType=cv2.BORDER_REPLICATE)


def enhance_edges(buf: np.ndarray) -> np.ndarray:
    """Add 0.3x the Sobel magnitude back onto the mask, clamped to 255."""
    boosted = buf.astype(np.float64) + sobel_magnitude(buf) * EDGE_WEIGHT
    return np.floor(np.minimum(boosted, 255.0)).astype(np.uint8)


def coverage_box(buf: np.ndarray, threshold: int = COVERAGE_THRESHOLD) -> Optional[BoundingBox]:
    """Box of pixels above ``threshold``; ``None`` when there are none."""
    covered = buf > threshold
    rows = np.flatnonzero(covered.any(axis=1))
    if rows.size == 0:
        return None
    cols = np.flatnonzero(covered.any(axis=0))
    return BoundingBox(
        int(cols[0]),
        int(rows[0]),
        int(cols[-1] - cols[0] + 1),
        int(rows[-1] - rows[0] + 1),
    )


def coverage_ratio(buf: np.ndarray, threshold: int = COVERAGE_THRESHOLD) -> float:
    """Percentage (0-100) of pixels above ``threshold``."""
    if buf.size == 0:
        return 0.0
    return float(np.count_nonzero(buf > threshold)) / buf.size * 100


def build_mask(buf: np.ndarray) -> Mask:
    data = np.array(buf, dtype=np.uint8, copy=True)
    data.setflags(write=False)
    return Mask(data=data, bounding_box=coverage_box(data), coverage=coverage_ratio(data))


def _alpha_channel(image: ImageInput) -> np.ndarray:
    if isinstance(image, (bytes, bytearray)):
        return to_rgba_array(load_rgba_image(bytes(image)))[:, :, 3]
    if isinstance(image, Image.Image):
        return to_rgba_array(image)[:, :, 3]
    arr = np.asarray(image)
    if arr.ndim == 2:
        return arr.astype(np.uint8)
    if arr.ndim == 3 and arr.shape[2] == 4:
        return arr[:, :, 3]
    raise ValueError(f"Expected an alpha plane or RGBA array, got shape {arr.shape}")


def _validate(options: MaskOptions) -> None:
    if not 0 <= options.threshold <= 255:
        raise ValueError(f"threshold must be in [0, 255], got {options.threshold}")
    if options.dilate < 0 or options.erode < 0:
        raise ValueError("dilate and erode iteration counts must be non-negative")
    if options.blur < 0:
        raise ValueError(f"blur must be non-negative, got {options.blur}")


def generate_mask(image: ImageInput, options: Optional[MaskOptions] = None) -> Mask:
    """Build a coverage mask from an image's alpha channel.

    Images without an alpha channel are treated as fully opaque.

    Args:
        image: Encoded bytes, a PIL image, an RGBA array or a bare alpha plane.
        options: Threshold, blur, morphology and edge settings.

    Returns:
        A new ``Mask`` with its bounding box and coverage percentage.
    """
    options = options or MaskOptions()
    _validate(options)

    buf = np.ascontiguousarray(_alpha_channel(image), dtype=np.uint8)
    if options.blur > 0:
        buf = gaussian_blur(buf, options.blur)
    buf = binarize(buf, options.threshold)
    if options.dilate:
        buf = dilate(buf, options.dilate)
    if options.erode:
        buf = erode(buf, options.erode)
    if options.edge_detection:
        buf = enhance_edges(buf)

    mask = build_mask(buf)
    logger.debug(
        "generate_mask: %dx%d coverage=%.2f box=%s",
        mask.width,
        mask.height,
        mask.coverage,
        mask.bounding_box.as_tuple() if mask.bounding_box else None,
    )
    return mask


def invert_mask(mask: Mask) -> Mask:
    return build_mask(255 - mask.data)


def dilate_mask(mask: Mask, iterations: int = 1) -> Mask:
    return build_mask(dilate(mask.data, iterations))


def erode_mask(mask: Mask, iterations: int = 1) -> Mask:
    return build_mask(erode(mask.data, iterations))


def apply_mask(image_bytes: bytes, mask: Mask) -> bytes:
    """Multiply the image's alpha by the mask (destination-in); returns PNG bytes."""
    rgba = to_rgba_array(load_rgba_image(image_bytes)).copy()
    height, width = rgba.shape[:2]
    if (mask.width, mask.height) != (width, height):
        raise CompositeDimensionMismatchError(
            f"Mask is {mask.width}x{mask.height} but image is {width}x{height}"
        )
    alpha = rgba[:, :, 3].astype(np.uint16) * mask.data.astype(np.uint16)
    rgba[:, :, 3] = ((alpha + 127) // 255).astype(np.uint8)
    buffer, _ = encode_image_bytes(Image.fromarray(rgba), format="png")
    return buffer
