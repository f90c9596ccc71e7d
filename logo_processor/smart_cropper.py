"""Content-aware cropping to a target aspect ratio.

Three strategies pick the crop rectangle; all of them resample the result to
exactly the requested size. ``smart`` and ``attention`` are best-effort: any
failure while locating content falls back to the centred crop.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Union

import cv2
import numpy as np
from PIL import Image

from .errors import InvalidTargetSizeError
from .geometry_types import BoundingBox, CropMode, CropResult, CropSpec, MaskOptions, round_half_up
from .image_io import encode_image_bytes, load_rgba_image, to_rgba_array
from .mask_generator import generate_mask, sobel_magnitude

logger = logging.getLogger(__name__)

SMART_MASK_OPTIONS = MaskOptions(edge_detection=True, threshold=10)


def center_crop_box(width: float, height: float, target_width: float, target_height: float) -> CropSpec:
    """Largest target-aspect rectangle centred in the source."""
    target_aspect = target_width / target_height
    if width / height > target_aspect:
        crop_height = float(height)
        crop_width = height * target_aspect
    else:
        crop_width = float(width)
        crop_height = width / target_aspect
    return CropSpec(
        x=(width - crop_width) / 2,
        y=(height - crop_height) / 2,
        width=crop_width,
        height=crop_height,
    )


def _clamp_origin(value: float, size: float, limit: float) -> float:
    return max(0.0, min(value, limit - size))


def fit_crop_to_content(
    width: float,
    height: float,
    target_width: float,
    target_height: float,
    content: BoundingBox,
) -> CropSpec:
    """Smallest target-aspect rectangle containing ``content``, centred on it.

    When that rectangle is larger than the source it is scaled down to fit,
    which is the only case where content may be cut.
    """
    target_aspect = target_width / target_height
    if content.aspect_ratio > target_aspect:
        crop_width = content.width
        crop_height = crop_width / target_aspect
    else:
        crop_height = content.height
        crop_width = crop_height * target_aspect

    shrink = min(1.0, width / crop_width, height / crop_height) if crop_width and crop_height else 1.0
    crop_width *= shrink
    crop_height *= shrink

    cx, cy = content.center
    return CropSpec(
        x=_clamp_origin(cx - crop_width / 2, crop_width, width),
        y=_clamp_origin(cy - crop_height / 2, crop_height, height),
        width=crop_width,
        height=crop_height,
    )


def padding_in_pixels(padding: float, width: int, height: int) -> float:
    """Fractions below 1 scale with the longer side; larger values are pixels."""
    if padding < 0:
        raise ValueError(f"padding must be non-negative, got {padding}")
    if padding < 1:
        return max(width, height) * padding
    return float(padding)


def pad_box(box: BoundingBox, padding_px: float, width: int, height: int) -> BoundingBox:
    return BoundingBox.from_extents(
        max(0.0, box.x - padding_px),
        max(0.0, box.y - padding_px),
        min(float(width), box.right + padding_px),
        min(float(height), box.bottom + padding_px),
    )


def content_aware_crop_box(
    rgba: np.ndarray, target_width: int, target_height: int, padding: float = 0
) -> CropSpec:
    height, width = rgba.shape[:2]
    mask = generate_mask(rgba, SMART_MASK_OPTIONS)
    if mask.bounding_box is None:
        raise ValueError("no visible content")
    padded = pad_box(mask.bounding_box, padding_in_pixels(padding, width, height), width, height)
    return fit_crop_to_content(width, height, target_width, target_height, padded)


def generate_attention_map(rgba: np.ndarray) -> np.ndarray:
    """Sobel gradient magnitude of the luminance, with transparent pixels dark."""
    gray = cv2.cvtColor(np.ascontiguousarray(rgba[:, :, :3]), cv2.COLOR_RGB2GRAY)
    alpha = rgba[:, :, 3].astype(np.float64) / 255.0
    return sobel_magnitude(gray.astype(np.float64) * alpha)


def default_focus_region(width: int, height: int) -> BoundingBox:
    return BoundingBox(width / 4, height / 4, width / 2, height / 2)


def find_focus_region(attention: np.ndarray) -> BoundingBox:
    """Window of side ``min(W, H) / 4`` with the largest attention sum.

    Windows are visited row by row at quarter-window stride and the first
    maximum wins. Without any attention the centred half-size region is used.
    """
    height, width = attention.shape
    window = min(width, height) / 4
    if window < 1:
        return default_focus_region(width, height)

    side = int(math.ceil(window))
    stride = window / 4
    integral = np.zeros((height + 1, width + 1), dtype=np.float64)
    integral[1:, 1:] = attention.cumsum(axis=0).cumsum(axis=1)

    best_score = 0.0
    best: Optional[BoundingBox] = None
    y = 0.0
    while y < height - window:
        top = int(y)
        bottom = min(height, top + side)
        x = 0.0
        while x < width - window:
            left = int(x)
            right = min(width, left + side)
            score = (
                integral[bottom, right]
                - integral[top, right]
                - integral[bottom, left]
                + integral[top, left]
            )
            if score > best_score:
                best_score = score
                best = BoundingBox(x, y, window, window)
            x += stride
        y += stride

    return best if best is not None else default_focus_region(width, height)


def calculate_crop_box(
    width: int, height: int, target_width: int, target_height: int, focus: BoundingBox
) -> CropSpec:
    """Centre-crop sized rectangle moved onto the focus centroid, clamped to bounds."""
    base = center_crop_box(width, height, target_width, target_height)
    fx, fy = focus.center
    return CropSpec(
        x=_clamp_origin(fx - base.width / 2, base.width, width),
        y=_clamp_origin(fy - base.height / 2, base.height, height),
        width=base.width,
        height=base.height,
    )


def attention_crop_box(rgba: np.ndarray, target_width: int, target_height: int) -> CropSpec:
    height, width = rgba.shape[:2]
    focus = find_focus_region(generate_attention_map(rgba))
    logger.debug("attention focus region: %s", focus.as_tuple())
    return calculate_crop_box(width, height, target_width, target_height, focus)


def resample_crop(rgba: np.ndarray, crop: CropSpec, target_width: int, target_height: int) -> Image.Image:
    """Cut the (rounded) crop rectangle and resize it to the target with area resampling."""
    height, width = rgba.shape[:2]
    left = min(max(0, round_half_up(crop.x)), width - 1)
    top = min(max(0, round_half_up(crop.y)), height - 1)
    crop_w = max(1, min(round_half_up(crop.width), width - left))
    crop_h = max(1, min(round_half_up(crop.height), height - top))

    region = np.ascontiguousarray(rgba[top : top + crop_h, left : left + crop_w])
    if (crop_w, crop_h) != (target_width, target_height):
        region = cv2.resize(region, (target_width, target_height), interpolation=cv2.INTER_AREA)
    return Image.fromarray(region)


def smart_crop(
    image_bytes: bytes,
    target_width: int,
    target_height: int,
    mode: Union[CropMode, str] = CropMode.SMART,
    padding: float = 0,
) -> CropResult:
    """Crop ``image_bytes`` to ``target_width x target_height``.

    Args:
        image_bytes: Encoded source image.
        target_width: Output width in pixels.
        target_height: Output height in pixels.
        mode: ``center``, ``smart`` (content box from a coverage mask) or
            ``attention`` (densest gradient window).
        padding: Extra room around detected content for ``smart``. Values
            below 1 are fractions of the longer source side.

    Returns:
        ``CropResult`` with the chosen rectangle and PNG bytes of exactly
        the requested size. A source already at the target size is
        returned untouched.

    Raises:
        InvalidTargetSizeError: a target dimension is not positive.
        InvalidImageDimensionsError: the source cannot be decoded.
    """
    if target_width <= 0 or target_height <= 0:
        raise InvalidTargetSizeError(target_width, target_height)
    if padding < 0:
        raise ValueError(f"padding must be non-negative, got {padding}")
    mode = CropMode(mode)

    img = load_rgba_image(image_bytes)
    width, height = img.size
    if (width, height) == (target_width, target_height):
        return CropResult(
            crop=CropSpec(0.0, 0.0, float(width), float(height)),
            buffer=image_bytes,
            width=width,
            height=height,
            mode=mode,
        )

    rgba = to_rgba_array(img)
    crop = center_crop_box(width, height, target_width, target_height)
    if mode is CropMode.SMART:
        try:
            crop = content_aware_crop_box(rgba, target_width, target_height, padding)
        except Exception:
            logger.warning("Content-aware crop failed; falling back to center crop", exc_info=True)
    elif mode is CropMode.ATTENTION:
        try:
            crop = attention_crop_box(rgba, target_width, target_height)
        except Exception:
            logger.warning("Attention crop failed; falling back to center crop", exc_info=True)

    logger.debug(
        "smart_crop[%s]: %dx%d -> %dx%d via (%.1f, %.1f, %.1f, %.1f)",
        mode.value,
        width,
        height,
        target_width,
        target_height,
        crop.x,
        crop.y,
        crop.width,
        crop.height,
    )
    buffer, _ = encode_image_bytes(resample_crop(rgba, crop, target_width, target_height), format="png")
    return CropResult(crop=crop, buffer=buffer, width=target_width, height=target_height, mode=mode)
