"""Placement of a logo on a target canvas: margins, scale and alignment.

All arithmetic is done in floats; values are rounded to integer pixels only
when the ``LayoutCalculation`` is built.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Mapping, Optional, Tuple, Union

from .errors import InvalidTargetSizeError
from .geometry_types import (
    Alignment,
    BoundingBox,
    FillMode,
    LayoutCalculation,
    LayoutOptions,
    LogoAnalysis,
    SafeMargins,
    round_half_up,
)

logger = logging.getLogger(__name__)

MAX_MARGIN = 0.5
ASPECT_TOLERANCE = 0.01

_LEFT = {Alignment.LEFT, Alignment.TOP_LEFT, Alignment.BOTTOM_LEFT}
_RIGHT = {Alignment.RIGHT, Alignment.TOP_RIGHT, Alignment.BOTTOM_RIGHT}
_TOP = {Alignment.TOP, Alignment.TOP_LEFT, Alignment.TOP_RIGHT}
_BOTTOM = {Alignment.BOTTOM, Alignment.BOTTOM_LEFT, Alignment.BOTTOM_RIGHT}


def _clamp_margin(side: str, value: float) -> float:
    if 0 <= value <= MAX_MARGIN:
        return float(value)
    clamped = min(max(value, 0.0), MAX_MARGIN)
    logger.warning("Margin %s=%s outside [0, %s]; using %s", side, value, MAX_MARGIN, clamped)
    return clamped


def resolve_margins(base: SafeMargins, custom: Optional[Mapping[str, float]] = None) -> SafeMargins:
    """Apply per-side overrides to ``base`` and clamp every side to [0, 0.5]."""
    merged = base.with_overrides(custom)
    return SafeMargins(
        top=_clamp_margin("top", merged.top),
        right=_clamp_margin("right", merged.right),
        bottom=_clamp_margin("bottom", merged.bottom),
        left=_clamp_margin("left", merged.left),
    )


def calculate_scale_factor(
    source_width: float,
    source_height: float,
    target_width: float,
    target_height: float,
    mode: Union[FillMode, str] = FillMode.CONTAIN,
) -> float:
    """Uniform scale that fits (``contain``) or fills (``cover``) the target."""
    scale_x = target_width / source_width
    scale_y = target_height / source_height
    if FillMode(mode) is FillMode.COVER:
        return max(scale_x, scale_y)
    return min(scale_x, scale_y)


def logo_dimensions(
    logo_width: float,
    logo_height: float,
    usable_width: float,
    usable_height: float,
    fill_mode: FillMode,
) -> Tuple[float, float, float]:
    """Scaled ``(width, height, scale)`` of the logo inside the usable area."""
    if logo_width <= 0 or logo_height <= 0:
        # nothing to preserve; occupy the usable area as-is
        return usable_width, usable_height, 1.0
    if fill_mode is FillMode.STRETCH:
        scale = min(usable_width / logo_width, usable_height / logo_height)
        return usable_width, usable_height, scale
    scale = calculate_scale_factor(logo_width, logo_height, usable_width, usable_height, fill_mode)
    return logo_width * scale, logo_height * scale, scale


def align_position(
    width: float,
    height: float,
    usable_x: float,
    usable_y: float,
    usable_width: float,
    usable_height: float,
    alignment: Alignment,
) -> Tuple[float, float]:
    if alignment in _LEFT:
        x = usable_x
    elif alignment in _RIGHT:
        x = usable_x + usable_width - width
    else:
        x = usable_x + (usable_width - width) / 2

    if alignment in _TOP:
        y = usable_y
    elif alignment in _BOTTOM:
        y = usable_y + usable_height - height
    else:
        y = usable_y + (usable_height - height) / 2
    return x, y


def _fit_span(size: float, limit: int) -> int:
    rounded = round_half_up(size)
    if size > 0:
        rounded = max(1, rounded)
    return min(rounded, limit)


def _fit_offset(position: float, size: int, limit: int) -> int:
    return min(max(round_half_up(position), 0), max(limit - size, 0))


def compute_layout(
    analysis: LogoAnalysis,
    target_width: int,
    target_height: int,
    options: Optional[LayoutOptions] = None,
) -> LayoutCalculation:
    """Compute where and how large the logo is drawn on a target canvas.

    ``contain`` keeps the logo inside the usable area; ``cover`` fills it and
    may overflow the canvas (the compositor clips); ``stretch`` takes the
    usable size on both axes and reports the smaller axis scale.

    Raises:
        InvalidTargetSizeError: a target dimension is not positive.
    """
    if target_width <= 0 or target_height <= 0:
        raise InvalidTargetSizeError(target_width, target_height)
    options = options or LayoutOptions()
    alignment = Alignment(options.alignment)
    fill_mode = FillMode(options.fill_mode)

    margins = resolve_margins(analysis.safe_margins, options.custom_margins)
    usable_width = target_width * (1 - margins.left - margins.right)
    usable_height = target_height * (1 - margins.top - margins.bottom)
    usable_x = target_width * margins.left
    usable_y = target_height * margins.top

    box: BoundingBox = analysis.bounding_box
    width, height, scale = logo_dimensions(
        box.width, box.height, usable_width, usable_height, fill_mode
    )
    x, y = align_position(width, height, usable_x, usable_y, usable_width, usable_height, alignment)

    if fill_mode is FillMode.COVER:
        logo_w, logo_h = round_half_up(width), round_half_up(height)
        logo_x, logo_y = round_half_up(x), round_half_up(y)
    else:
        logo_w = _fit_span(width, target_width)
        logo_h = _fit_span(height, target_height)
        logo_x = _fit_offset(x, logo_w, target_width)
        logo_y = _fit_offset(y, logo_h, target_height)

    layout = LayoutCalculation(
        canvas_width=int(target_width),
        canvas_height=int(target_height),
        canvas_aspect_ratio=target_width / target_height,
        logo_width=logo_w,
        logo_height=logo_h,
        logo_x=logo_x,
        logo_y=logo_y,
        logo_scale=scale,
        margin_top=margins.top,
        margin_right=margins.right,
        margin_bottom=margins.bottom,
        margin_left=margins.left,
        usable_width=round_half_up(usable_width),
        usable_height=round_half_up(usable_height),
        usable_x=round_half_up(usable_x),
        usable_y=round_half_up(usable_y),
    )
    logger.debug(
        "compute_layout: %dx%d %s/%s -> logo %dx%d at (%d, %d), scale %.4f",
        target_width,
        target_height,
        fill_mode.value,
        alignment.value,
        logo_w,
        logo_h,
        logo_x,
        logo_y,
        scale,
    )
    return layout


def adjust_for_aspect_ratio(layout: LayoutCalculation, target_aspect_ratio: float) -> LayoutCalculation:
    """Trim the canvas (centred) to ``target_aspect_ratio``.

    Within 0.01 of the current ratio the layout is returned unchanged.
    Offsets shift with the trim, and the logo is kept inside the new canvas
    whenever it fits.
    """
    if target_aspect_ratio <= 0:
        raise ValueError(f"Aspect ratio must be positive, got {target_aspect_ratio}")
    current = layout.canvas_width / layout.canvas_height
    if abs(current - target_aspect_ratio) < ASPECT_TOLERANCE:
        return layout

    if current > target_aspect_ratio:
        new_height = float(layout.canvas_height)
        new_width = new_height * target_aspect_ratio
    else:
        new_width = float(layout.canvas_width)
        new_height = new_width / target_aspect_ratio
    canvas_w = max(1, round_half_up(new_width))
    canvas_h = max(1, round_half_up(new_height))
    dx = (layout.canvas_width - canvas_w) / 2
    dy = (layout.canvas_height - canvas_h) / 2

    logo_x = round_half_up(layout.logo_x - dx)
    logo_y = round_half_up(layout.logo_y - dy)
    if layout.logo_width <= canvas_w:
        logo_x = _fit_offset(logo_x, layout.logo_width, canvas_w)
    if layout.logo_height <= canvas_h:
        logo_y = _fit_offset(logo_y, layout.logo_height, canvas_h)

    return dataclasses.replace(
        layout,
        canvas_width=canvas_w,
        canvas_height=canvas_h,
        canvas_aspect_ratio=target_aspect_ratio,
        logo_x=logo_x,
        logo_y=logo_y,
        usable_x=round_half_up(layout.usable_x - dx),
        usable_y=round_half_up(layout.usable_y - dy),
    )
