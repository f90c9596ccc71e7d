"""Unified analysis entry point for vector and raster logos."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .errors import InvalidTargetSizeError, UnsupportedMimeTypeError
from .geometry_types import BoundingBox, LogoAnalysis, LogoKind, SafeMargins, round_half_up
from .raster_analyzer import analyze_raster
from .svg_parser import parse_svg

logger = logging.getLogger(__name__)

SVG_MIME_TYPE = "image/svg+xml"
PNG_MIME_TYPE = "image/png"

BASE_MARGIN = 0.10
EXTREME_ASPECT_MARGIN = 0.15
PADDED_CONTENT_MARGIN = 0.05


@dataclass(frozen=True)
class OptimalDimensions:
    logo_width: int
    logo_height: int
    offset_x: int
    offset_y: int
    scale: float


def normalize_mime_type(mime_type: str) -> str:
    """``"Image/PNG; charset=binary"`` -> ``"image/png"``."""
    return mime_type.split(";", 1)[0].strip().lower()


def calculate_safe_margins(
    bounding_box: BoundingBox, content_box: Optional[BoundingBox] = None
) -> SafeMargins:
    """Uniform margin for a logo.

    10% by default, 15% when the content is wider than 2:1 or taller than
    1:2, and 5% when ``content_box`` covers less than half of
    ``bounding_box`` (the artwork already carries its own padding).
    """
    content = content_box or bounding_box
    margin = BASE_MARGIN
    aspect = content.aspect_ratio
    if aspect > 2 or aspect < 0.5:
        margin = EXTREME_ASPECT_MARGIN
    if content_box is not None and bounding_box.area > 0:
        if content.area / bounding_box.area < 0.5:
            margin = PADDED_CONTENT_MARGIN
    return SafeMargins.uniform(margin)


def analyze_vector(data: bytes) -> LogoAnalysis:
    document = parse_svg(data)
    box = document.bounding_box
    return LogoAnalysis(
        kind=LogoKind.VECTOR,
        bounding_box=box,
        intrinsic_aspect_ratio=box.aspect_ratio,
        safe_margins=calculate_safe_margins(box),
        dominant_colors=list(document.color_palette),
        # vector artwork has no opaque backdrop
        has_alpha=True,
        has_text=document.has_text,
        width=document.width,
        height=document.height,
        vector=document,
    )


def analyze_bitmap(data: bytes) -> LogoAnalysis:
    raster = analyze_raster(data)
    return LogoAnalysis(
        kind=LogoKind.RASTER,
        bounding_box=raster.bounding_box,
        intrinsic_aspect_ratio=raster.aspect_ratio,
        safe_margins=calculate_safe_margins(raster.bounding_box, raster.trim_box),
        dominant_colors=list(raster.dominant_colors),
        has_alpha=raster.has_alpha,
        has_text=False,
        width=raster.width,
        height=raster.height,
        raster=raster,
    )


def analyze(data: bytes, mime_type: str) -> LogoAnalysis:
    """Analyze a logo given its bytes and MIME type.

    Raises:
        UnsupportedMimeTypeError: anything other than SVG or PNG.
        MalformedDocumentError: unparseable SVG.
        InvalidImageDimensionsError: undecodable or empty PNG.
    """
    kind = normalize_mime_type(mime_type)
    if kind == SVG_MIME_TYPE:
        analysis = analyze_vector(data)
    elif kind == PNG_MIME_TYPE:
        analysis = analyze_bitmap(data)
    else:
        raise UnsupportedMimeTypeError(mime_type)

    logger.debug(
        "analyze: %s box=%s aspect=%.3f margin=%.2f colors=%s",
        analysis.kind.value,
        analysis.bounding_box.as_tuple(),
        analysis.intrinsic_aspect_ratio,
        analysis.safe_margins.top,
        analysis.dominant_colors,
    )
    return analysis


def calculate_optimal_dimensions(
    analysis: LogoAnalysis, target_width: int, target_height: int
) -> OptimalDimensions:
    """Centred, contain-fitted placement of the logo inside its safe margins."""
    if target_width <= 0 or target_height <= 0:
        raise InvalidTargetSizeError(target_width, target_height)
    margins = analysis.safe_margins
    usable_width = target_width * (1 - margins.left - margins.right)
    usable_height = target_height * (1 - margins.top - margins.bottom)
    aspect = analysis.intrinsic_aspect_ratio or 1.0
    box = analysis.bounding_box

    if aspect > target_width / target_height:
        logo_width = usable_width
        logo_height = logo_width / aspect
        scale = usable_width / (box.width or target_width)
    else:
        logo_height = usable_height
        logo_width = logo_height * aspect
        scale = usable_height / (box.height or target_height)

    return OptimalDimensions(
        logo_width=round_half_up(logo_width),
        logo_height=round_half_up(logo_height),
        offset_x=round_half_up((target_width - logo_width) / 2),
        offset_y=round_half_up((target_height - logo_height) / 2),
        scale=scale,
    )
