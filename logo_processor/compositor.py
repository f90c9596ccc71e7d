"""Overlay a prepared logo onto a background and encode the result.

Placement is decided upstream by the layout engine; this module only checks
that the rasters match the layout, alpha-blends and encodes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont, ImageOps

from . import config
from .errors import CompositeDimensionMismatchError
from .geometry_types import CompositeResult, LayoutCalculation, round_half_up
from .image_io import encode_image_bytes, load_rgba_image
from .svg_parser import parse_svg, reframe_svg

logger = logging.getLogger(__name__)

PREVIEW_FORMAT = "jpeg"
PREVIEW_QUALITY = 70
WATERMARK_POSITIONS = ("top-left", "top-right", "bottom-left", "bottom-right")
WATERMARK_FILL = (255, 255, 255, 178)
WATERMARK_STROKE = (0, 0, 0, 77)


@dataclass(frozen=True)
class CompositeRequest:
    background: bytes
    logo: bytes
    layout: LayoutCalculation
    output_format: Optional[str] = None
    quality: Optional[int] = None


def _normalise_format(output_format: Optional[str]) -> str:
    if output_format is None:
        return config.DEFAULT_OUTPUT_FORMAT
    fmt = output_format.strip().lower()
    if fmt == "jpg":
        fmt = "jpeg"
    if fmt not in ("png", "jpeg", "webp"):
        raise ValueError(f"Unsupported output format '{output_format}'")
    return fmt


def _resolve_quality(quality: Optional[int]) -> int:
    if quality is None:
        return config.DEFAULT_OUTPUT_QUALITY
    if not 1 <= quality <= 100:
        raise ValueError(f"quality must be in [1, 100], got {quality}")
    return int(quality)


def _is_svg(logo_format: str) -> bool:
    return logo_format.lower() in ("svg", "image/svg+xml")


def _rasterize_svg(data: bytes, width: int, height: int) -> Image.Image:
    """Render the drawn content of vector markup onto ``width x height``.

    The frame is the same content box the analysis and layout use, so the
    artwork fills the layout slot instead of its (possibly larger) canvas.
    """
    # needs the native cairo library at runtime
    import cairosvg

    document = parse_svg(data)
    frame = document.bounding_box
    if not frame.area:
        frame = document.canvas_box
    png = cairosvg.svg2png(
        bytestring=reframe_svg(data, frame, width, height),
        output_width=width,
        output_height=height,
    )
    rendered = load_rgba_image(png)
    if rendered.size != (width, height):
        rendered = rendered.resize((width, height), Image.Resampling.LANCZOS)
    return rendered


def prepare_logo(logo: bytes, logo_format: str, width: int, height: int) -> bytes:
    """Fit the logo inside ``width x height`` on a transparent canvas.

    Vector logos are rasterised with their content box stretched onto the
    slot, which the layout engine sized to that box. Rasters keep their
    aspect ratio. The returned PNG is always exactly ``width x height`` with
    the logo centred.
    """
    if width <= 0 or height <= 0:
        raise CompositeDimensionMismatchError(f"Cannot prepare a logo at {width}x{height}")
    if _is_svg(logo_format):
        fitted = _rasterize_svg(logo, width, height)
    else:
        fitted = load_rgba_image(logo)
    if fitted.size != (width, height):
        fitted = ImageOps.contain(fitted, (width, height), method=Image.Resampling.LANCZOS)

    canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    canvas.paste(fitted, ((width - fitted.width) // 2, (height - fitted.height) // 2))
    buffer, _ = encode_image_bytes(canvas, format="png")
    return buffer


def _visible_region(
    position: Tuple[int, int], size: Tuple[int, int], canvas: Tuple[int, int]
) -> Optional[Tuple[Tuple[int, int, int, int], Tuple[int, int]]]:
    """Source crop box and destination offset of the part inside the canvas."""
    x, y = position
    w, h = size
    left, top = max(0, -x), max(0, -y)
    right, bottom = min(w, canvas[0] - x), min(h, canvas[1] - y)
    if right <= left or bottom <= top:
        return None
    return (left, top, right, bottom), (x + left, y + top)


def composite(
    background: bytes,
    logo: bytes,
    layout: LayoutCalculation,
    output_format: Optional[str] = None,
    quality: Optional[int] = None,
) -> CompositeResult:
    """Alpha-blend a prepared logo onto a background at the layout position.

    Parts of the logo outside the canvas (``cover`` layouts) are clipped.

    Raises:
        CompositeDimensionMismatchError: the logo is not
            ``logo_width x logo_height`` or the background is not the canvas size.
    """
    fmt = _normalise_format(output_format)
    quality = _resolve_quality(quality)

    base = load_rgba_image(background)
    overlay = load_rgba_image(logo)
    if base.size != (layout.canvas_width, layout.canvas_height):
        raise CompositeDimensionMismatchError(
            f"Background is {base.width}x{base.height}, layout canvas is "
            f"{layout.canvas_width}x{layout.canvas_height}"
        )
    if overlay.size != (layout.logo_width, layout.logo_height):
        raise CompositeDimensionMismatchError(
            f"Logo is {overlay.width}x{overlay.height}, layout expects "
            f"{layout.logo_width}x{layout.logo_height}"
        )

    merged = base.copy()
    region = _visible_region((layout.logo_x, layout.logo_y), overlay.size, merged.size)
    if region is None:
        logger.warning(
            "Logo at (%d, %d) lies entirely outside the %dx%d canvas",
            layout.logo_x,
            layout.logo_y,
            merged.width,
            merged.height,
        )
    else:
        source, dest = region
        merged.alpha_composite(overlay.crop(source), dest=dest)

    buffer, _ = encode_image_bytes(merged, format=fmt, quality=quality)
    logger.debug("composite: %s %dx%d, %d bytes", fmt, merged.width, merged.height, len(buffer))
    return CompositeResult(
        buffer=buffer,
        format=fmt,
        width=merged.width,
        height=merged.height,
        size=len(buffer),
    )


def scale_layout(layout: LayoutCalculation, scale: float) -> LayoutCalculation:
    """Canvas and logo placement scaled by ``scale``; margins are unchanged."""
    canvas_w = max(1, round_half_up(layout.canvas_width * scale))
    canvas_h = max(1, round_half_up(layout.canvas_height * scale))
    return replace(
        layout,
        canvas_width=canvas_w,
        canvas_height=canvas_h,
        logo_width=max(1, round_half_up(layout.logo_width * scale)),
        logo_height=max(1, round_half_up(layout.logo_height * scale)),
        logo_x=round_half_up(layout.logo_x * scale),
        logo_y=round_half_up(layout.logo_y * scale),
        logo_scale=layout.logo_scale * scale,
        usable_width=round_half_up(layout.usable_width * scale),
        usable_height=round_half_up(layout.usable_height * scale),
        usable_x=round_half_up(layout.usable_x * scale),
        usable_y=round_half_up(layout.usable_y * scale),
    )


def create_preview(
    background: bytes,
    logo: bytes,
    logo_format: str,
    layout: LayoutCalculation,
    scale: Optional[float] = None,
) -> CompositeResult:
    """Reduced-size JPEG composite for quick previews."""
    scale = scale or config.PREVIEW_SCALE
    preview_layout = scale_layout(layout, scale)
    small_background = load_rgba_image(background).resize(
        (preview_layout.canvas_width, preview_layout.canvas_height), Image.Resampling.LANCZOS
    )
    background_bytes, _ = encode_image_bytes(small_background, format="png")
    prepared = prepare_logo(logo, logo_format, preview_layout.logo_width, preview_layout.logo_height)
    return composite(
        background_bytes, prepared, preview_layout, output_format=PREVIEW_FORMAT, quality=PREVIEW_QUALITY
    )


def batch_composite(requests: Sequence[CompositeRequest]) -> List[CompositeResult]:
    """Composite every request; failing ones are logged and left out."""
    results: List[CompositeResult] = []
    for index, request in enumerate(requests):
        try:
            results.append(
                composite(
                    request.background,
                    request.logo,
                    request.layout,
                    output_format=request.output_format,
                    quality=request.quality,
                )
            )
        except Exception:
            logger.exception("Batch composite failed for request %d", index)
    return results


def add_watermark(image: bytes, text: str, position: str = "bottom-right") -> bytes:
    """Draw semi-transparent ``text`` in a corner; returns PNG bytes."""
    if position not in WATERMARK_POSITIONS:
        raise ValueError(f"Unknown watermark position '{position}'")
    base = load_rgba_image(image)
    width, height = base.size
    font_size = max(12, int(min(width, height) * 0.02))
    padding = font_size

    layer = Image.new("RGBA", base.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)
    font = ImageFont.load_default(size=font_size)
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font, stroke_width=1)
    text_w, text_h = right - left, bottom - top

    x = padding if position.endswith("left") else width - padding - text_w
    y = padding if position.startswith("top") else height - padding - text_h
    draw.text(
        (x - left, y - top),
        text,
        font=font,
        fill=WATERMARK_FILL,
        stroke_width=1,
        stroke_fill=WATERMARK_STROKE,
    )
    buffer, _ = encode_image_bytes(Image.alpha_composite(base, layer), format="png")
    return buffer

