"""Test helpers for building synthetic logos and reading encoded images."""

import io
from typing import Optional, Tuple

import numpy as np
import pytest
from PIL import Image

from logo_processor.geometry_types import (
    BoundingBox,
    LayoutCalculation,
    LogoAnalysis,
    LogoKind,
    SafeMargins,
)

RGBA = Tuple[int, int, int, int]


def png_bytes(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def make_png(
    width: int,
    height: int,
    *,
    content: Optional[Tuple[int, int, int, int]] = None,
    color: RGBA = (200, 30, 30, 255),
    background: RGBA = (0, 0, 0, 0),
) -> bytes:
    """RGBA PNG with an optional filled rectangle ``(x, y, w, h)``."""
    arr = np.zeros((height, width, 4), dtype=np.uint8)
    arr[:, :] = background
    if content is not None:
        x, y, w, h = content
        arr[y : y + h, x : x + w] = color
    return png_bytes(Image.fromarray(arr))


def make_rgb_png(width: int, height: int, color: Tuple[int, int, int] = (10, 120, 240)) -> bytes:
    return png_bytes(Image.new("RGB", (width, height), color))


def open_png(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


def pixel(data: bytes, x: int, y: int) -> Tuple[int, ...]:
    return open_png(data).convert("RGBA").getpixel((x, y))


def svg_document(body: str, attrs: str = 'width="200" height="200"') -> bytes:
    return f'<svg xmlns="http://www.w3.org/2000/svg" {attrs}>{body}</svg>'.encode("utf-8")


def square_analysis(
    size: float = 100.0, margin: float = 0.1, kind: LogoKind = LogoKind.RASTER
) -> LogoAnalysis:
    return make_analysis(BoundingBox(0, 0, size, size), margin=margin, kind=kind)


def make_analysis(
    box: BoundingBox, *, margin: float = 0.1, kind: LogoKind = LogoKind.RASTER
) -> LogoAnalysis:
    return LogoAnalysis(
        kind=kind,
        bounding_box=box,
        intrinsic_aspect_ratio=box.aspect_ratio,
        safe_margins=SafeMargins.uniform(margin),
    )


def make_layout(
    canvas: Tuple[int, int], logo: Tuple[int, int], position: Tuple[int, int]
) -> LayoutCalculation:
    """Layout with zero margins for compositor tests."""
    return LayoutCalculation(
        canvas_width=canvas[0],
        canvas_height=canvas[1],
        canvas_aspect_ratio=canvas[0] / canvas[1],
        logo_width=logo[0],
        logo_height=logo[1],
        logo_x=position[0],
        logo_y=position[1],
        logo_scale=1.0,
        margin_top=0.0,
        margin_right=0.0,
        margin_bottom=0.0,
        margin_left=0.0,
        usable_width=canvas[0],
        usable_height=canvas[1],
        usable_x=0,
        usable_y=0,
    )


def require_cairosvg() -> None:
    """Skip when cairosvg or its native cairo library is not installed."""
    try:
        import cairosvg  # noqa: F401
    except (ImportError, OSError) as exc:
        pytest.skip(f"cairosvg unavailable: {exc}")
