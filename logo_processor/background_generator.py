"""Solid, gradient and pattern backgrounds rendered with numpy and Pillow."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence, Tuple, Union

import numpy as np
from PIL import Image, ImageColor, ImageDraw

from .image_io import encode_image_bytes

logger = logging.getLogger(__name__)

RGBA = Tuple[int, int, int, int]

PATTERN_TYPES = ("dots", "grid", "diagonal-lines", "checkerboard")
BACKGROUND_TYPES = ("solid", "linear-gradient", "radial-gradient", "pattern")
PALETTE_GRADIENT_ANGLE = 135.0
FALLBACK_COLOR = "#ffffff"


@dataclass(frozen=True)
class SolidBackground:
    color: str
    type: str = "solid"


@dataclass(frozen=True)
class LinearGradientBackground:
    """Two-stop gradient; ``angle`` 0 runs left to right, 90 top to bottom."""

    start_color: str
    end_color: str
    angle: float = 0.0
    type: str = "linear-gradient"


@dataclass(frozen=True)
class RadialGradientBackground:
    """Two-stop gradient around ``(center_x, center_y)`` given in 0-1 units."""

    center_color: str
    edge_color: str
    center_x: float = 0.5
    center_y: float = 0.5
    type: str = "radial-gradient"


@dataclass(frozen=True)
class PatternBackground:
    pattern_type: str
    foreground_color: str
    background_color: str
    scale: float = 1.0
    type: str = "pattern"


BackgroundOptions = Union[
    SolidBackground, LinearGradientBackground, RadialGradientBackground, PatternBackground
]


def parse_color(color: str) -> RGBA:
    """Hex, ``rgb()``/``rgba()``/``hsl()`` or a CSS colour name as RGBA."""
    rgb = ImageColor.getrgb(color.strip())
    if len(rgb) == 3:
        return (rgb[0], rgb[1], rgb[2], 255)
    return (rgb[0], rgb[1], rgb[2], rgb[3])


def lighten_color(color: str, percent: float) -> str:
    """Move each channel ``percent``% of the way towards white."""
    r, g, b, _ = parse_color(color)
    factor = percent / 100

    def up(channel: int) -> int:
        return min(255, int(math.floor(channel + (255 - channel) * factor)))

    return f"#{up(r):02x}{up(g):02x}{up(b):02x}"


def _blend(start: RGBA, end: RGBA, t: np.ndarray) -> np.ndarray:
    """Per-pixel interpolation between two colours for ``t`` in [0, 1]."""
    a = np.asarray(start, dtype=np.float64)
    b = np.asarray(end, dtype=np.float64)
    out = a + (b - a) * t[..., None]
    return np.clip(np.rint(out), 0, 255).astype(np.uint8)


def _unit_grid(width: int, height: int) -> Tuple[np.ndarray, np.ndarray]:
    """Pixel-centre coordinates normalised to the 0-1 bounding box."""
    u = (np.arange(width, dtype=np.float64) + 0.5) / width
    v = (np.arange(height, dtype=np.float64) + 0.5) / height
    return np.meshgrid(u, v)


def render_solid(width: int, height: int, options: SolidBackground) -> Image.Image:
    return Image.new("RGBA", (width, height), parse_color(options.color))


def render_linear_gradient(width: int, height: int, options: LinearGradientBackground) -> Image.Image:
    rad = math.radians(options.angle)
    x1, y1 = 0.5 - 0.5 * math.cos(rad), 0.5 - 0.5 * math.sin(rad)
    x2, y2 = 0.5 + 0.5 * math.cos(rad), 0.5 + 0.5 * math.sin(rad)
    dx, dy = x2 - x1, y2 - y1
    u, v = _unit_grid(width, height)
    t = np.clip(((u - x1) * dx + (v - y1) * dy) / (dx * dx + dy * dy), 0.0, 1.0)
    pixels = _blend(parse_color(options.start_color), parse_color(options.end_color), t)
    return Image.fromarray(pixels)


def render_radial_gradient(width: int, height: int, options: RadialGradientBackground) -> Image.Image:
    u, v = _unit_grid(width, height)
    # radius is half the bounding box on each axis
    distance = np.hypot(u - options.center_x, v - options.center_y) / 0.5
    t = np.clip(distance, 0.0, 1.0)
    pixels = _blend(parse_color(options.center_color), parse_color(options.edge_color), t)
    return Image.fromarray(pixels)


def _pattern_tile(options: PatternBackground) -> Image.Image:
    fg = parse_color(options.foreground_color)
    bg = parse_color(options.background_color)
    scale = options.scale

    if options.pattern_type == "dots":
        spacing = max(1, int(round(20 * scale)))
        radius = 3 * scale
        tile = Image.new("RGBA", (spacing, spacing), bg)
        center = spacing / 2
        ImageDraw.Draw(tile).ellipse(
            (center - radius, center - radius, center + radius, center + radius), fill=fg
        )
        return tile
    if options.pattern_type == "grid":
        spacing = max(1, int(round(30 * scale)))
        stroke = max(1, int(round(scale)))
        tile = Image.new("RGBA", (spacing, spacing), bg)
        draw = ImageDraw.Draw(tile)
        draw.rectangle((0, 0, spacing - 1, stroke - 1), fill=fg)
        draw.rectangle((0, 0, stroke - 1, spacing - 1), fill=fg)
        return tile
    if options.pattern_type == "diagonal-lines":
        spacing = max(1, int(round(15 * scale)))
        stroke = max(1, int(round(2 * scale)))
        tile = Image.new("RGBA", (spacing, spacing), bg)
        ImageDraw.Draw(tile).line((0, 0, spacing, spacing), fill=fg, width=stroke)
        return tile
    if options.pattern_type == "checkerboard":
        size = max(1, int(round(20 * scale)))
        tile = Image.new("RGBA", (size * 2, size * 2), bg)
        draw = ImageDraw.Draw(tile)
        draw.rectangle((0, 0, size - 1, size - 1), fill=fg)
        draw.rectangle((size, size, 2 * size - 1, 2 * size - 1), fill=fg)
        return tile
    raise ValueError(f"Unknown pattern type: {options.pattern_type}")


def render_pattern(width: int, height: int, options: PatternBackground) -> Image.Image:
    if options.scale <= 0:
        raise ValueError(f"Pattern scale must be positive, got {options.scale}")
    tile = np.asarray(_pattern_tile(options))
    reps_y = -(-height // tile.shape[0])
    reps_x = -(-width // tile.shape[1])
    pixels = np.tile(tile, (reps_y, reps_x, 1))[:height, :width]
    return Image.fromarray(np.ascontiguousarray(pixels))


def render_background(width: int, height: int, options: BackgroundOptions) -> Image.Image:
    """Render ``options`` as an RGBA image of ``width x height``."""
    if width <= 0 or height <= 0:
        raise ValueError(f"Background size must be positive, got {width}x{height}")
    if isinstance(options, SolidBackground):
        return render_solid(width, height, options)
    if isinstance(options, LinearGradientBackground):
        return render_linear_gradient(width, height, options)
    if isinstance(options, RadialGradientBackground):
        return render_radial_gradient(width, height, options)
    if isinstance(options, PatternBackground):
        return render_pattern(width, height, options)
    raise ValueError(f"Unknown background type: {getattr(options, 'type', options)!r}")


def generate_background(width: int, height: int, options: BackgroundOptions) -> bytes:
    """PNG bytes of the rendered background."""
    image = render_background(width, height, options)
    logger.debug("generate_background: %s %dx%d", options.type, width, height)
    buffer, _ = encode_image_bytes(image, format="png")
    return buffer


def palette_background(palette: Sequence[str], style: str = "gradient") -> BackgroundOptions:
    """Background options derived from a logo palette.

    An empty palette gives plain white. A one-colour palette pairs the colour
    with a 20% lighter version for the gradient.
    """
    if not palette:
        return SolidBackground(color=FALLBACK_COLOR)
    if style == "solid":
        return SolidBackground(color=palette[0])
    if style != "gradient":
        raise ValueError(f"Unknown palette style '{style}'")
    end = palette[1] if len(palette) > 1 else lighten_color(palette[0], 20)
    return LinearGradientBackground(
        start_color=palette[0], end_color=end, angle=PALETTE_GRADIENT_ANGLE
    )


def generate_from_palette(
    width: int, height: int, palette: Sequence[str], style: str = "gradient"
) -> bytes:
    return generate_background(width, height, palette_background(palette, style))


def background_for_type(background_type: str, color: str) -> BackgroundOptions:
    """Options for a work item that only names a background type and one colour."""
    if background_type == "solid":
        return SolidBackground(color=color)
    if background_type == "linear-gradient":
        return LinearGradientBackground(
            start_color=color, end_color=lighten_color(color, 20), angle=PALETTE_GRADIENT_ANGLE
        )
    if background_type == "radial-gradient":
        return RadialGradientBackground(center_color=lighten_color(color, 20), edge_color=color)
    if background_type == "pattern":
        return PatternBackground(
            pattern_type="dots", foreground_color=lighten_color(color, 20), background_color=color
        )
    raise ValueError(f"Unknown background type: {background_type}")
