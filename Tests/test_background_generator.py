import numpy as np
import pytest

from helpers import open_png
from logo_processor.background_generator import (
    LinearGradientBackground,
    PatternBackground,
    RadialGradientBackground,
    SolidBackground,
    background_for_type,
    generate_background,
    generate_from_palette,
    lighten_color,
    palette_background,
    parse_color,
    render_background,
)


def _pixels(options, width=40, height=40):
    return np.asarray(render_background(width, height, options))


def test_solid_fills_every_pixel():
    pixels = _pixels(SolidBackground("#336699"), 10, 5)
    assert pixels.shape == (5, 10, 4)
    assert (pixels == (51, 102, 153, 255)).all()


def test_generate_background_encodes_png():
    data = generate_background(30, 20, SolidBackground("red"))
    img = open_png(data)
    assert img.format == "PNG"
    assert img.size == (30, 20)
    assert img.convert("RGBA").getpixel((0, 0)) == (255, 0, 0, 255)


def test_horizontal_linear_gradient():
    pixels = _pixels(LinearGradientBackground("#000000", "#ffffff", angle=0), 100, 10)
    row = pixels[5, :, 0].astype(int)
    assert row[0] <= 3 and row[-1] >= 252
    assert (np.diff(row) >= 0).all()
    # every row is identical
    assert (pixels[0] == pixels[9]).all()


def test_vertical_linear_gradient():
    pixels = _pixels(LinearGradientBackground("#000000", "#ffffff", angle=90), 10, 100)
    column = pixels[:, 5, 0].astype(int)
    assert column[0] <= 3 and column[-1] >= 252
    assert (pixels[:, 0] == pixels[:, 9]).all()


def test_radial_gradient_runs_from_center_to_edge():
    options = RadialGradientBackground(center_color="#ffffff", edge_color="#000000")
    pixels = _pixels(options, 100, 100)
    assert pixels[50, 50, 0] >= 245
    assert tuple(pixels[0, 0]) == (0, 0, 0, 255)
    assert tuple(pixels[99, 99]) == (0, 0, 0, 255)


def test_radial_gradient_honours_center():
    options = RadialGradientBackground("#ffffff", "#000000", center_x=0.0, center_y=0.0)
    pixels = _pixels(options, 100, 100)
    assert pixels[0, 0, 0] > pixels[50, 50, 0]


@pytest.mark.parametrize(
    "pattern_type, foreground_at, background_at",
    [
        ("dots", [(10, 10), (30, 30)], [(0, 0), (20, 0)]),
        ("grid", [(0, 5), (5, 0), (30, 5)], [(5, 5), (20, 20)]),
        ("checkerboard", [(0, 0), (25, 25), (45, 5)], [(25, 5), (5, 25)]),
        ("diagonal-lines", [(5, 5), (10, 10), (20, 20)], [(7, 0), (0, 10)]),
    ],
)
def test_patterns_tile_foreground_and_background(pattern_type, foreground_at, background_at):
    options = PatternBackground(pattern_type, foreground_color="#ff0000", background_color="#0000ff")
    pixels = _pixels(options, 60, 60)
    for x, y in foreground_at:
        assert tuple(pixels[y, x]) == (255, 0, 0, 255), (pattern_type, x, y)
    for x, y in background_at:
        assert tuple(pixels[y, x]) == (0, 0, 255, 255), (pattern_type, x, y)


def test_pattern_scale_grows_the_tile():
    options = PatternBackground("checkerboard", "#ff0000", "#0000ff", scale=2)
    pixels = _pixels(options, 80, 80)
    assert tuple(pixels[30, 30]) == (255, 0, 0, 255)
    assert tuple(pixels[10, 50]) == (0, 0, 255, 255)


@pytest.mark.parametrize(
    "color, percent, expected",
    [("#000000", 20, "#333333"), ("#ff8000", 20, "#ff9933"), ("#ffffff", 50, "#ffffff"), ("red", 0, "#ff0000")],
)
def test_lighten_color(color, percent, expected):
    assert lighten_color(color, percent) == expected


def test_parse_color_formats():
    assert parse_color("#abc") == (170, 187, 204, 255)
    assert parse_color(" rgba(1, 2, 3, 4) ") == (1, 2, 3, 4)
    assert parse_color("white") == (255, 255, 255, 255)


def test_palette_background_choices():
    assert palette_background([]) == SolidBackground("#ffffff")
    assert palette_background(["#123456"], style="solid") == SolidBackground("#123456")
    single = palette_background(["#ff0000"])
    assert single == LinearGradientBackground("#ff0000", "#ff3333", angle=135)
    pair = palette_background(["#ff0000", "#00ff00"])
    assert (pair.start_color, pair.end_color) == ("#ff0000", "#00ff00")


def test_generate_from_palette_uses_first_color():
    data = generate_from_palette(20, 20, ["#00ff00"], style="solid")
    assert open_png(data).convert("RGBA").getpixel((10, 10)) == (0, 255, 0, 255)


def test_background_for_type():
    assert background_for_type("solid", "#000000") == SolidBackground("#000000")
    linear = background_for_type("linear-gradient", "#000000")
    assert (linear.start_color, linear.end_color, linear.angle) == ("#000000", "#333333", 135)
    radial = background_for_type("radial-gradient", "#000000")
    assert (radial.center_color, radial.edge_color) == ("#333333", "#000000")
    pattern = background_for_type("pattern", "#000000")
    assert pattern.pattern_type == "dots"
    assert pattern.background_color == "#000000"


@pytest.mark.parametrize(
    "call",
    [
        lambda: render_background(0, 10, SolidBackground("#fff")),
        lambda: render_background(10, 10, PatternBackground("stars", "#000", "#fff")),
        lambda: render_background(10, 10, PatternBackground("dots", "#000", "#fff", scale=0)),
        lambda: render_background(10, 10, SolidBackground("not-a-color")),
        lambda: palette_background(["#fff"], style="mosaic"),
        lambda: background_for_type("plaid", "#fff"),
    ],
)
def test_invalid_backgrounds_raise(call):
    with pytest.raises(ValueError):
        call()
