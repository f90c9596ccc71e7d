import logging

import pytest

from helpers import make_analysis, square_analysis
from logo_processor.errors import InvalidTargetSizeError
from logo_processor.geometry_types import Alignment, BoundingBox, FillMode, LayoutOptions
from logo_processor.layout_engine import (
    adjust_for_aspect_ratio,
    calculate_scale_factor,
    compute_layout,
)


def test_square_logo_on_wide_header():
    layout = compute_layout(square_analysis(100, margin=0.1), 1600, 400)
    assert (layout.logo_width, layout.logo_height) == (320, 320)
    assert (layout.logo_x, layout.logo_y) == (640, 40)
    assert layout.logo_scale == pytest.approx(3.2)
    assert (layout.usable_x, layout.usable_y) == (160, 40)
    assert (layout.usable_width, layout.usable_height) == (1280, 320)
    assert layout.canvas_aspect_ratio == 4


@pytest.mark.parametrize("target", [(1600, 400), (400, 1600), (333, 333), (1080, 1920), (48, 48)])
@pytest.mark.parametrize("box", [BoundingBox(0, 0, 100, 100), BoundingBox(0, 0, 300, 40)])
def test_contain_stays_inside_usable_area(target, box):
    layout = compute_layout(make_analysis(box, margin=0.1), *target)
    assert layout.logo_width <= layout.usable_width + 1
    assert layout.logo_height <= layout.usable_height + 1
    assert layout.logo_x + layout.logo_width <= layout.canvas_width
    assert layout.logo_y + layout.logo_height <= layout.canvas_height
    assert layout.logo_x >= 0 and layout.logo_y >= 0


def test_cover_may_overflow_the_canvas():
    analysis = make_analysis(BoundingBox(0, 0, 100, 50), margin=0)
    layout = compute_layout(analysis, 400, 400, LayoutOptions(fill_mode=FillMode.COVER))
    assert (layout.logo_width, layout.logo_height) == (800, 400)
    assert (layout.logo_x, layout.logo_y) == (-200, 0)
    assert layout.logo_scale == 8


def test_stretch_fills_usable_area():
    analysis = make_analysis(BoundingBox(0, 0, 100, 50), margin=0.1)
    layout = compute_layout(analysis, 400, 300, LayoutOptions(fill_mode="stretch"))
    assert (layout.logo_width, layout.logo_height) == (320, 240)
    assert (layout.logo_x, layout.logo_y) == (40, 30)
    assert layout.logo_scale == pytest.approx(3.2)


@pytest.mark.parametrize(
    "alignment, expected",
    [
        (Alignment.TOP_LEFT, (100, 50)),
        (Alignment.TOP, (300, 50)),
        (Alignment.CENTER, (300, 50)),
        (Alignment.RIGHT, (500, 50)),
        (Alignment.BOTTOM_RIGHT, (500, 50)),
        ("left", (100, 50)),
    ],
)
def test_alignment_positions(alignment, expected):
    layout = compute_layout(square_analysis(100), 1000, 500, LayoutOptions(alignment=alignment))
    assert (layout.logo_width, layout.logo_height) == (400, 400)
    assert (layout.logo_x, layout.logo_y) == expected


def test_bottom_alignment_on_tall_canvas():
    layout = compute_layout(square_analysis(100), 500, 1000, LayoutOptions(alignment="bottom-left"))
    assert (layout.logo_x, layout.logo_y) == (50, 500)


def test_custom_margins_override_single_side():
    options = LayoutOptions(custom_margins={"left": 0.25})
    layout = compute_layout(square_analysis(100), 1000, 500, options)
    assert layout.margin_left == 0.25
    assert layout.margin_right == pytest.approx(0.1)
    assert (layout.logo_x, layout.logo_y) == (375, 50)


def test_out_of_range_margins_are_clamped(caplog):
    options = LayoutOptions(custom_margins={"top": 0.7, "left": -0.1})
    with caplog.at_level(logging.WARNING):
        layout = compute_layout(square_analysis(100), 400, 400, options)
    assert layout.margin_top == 0.5
    assert layout.margin_left == 0.0
    assert "outside" in caplog.text


def test_unknown_margin_side_raises():
    with pytest.raises(ValueError):
        compute_layout(square_analysis(100), 400, 400, LayoutOptions(custom_margins={"middle": 0.1}))


@pytest.mark.parametrize("size", [(0, 100), (100, 0), (-1, -1)])
def test_invalid_target_raises(size):
    with pytest.raises(InvalidTargetSizeError):
        compute_layout(square_analysis(), *size)


def test_degenerate_logo_takes_usable_area():
    layout = compute_layout(make_analysis(BoundingBox(0, 0, 0, 0), margin=0.1), 200, 100)
    assert (layout.logo_width, layout.logo_height) == (160, 80)
    assert (layout.logo_x, layout.logo_y) == (20, 10)
    assert layout.logo_scale == 1


def test_calculate_scale_factor():
    assert calculate_scale_factor(100, 50, 400, 400) == 4
    assert calculate_scale_factor(100, 50, 400, 400, FillMode.COVER) == 8
    assert calculate_scale_factor(100, 50, 400, 400, "cover") == 8


def test_adjust_for_aspect_ratio_trims_canvas_around_center():
    layout = compute_layout(square_analysis(100), 1600, 400)
    adjusted = adjust_for_aspect_ratio(layout, 2.0)
    assert (adjusted.canvas_width, adjusted.canvas_height) == (800, 400)
    assert (adjusted.logo_x, adjusted.logo_y) == (240, 40)
    assert (adjusted.logo_width, adjusted.logo_height) == (320, 320)
    assert adjusted.canvas_aspect_ratio == 2.0
    assert layout.canvas_width == 1600


def test_adjust_for_aspect_ratio_keeps_fitting_logo_inside():
    options = LayoutOptions(alignment=Alignment.TOP_LEFT)
    layout = compute_layout(square_analysis(100), 1000, 200, options)
    assert (layout.logo_x, layout.logo_y) == (100, 20)
    adjusted = adjust_for_aspect_ratio(layout, 1.0)
    assert (adjusted.canvas_width, adjusted.canvas_height) == (200, 200)
    assert adjusted.logo_x == 0


def test_adjust_for_aspect_ratio_within_tolerance_is_a_no_op():
    layout = compute_layout(square_analysis(100), 1600, 400)
    assert adjust_for_aspect_ratio(layout, 4.005) is layout


def test_adjust_for_aspect_ratio_rejects_non_positive_ratio():
    layout = compute_layout(square_analysis(100), 100, 100)
    with pytest.raises(ValueError):
        adjust_for_aspect_ratio(layout, 0)
