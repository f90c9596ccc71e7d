import logging
import sys
import types

import numpy as np
import pytest

from helpers import make_layout, make_png, open_png, pixel, require_cairosvg, svg_document
from logo_processor import config
from logo_processor.compositor import (
    CompositeRequest,
    add_watermark,
    batch_composite,
    composite,
    create_preview,
    prepare_logo,
)
from logo_processor.errors import CompositeDimensionMismatchError
from logo_processor.geometry_types import BoundingBox
from logo_processor.layout_engine import compute_layout
from logo_processor.logo_analysis import analyze
from logo_processor.svg_parser import parse_svg

WHITE = (255, 255, 255, 255)
RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)


def _white(width, height):
    return make_png(width, height, background=WHITE)


def test_composite_places_logo_at_layout_position():
    logo = make_png(20, 10, content=(0, 0, 20, 10), color=RED)
    result = composite(_white(100, 50), logo, make_layout((100, 50), (20, 10), (30, 20)))
    assert (result.width, result.height, result.format) == (100, 50, "png")
    assert result.size == len(result.buffer)
    assert pixel(result.buffer, 35, 25) == RED
    assert pixel(result.buffer, 29, 25) == WHITE
    assert pixel(result.buffer, 0, 0) == WHITE


def test_composite_blends_translucent_pixels():
    logo = make_png(10, 10, content=(0, 0, 10, 10), color=(0, 0, 255, 128))
    result = composite(_white(10, 10), logo, make_layout((10, 10), (10, 10), (0, 0)))
    r, g, b, a = pixel(result.buffer, 5, 5)
    assert abs(r - 127) <= 1 and abs(g - 127) <= 1
    assert (b, a) == (255, 255)


def test_cover_layout_is_clipped_to_the_canvas():
    logo = make_png(100, 50, content=(0, 0, 50, 50), color=RED, background=BLUE)
    result = composite(_white(50, 50), logo, make_layout((50, 50), (100, 50), (-25, 0)))
    assert (result.width, result.height) == (50, 50)
    assert pixel(result.buffer, 0, 0) == RED
    assert pixel(result.buffer, 49, 0) == BLUE


def test_logo_outside_canvas_leaves_background(caplog):
    logo = make_png(10, 10, content=(0, 0, 10, 10), color=RED)
    with caplog.at_level(logging.WARNING):
        result = composite(_white(20, 20), logo, make_layout((20, 20), (10, 10), (30, 30)))
    assert pixel(result.buffer, 19, 19) == WHITE
    assert "entirely outside" in caplog.text


def test_composite_rejects_mismatched_logo():
    logo = make_png(12, 10)
    with pytest.raises(CompositeDimensionMismatchError):
        composite(_white(100, 50), logo, make_layout((100, 50), (20, 10), (0, 0)))


def test_composite_rejects_mismatched_background():
    logo = make_png(20, 10)
    with pytest.raises(CompositeDimensionMismatchError):
        composite(_white(90, 50), logo, make_layout((100, 50), (20, 10), (0, 0)))


@pytest.mark.parametrize("fmt, pil_format", [("jpg", "JPEG"), ("jpeg", "JPEG"), ("webp", "WEBP"), ("PNG", "PNG")])
def test_output_formats(fmt, pil_format):
    logo = make_png(10, 10, content=(0, 0, 10, 10), color=RED)
    result = composite(_white(20, 20), logo, make_layout((20, 20), (10, 10), (5, 5)), output_format=fmt)
    assert open_png(result.buffer).format == pil_format
    assert result.format == pil_format.lower()


def test_default_format_comes_from_config(monkeypatch):
    monkeypatch.setattr(config, "DEFAULT_OUTPUT_FORMAT", "webp")
    result = composite(_white(8, 8), make_png(4, 4), make_layout((8, 8), (4, 4), (0, 0)))
    assert result.format == "webp"


@pytest.mark.parametrize("kwargs", [{"quality": 0}, {"quality": 101}, {"output_format": "gif"}])
def test_invalid_encoding_options_raise(kwargs):
    with pytest.raises(ValueError):
        composite(_white(8, 8), make_png(4, 4), make_layout((8, 8), (4, 4), (0, 0)), **kwargs)


def test_prepare_logo_contains_and_centres_raster():
    logo = make_png(40, 20, content=(0, 0, 40, 20), color=RED)
    prepared = open_png(prepare_logo(logo, "image/png", 30, 30)).convert("RGBA")
    assert prepared.size == (30, 30)
    alpha = np.asarray(prepared)[:, :, 3]
    rows = np.where(alpha.any(axis=1))[0]
    assert (rows.min(), rows.max()) == (7, 21)
    assert prepared.getpixel((15, 15)) == RED


def test_prepare_logo_rejects_empty_target():
    with pytest.raises(CompositeDimensionMismatchError):
        prepare_logo(make_png(4, 4), "png", 0, 4)


def _recording_cairosvg(monkeypatch):
    calls = {}

    def svg2png(*, bytestring, output_width, output_height):
        calls["markup"] = bytestring
        calls["size"] = (output_width, output_height)
        return make_png(output_width, output_height, content=(0, 0, output_width, output_height), color=RED)

    monkeypatch.setitem(sys.modules, "cairosvg", types.SimpleNamespace(svg2png=svg2png))
    return calls


@pytest.mark.parametrize(
    "body, frame",
    [
        ('<rect x="0" y="90" width="200" height="20"/>', BoundingBox(0, 90, 200, 20)),
        ('<g transform="translate(10,10)"><circle cx="40" cy="40" r="20"/></g>', BoundingBox(30, 30, 40, 40)),
        # a bare vertical line has no area, so the whole canvas is framed
        ('<line x1="50" y1="0" x2="50" y2="100" stroke="black"/>', BoundingBox(0, 0, 200, 200)),
    ],
)
def test_svg_is_rendered_from_its_content_box(monkeypatch, body, frame):
    calls = _recording_cairosvg(monkeypatch)
    svg = svg_document(body, 'viewBox="0 0 200 200"')
    prepared = open_png(prepare_logo(svg, "image/svg+xml", 1120, 112))

    assert calls["size"] == (1120, 112)
    rendered = parse_svg(calls["markup"])
    assert rendered.canvas_box == frame
    assert (rendered.width, rendered.height) == (1120, 112)
    assert rendered.root.attributes["preserveAspectRatio"] == "none"
    assert prepared.size == (1120, 112)


def test_vector_logo_fills_its_layout_slot():
    require_cairosvg()
    svg = svg_document('<rect x="0" y="90" width="200" height="20" fill="#ff0000"/>', 'viewBox="0 0 200 200"')
    layout = compute_layout(analyze(svg, "image/svg+xml"), 1600, 400)
    assert (layout.logo_width, layout.logo_height) == (1120, 112)

    prepared = np.asarray(
        open_png(prepare_logo(svg, "image/svg+xml", layout.logo_width, layout.logo_height)).convert("RGBA")
    )
    assert prepared.shape == (112, 1120, 4)
    # the artwork reaches every edge of the slot
    assert prepared[1:-1, 1:-1, 3].min() == 255
    assert tuple(prepared[1, 1]) == RED
    assert tuple(prepared[-2, -2]) == RED


def test_offset_vector_content_is_not_letterboxed():
    require_cairosvg()
    svg = svg_document('<rect x="50" y="50" width="100" height="100" fill="#ff0000"/>')
    prepared = np.asarray(open_png(prepare_logo(svg, "image/svg+xml", 60, 60)).convert("RGBA"))
    assert prepared[1:-1, 1:-1, 3].min() == 255
    assert tuple(prepared[30, 30]) == RED


def test_create_preview_is_scaled_jpeg():
    logo = make_png(40, 40, content=(0, 0, 40, 40), color=RED)
    layout = make_layout((200, 100), (40, 40), (80, 30))
    result = create_preview(_white(200, 100), logo, "png", layout, scale=0.5)
    assert result.format == "jpeg"
    assert (result.width, result.height) == (100, 50)
    r, g, b = open_png(result.buffer).getpixel((50, 25))
    assert r > 200 and g < 60 and b < 60


def test_create_preview_uses_configured_scale(monkeypatch):
    monkeypatch.setattr(config, "PREVIEW_SCALE", 0.25)
    layout = make_layout((200, 100), (40, 40), (80, 30))
    result = create_preview(_white(200, 100), make_png(40, 40), "png", layout)
    assert (result.width, result.height) == (50, 25)


def test_batch_composite_skips_failures(caplog):
    good = CompositeRequest(_white(20, 20), make_png(10, 10), make_layout((20, 20), (10, 10), (0, 0)))
    bad = CompositeRequest(_white(20, 20), make_png(11, 10), make_layout((20, 20), (10, 10), (0, 0)))
    with caplog.at_level(logging.ERROR):
        results = batch_composite([bad, good, bad])
    assert len(results) == 1
    assert caplog.text.count("Batch composite failed") == 2


def test_add_watermark_draws_in_requested_corner():
    base = make_png(200, 200, background=(0, 0, 0, 255))
    marked = np.asarray(open_png(add_watermark(base, "ACME")).convert("RGBA"))
    assert marked.shape == (200, 200, 4)
    assert marked[150:, 100:, :3].max() > 100
    assert marked[:100, :100, :3].max() == 0

    top_left = np.asarray(open_png(add_watermark(base, "ACME", position="top-left")).convert("RGBA"))
    assert top_left[:50, :100, :3].max() > 100
    assert top_left[150:, 100:, :3].max() == 0


def test_add_watermark_rejects_unknown_position():
    with pytest.raises(ValueError):
        add_watermark(make_png(10, 10), "x", position="middle")
