import datetime as dt
import os

import pytest
from PIL import Image

from weatherdesk.compositor import (
    composite,
    composite_filename,
    find_latest_composite,
    render_canvas,
)
from weatherdesk.errors import CompositeError
from weatherdesk.models import CompositeLayer

BLUE = (0, 0, 255)
NOW = dt.datetime(2025, 12, 10, 7, 5)


def test_zero_layers_is_solid_background():
    canvas = render_canvas([], (16, 9), (135, 206, 235))

    expected = Image.new("RGBA", (16, 9), (135, 206, 235, 255))
    assert canvas.size == (16, 9)
    assert list(canvas.getdata()) == list(expected.getdata())


def test_layers_paint_at_exact_offsets_in_order(tmp_path, make_image):
    red = make_image(tmp_path / "red.png", size=(4, 4), color=(255, 0, 0))
    green = make_image(tmp_path / "green.png", size=(2, 2), color=(0, 255, 0))

    canvas = render_canvas(
        [CompositeLayer(red, (1, 1)), CompositeLayer(green, (3, 3))],
        (10, 10),
        BLUE,
    )

    assert canvas.getpixel((0, 0)) == BLUE + (255,)
    assert canvas.getpixel((1, 1)) == (255, 0, 0, 255)
    assert canvas.getpixel((3, 3)) == (0, 255, 0, 255)
    assert canvas.getpixel((4, 4)) == (0, 255, 0, 255)
    assert canvas.getpixel((5, 5)) == BLUE + (255,)


def test_missing_layer_is_skipped(tmp_path, make_image):
    red = make_image(tmp_path / "red.png", size=(2, 2), color=(255, 0, 0))
    green = make_image(tmp_path / "green.png", size=(2, 2), color=(0, 255, 0))
    missing = tmp_path / "gone.jpg"

    canvas = render_canvas(
        [CompositeLayer(red, (0, 0)), CompositeLayer(missing, (2, 2)), CompositeLayer(green, (5, 5))],
        (10, 10),
        BLUE,
    )

    assert canvas.getpixel((0, 0)) == (255, 0, 0, 255)
    assert canvas.getpixel((2, 2)) == BLUE + (255,)
    assert canvas.getpixel((5, 5)) == (0, 255, 0, 255)


def test_undecodable_layer_is_skipped(tmp_path, make_image):
    broken = tmp_path / "broken.png"
    broken.write_bytes(b"garbage")

    canvas = render_canvas([CompositeLayer(broken, (0, 0))], (4, 4), BLUE)

    assert canvas.getpixel((0, 0)) == BLUE + (255,)


def test_translucent_layer_blends_with_previous_layer(tmp_path, make_image):
    red = make_image(tmp_path / "red.png", size=(4, 4), color=(255, 0, 0))
    veil = make_image(tmp_path / "veil.png", size=(4, 4), color=(0, 255, 0, 128), mode="RGBA")

    canvas = render_canvas(
        [CompositeLayer(red, (0, 0)), CompositeLayer(veil, (0, 0))], (4, 4), BLUE
    )

    r, g, b, a = canvas.getpixel((1, 1))
    assert abs(r - 127) <= 2
    assert abs(g - 128) <= 2
    assert b == 0
    assert a == 255


def test_layer_overhanging_canvas_is_clipped(tmp_path, make_image):
    red = make_image(tmp_path / "red.png", size=(6, 6), color=(255, 0, 0))

    canvas = render_canvas([CompositeLayer(red, (-2, 7))], (10, 10), BLUE)

    assert canvas.getpixel((0, 9)) == (255, 0, 0, 255)
    assert canvas.getpixel((4, 9)) == BLUE + (255,)
    assert canvas.getpixel((0, 6)) == BLUE + (255,)


def test_composite_writes_timestamped_jpeg(tmp_path):
    output = composite([], (8, 8), BLUE, tmp_path / "rendered", now=NOW)

    assert output.name == "hud-251210-0705.jpg"
    with Image.open(output) as image:
        assert image.format == "JPEG"
        assert image.size == (8, 8)


def test_composite_never_overwrites_history(tmp_path):
    rendered = tmp_path / "rendered"
    first = composite([], (8, 8), BLUE, rendered, now=NOW)
    first_bytes = first.read_bytes()

    second = composite([], (8, 8), (255, 0, 0), rendered, now=NOW)

    assert second != first
    assert second.name == "hud-251210-0705-1.jpg"
    assert first.read_bytes() == first_bytes


def test_canvas_allocation_failure_is_fatal(tmp_path):
    with pytest.raises(CompositeError):
        composite([], (-1, 10), BLUE, tmp_path)


def test_composite_filename_format():
    assert composite_filename("wx", dt.datetime(2024, 1, 2, 3, 4)) == "wx-240102-0304.jpg"


def test_find_latest_composite_uses_mtime(tmp_path):
    older = tmp_path / "hud-251231-2359.jpg"
    newer = tmp_path / "hud-250101-0000.jpg"
    older.write_bytes(b"a")
    newer.write_bytes(b"b")
    os.utime(older, (1_000_000, 1_000_000))
    os.utime(newer, (2_000_000, 2_000_000))
    (tmp_path / "unrelated.jpg").write_bytes(b"c")

    assert find_latest_composite(tmp_path) == newer
    assert find_latest_composite(tmp_path / "missing") is None


def test_oversized_layer_is_skipped(tmp_path, make_image, make_oversized_png):
    huge = make_oversized_png(tmp_path / "huge.png")
    red = make_image(tmp_path / "red.png", size=(2, 2), color=(255, 0, 0))

    canvas = render_canvas(
        [CompositeLayer(huge, (0, 0)), CompositeLayer(red, (1, 1))], (4, 4), BLUE
    )

    assert canvas.getpixel((0, 0)) == BLUE + (255,)
    assert canvas.getpixel((1, 1)) == (255, 0, 0, 255)
