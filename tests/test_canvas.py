import numpy as np
import pytest

from livesketch.canvas.base import contains, hit_test, parse_color
from livesketch.canvas.cairo_canvas import CairoCanvas, export_animation, export_image
from livesketch.core import DrawCommand


def test_parse_color_forms():
    assert parse_color("#f00") == (1.0, 0.0, 0.0, 1.0)
    assert parse_color("#00ff0080") == pytest.approx((0.0, 1.0, 0.0, 128 / 255))
    assert parse_color([0.5, 0.5, 1.0]) == (0.5, 0.5, 1.0, 1.0)
    assert parse_color(None) is None
    for bad in ("#12", "#gggggg", [1, 2]):
        with pytest.raises(ValueError):
            parse_color(bad)


def test_background_fills_the_raster():
    image = CairoCanvas().draw([DrawCommand("background", {"fill": "#481212"})], (120, 80))
    assert image.shape == (80, 120, 3)
    np.testing.assert_allclose(image[40, 60], [0x48 / 255, 0x12 / 255, 0x12 / 255], atol=1 / 255)


def test_shapes_draw_over_each_other_in_order():
    commands = [
        DrawCommand("background", {"fill": "#fff"}),
        DrawCommand("rect", {"pos": [0, 0], "size": [50, 100], "fill": "#00f"}),
        DrawCommand("ellipse", {"pos": [50, 50], "size": [20, 20], "fill": "#f00"}),
        DrawCommand("line", {"a": [0, 90], "b": [100, 90], "strokeWidth": 4}),
        DrawCommand("polygon", {"points": [[70, 0], [100, 0], [100, 30]], "stroke": "#0f0"}),
    ]
    image = CairoCanvas().draw(commands, (100, 100))
    np.testing.assert_allclose(image[50, 50], [1, 0, 0], atol=0.01)
    np.testing.assert_allclose(image[20, 10], [0, 0, 1], atol=0.01)
    np.testing.assert_allclose(image[20, 80], [1, 1, 1], atol=0.01)
    np.testing.assert_allclose(image[90, 75], [0, 0, 0], atol=0.01)


def test_unknown_command_is_rejected():
    with pytest.raises(ValueError, match="Unknown drawing command"):
        CairoCanvas().draw([DrawCommand("circle", {})], (10, 10))


def test_hit_testing_geometry():
    ellipse = DrawCommand("ellipse", {"pos": [50, 50], "size": [20, 10]})
    assert contains(ellipse, 59, 50)
    assert not contains(ellipse, 50, 56)
    line = DrawCommand("line", {"a": [0, 0], "b": [100, 0]})
    assert contains(line, 50, 3)
    assert not contains(line, 50, 4)
    triangle = DrawCommand("polygon", {"points": [[0, 0], [10, 0], [0, 10]]})
    assert contains(triangle, 2, 2)
    assert not contains(triangle, 8, 8)

    background = DrawCommand("background", {"fill": "#000"})
    rect = DrawCommand("rect", {"pos": [10, 10], "size": [30, 30]})
    assert hit_test([background, rect], 20, 20) is rect
    assert hit_test([rect, background], 20, 20) is background
    assert hit_test([rect], 0, 0) is None

    scalar = DrawCommand("ellipse", {"pos": 5, "size": [4, 4]})
    ragged = DrawCommand("polygon", {"points": [[0, 0], [10]]})
    assert hit_test([scalar], 5, 5) is None
    assert hit_test([background, scalar, ragged], 5, 5) is background


def test_export_image_and_animation(tmp_path):
    frame = CairoCanvas().draw([DrawCommand("background", {"fill": "#123456"})], (16, 16))
    png = tmp_path / "out" / "frame.png"
    export_image(frame, str(png))
    assert png.exists()
    gif = tmp_path / "anim.gif"
    export_animation([frame, frame], str(gif), fps=10)
    assert gif.exists()
