# livesketch/canvas/cairo_canvas.py
"""
Headless canvas drawing render payloads with Cairo.

The canvas rasterizes a list of DrawCommands into a numpy image so sketches can
be previewed, exported as PNG, or recorded frame by frame into an animation,
without a window. Coordinates are canvas pixels with the origin at the top-left
corner.

Supported commands:
    background {fill}
    ellipse    {pos (centre), size, fill, stroke, strokeWidth}
    rect       {pos (top-left), size, fill, stroke, strokeWidth}
    line       {a, b, stroke, strokeWidth}
    polygon    {points, fill, stroke, strokeWidth}
"""
import os
from typing import List, Tuple

import cairo
import imageio
import numpy as np

from ..core import DrawCommand
from .base import BaseCanvas, ellipse_points, parse_color

DEFAULT_INK = "#000"  # Fill used when a shape names neither fill nor stroke


class CairoCanvas(BaseCanvas):
    """
    Canvas that renders payloads onto a Cairo image surface.

    Attributes:
        line_width (float): Stroke width used when a command has no strokeWidth

    Examples:
        >>> canvas = CairoCanvas()
        >>> image = canvas.draw([DrawCommand("background", {"fill": "#481212"})], (600, 600))
        >>> image.shape
        (600, 600, 3)
    """
    def __init__(self, line_width: float = 1.0):
        super().__init__()
        self.line_width = line_width
        self.implementations.update({
            "background": self._background,
            "ellipse": self._ellipse,
            "rect": self._rect,
            "line": self._line,
            "polygon": self._polygon,
        })

    # --- Command implementations ---
    def _background(self, ctx, params):
        ctx.set_source_rgba(*parse_color(params.get("fill", "#fff")))
        ctx.paint()

    def _ellipse(self, ctx, params):
        w, h = params.get("size", (0, 0))
        if w <= 0 or h <= 0:
            return
        self._trace(ctx, ellipse_points(params.get("pos", (0, 0)), (w, h)), close=True)
        self._finish(ctx, params)

    def _rect(self, ctx, params):
        x, y = params.get("pos", (0, 0))
        w, h = params.get("size", (0, 0))
        ctx.rectangle(x, y, w, h)
        self._finish(ctx, params)

    def _line(self, ctx, params):
        self._trace(ctx, [params.get("a", (0, 0)), params.get("b", (0, 0))])
        self._finish(ctx, {"stroke": DEFAULT_INK, **params}, closed=False)

    def _polygon(self, ctx, params):
        points = params.get("points", ())
        if len(points) < 2:
            return
        self._trace(ctx, points, close=True)
        self._finish(ctx, params)

    # --- Helpers ---
    @staticmethod
    def _trace(ctx, points, close=False):
        points = np.asarray(points, dtype=float)
        ctx.move_to(points[0, 0], points[0, 1])
        for point in points[1:]:
            ctx.line_to(point[0], point[1])
        if close:
            ctx.close_path()

    def _finish(self, ctx, params, closed=True):
        fill = params.get("fill")
        stroke = params.get("stroke")
        if closed and fill is None and stroke is None:
            fill = DEFAULT_INK
        if closed and fill is not None:
            ctx.set_source_rgba(*parse_color(fill))
            ctx.fill_preserve()
        if stroke is not None:
            ctx.set_source_rgba(*parse_color(stroke))
            ctx.set_line_width(float(params.get("strokeWidth", self.line_width)))
            ctx.stroke_preserve()
        ctx.new_path()

    def draw(self, commands: List[DrawCommand], size: Tuple[int, int]) -> np.ndarray:
        """
        Renders a payload to a raster image.

        Args:
            commands: DrawCommands in drawing order
            size: Canvas (width, height) in pixels

        Returns:
            numpy array of shape (height, width, 3) with RGB values in [0, 1]

        Raises:
            ValueError: If a command has no implementation or a bad colour
            TypeError: If a command's geometry params have the wrong shape
        """
        width, height = size
        surface = cairo.ImageSurface(cairo.FORMAT_ARGB32, width, height)
        ctx = cairo.Context(surface)

        # --- Configure Canvas ---
        ctx.set_source_rgb(1, 1, 1)  # White until a background is drawn
        ctx.paint()
        ctx.set_line_cap(cairo.LINE_CAP_ROUND)
        ctx.set_line_join(cairo.LINE_JOIN_ROUND)

        for command in commands:
            self.implementation(command)(ctx, command.params)

        # --- Extract Buffer ---
        surface.flush()
        stride = surface.get_stride()
        buf = surface.get_data()
        img_array = np.ndarray(shape=(height, stride // 4, 4), dtype=np.uint8, buffer=buf)[:, :width]
        img_array = img_array[:, :, [2, 1, 0]].astype(np.float32) / 255.0  # Reverse BGRA to RGB
        return img_array


def export_image(image_array: np.ndarray, export_path: str):
    """
    Exports a rendered image array to a PNG file, creating the output
    directory if it doesn't exist.

    Args:
        image_array: RGB image as numpy array with values in [0,1] range
        export_path: File path where the PNG should be saved
    """
    output_dir = os.path.dirname(export_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    imageio.imwrite(export_path, (image_array * 255).astype(np.uint8))


def export_animation(frames: List[np.ndarray], export_path: str, fps: float = 30.0):
    """Exports a sequence of rendered frames as an animated GIF."""
    output_dir = os.path.dirname(export_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    imageio.mimsave(export_path, [(f * 255).astype(np.uint8) for f in frames], duration=1000.0 / fps)  # ms per frame
