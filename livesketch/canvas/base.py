# livesketch/canvas/base.py
"""
Base canvas class providing the common interface for render payload consumers.

This module defines the abstract base class every canvas inherits from,
together with the pieces of command semantics that do not depend on a drawing
backend: colour parsing and the geometry used to find the command under the
pointer.
"""
import abc
import math
from typing import List, Sequence, Tuple

import numpy as np

from ..core import DrawCommand

LINE_HIT_TOLERANCE = 3.0  # Extra pixels around a line that still count as a hit
PARAMS_ERRORS = (TypeError, ValueError, IndexError)  # Raised while reading malformed command params


## --- Colours ---
def parse_color(value) -> Tuple[float, float, float, float] | None:
    """
    Converts a sketch colour into an RGBA tuple with components in [0, 1].

    Args:
        value: '#rgb', '#rrggbb', '#rrggbbaa', a 3/4-sequence of floats in
            [0, 1], or None

    Returns:
        (r, g, b, a) tuple, or None when `value` is None

    Raises:
        ValueError: If the value is not a recognized colour

    Examples:
        >>> parse_color("#f00")
        (1.0, 0.0, 0.0, 1.0)
        >>> parse_color([0.5, 0.5, 1.0])
        (0.5, 0.5, 1.0, 1.0)
    """
    if value is None:
        return None
    if isinstance(value, str):
        digits = value.lstrip("#")
        if len(digits) in (3, 4):
            digits = "".join(c * 2 for c in digits)
        if len(digits) not in (6, 8):
            raise ValueError(f"Invalid colour: {value!r}")
        try:
            channels = [int(digits[i:i + 2], 16) / 255.0 for i in range(0, len(digits), 2)]
        except ValueError:
            raise ValueError(f"Invalid colour: {value!r}") from None
    else:
        channels = [float(c) for c in value]
        if len(channels) not in (3, 4):
            raise ValueError(f"Invalid colour: {value!r}")
    if len(channels) == 3:
        channels.append(1.0)
    return tuple(channels)


## --- Hit Testing ---
def _point_in_polygon(points: np.ndarray, x: float, y: float) -> bool:
    """Even-odd ray casting test."""
    inside = False
    j = len(points) - 1
    for i in range(len(points)):
        xi, yi = points[i]
        xj, yj = points[j]
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def _distance_to_segment(a: np.ndarray, b: np.ndarray, p: np.ndarray) -> float:
    ab = b - a
    length_sq = float(ab @ ab)
    if length_sq == 0.0:
        return float(np.linalg.norm(p - a))
    t = min(1.0, max(0.0, float((p - a) @ ab) / length_sq))
    return float(np.linalg.norm(p - (a + t * ab)))


def contains(command: DrawCommand, x: float, y: float) -> bool:
    """
    Returns True if the point (x, y) lies on the shape drawn by `command`.

    Ellipses are positioned by their centre, rectangles by their top-left
    corner; a background covers the whole canvas.
    """
    params = command.params
    if command.name == "background":
        return True
    if command.name == "ellipse":
        cx, cy = params.get("pos", (0, 0))
        w, h = params.get("size", (0, 0))
        if w <= 0 or h <= 0:
            return False
        return ((x - cx) / (w / 2.0)) ** 2 + ((y - cy) / (h / 2.0)) ** 2 <= 1.0
    if command.name == "rect":
        left, top = params.get("pos", (0, 0))
        w, h = params.get("size", (0, 0))
        return left <= x <= left + w and top <= y <= top + h
    if command.name == "line":
        a = np.asarray(params.get("a", (0, 0)), dtype=float)
        b = np.asarray(params.get("b", (0, 0)), dtype=float)
        reach = float(params.get("strokeWidth", 1.0)) / 2.0 + LINE_HIT_TOLERANCE
        return _distance_to_segment(a, b, np.array([x, y], dtype=float)) <= reach
    if command.name == "polygon":
        points = np.asarray(params.get("points", ()), dtype=float)
        return len(points) >= 3 and _point_in_polygon(points, x, y)
    return False


def hit_test(commands: Sequence[DrawCommand], x: float, y: float) -> DrawCommand | None:
    """
    Finds the topmost command under (x, y); later commands draw over earlier ones.

    A command whose params have the wrong shape (e.g. a scalar `pos`) covers
    nothing and is skipped.
    """
    for command in reversed(commands):
        try:
            hit = contains(command, x, y)
        except PARAMS_ERRORS:
            continue
        if hit:
            return command
    return None


class BaseCanvas(abc.ABC):
    """
    Abstract base class for canvases.

    Each canvas keeps a registry of drawing implementations keyed by command
    name. Subclasses register their implementations and implement draw().

    Attributes:
        implementations (dict): Command name -> drawing callable

    Examples:
        >>> class MyCanvas(BaseCanvas):
        ...     def draw(self, commands, size):
        ...         return [self.implementations[c.name] for c in commands]
    """
    def __init__(self):
        self.implementations = {}

    def implementation(self, command: DrawCommand):
        """
        Looks up the drawing callable for a command.

        Raises:
            ValueError: If this canvas cannot draw the command
        """
        if command.name not in self.implementations:
            raise ValueError(f"Unknown drawing command: {command.name}")
        return self.implementations[command.name]

    @abc.abstractmethod
    def draw(self, commands: List[DrawCommand], size: Tuple[int, int]):
        """
        Draws a render payload in order, later commands over earlier ones.

        Args:
            commands: The payload reported by the simulation loop
            size: Canvas (width, height) in pixels

        Returns:
            The backend's rendering of the payload
        """
        raise NotImplementedError


def ellipse_points(center, size, num: int = 60) -> np.ndarray:
    """Samples the outline of an axis-aligned ellipse."""
    t = np.linspace(0.0, 2.0 * math.pi, num=num)
    return np.stack([center[0] + size[0] / 2.0 * np.cos(t),
                     center[1] + size[1] / 2.0 * np.sin(t)], axis=1)
