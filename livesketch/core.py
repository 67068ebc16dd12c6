# livesketch/core.py
"""
Core data model for the live sketch pipeline.

This module provides the values that flow between the pipeline stages:
- Failures and the three sketch error kinds (parse, eval, runtime)
- Draw commands as reported to the canvas
- Input events queued for the next update
- The sketch definition produced by a successful evaluation

Source positions are reported against the pseudo-filename SKETCH_FILENAME,
under which every piece of user code is compiled.
"""
import traceback
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple


## --- Core Constants ---
SKETCH_FILENAME = "<sketch>"  # Filename user code is compiled under
META_KEY = "__meta"  # Reserved params key carrying the source line range
DEFAULT_CANVAS = (600, 600)  # Canvas size when setup.canvas is absent
EVENT_SOURCES = ("mousemove", "mousedown", "mouseup", "mouseleave")


## --- Failures ---
@dataclass(frozen=True)
class Failure:
    """
    A captured failure, as surfaced to the editor.

    Attributes:
        kind (str): Pipeline stage that failed: 'parse', 'eval' or 'runtime'
        message (str): Human readable message, e.g. "NameError: name 'x' is not defined"
        line (int | None): 1-based source line, when known
        column (int | None): 1-based source column, when known
    """
    kind: str
    message: str
    line: Optional[int] = None
    column: Optional[int] = None

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, "line": self.line, "column": self.column}


class SketchError(Exception):
    """Base class for failures raised by the pipeline stages."""
    kind = "sketch"

    def __init__(self, message: str, line: int | None = None, column: int | None = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column

    @property
    def failure(self) -> Failure:
        return Failure(self.kind, self.message, self.line, self.column)

    def __str__(self):
        if self.line is None:
            return self.message
        if self.column is None:
            return f"{self.message} (line {self.line})"
        return f"{self.message} (line {self.line}, column {self.column})"


class ParseError(SketchError):
    """The sketch source is not syntactically valid."""
    kind = "parse"


class EvalError(SketchError):
    """The sketch source parsed but failed while being executed."""
    kind = "eval"


class SketchRuntimeError(SketchError):
    """The sketch's update or draw function failed during a tick."""
    kind = "runtime"


def describe_exception(exc: BaseException) -> str:
    """Formats an exception as "<Type>: <text>" without location noise."""
    text = exc.msg if isinstance(exc, SyntaxError) else str(exc)
    return f"{type(exc).__name__}: {text}" if text else type(exc).__name__


def locate_exception(exc: BaseException) -> Tuple[int | None, int | None]:
    """
    Finds the sketch source position an exception originated from.

    Syntax errors carry their own position. For everything else the traceback
    is searched for the innermost frame executing user code, i.e. compiled under
    SKETCH_FILENAME.

    Args:
        exc: The exception raised while compiling or running sketch code

    Returns:
        (line, column) with 1-based values, either of which may be None

    Examples:
        >>> try:
        ...     exec(compile("\\nx = y", SKETCH_FILENAME, "exec"), {})
        ... except NameError as e:
        ...     locate_exception(e)
        (2, 5)
    """
    if isinstance(exc, SyntaxError) and exc.filename in (SKETCH_FILENAME, "<unknown>"):
        return exc.lineno, exc.offset
    frames = [f for f in traceback.extract_tb(exc.__traceback__) if f.filename == SKETCH_FILENAME]
    if not frames:
        return None, None
    innermost = frames[-1]
    colno = getattr(innermost, "colno", None)
    return innermost.lineno, (colno + 1 if colno is not None else None)


## --- Render Payload & Input ---
@dataclass
class DrawCommand:
    """
    One instruction of the render payload.

    Attributes:
        name (str): A member of the command catalog, e.g. 'ellipse'
        params (dict): Command parameters, without the reserved meta key
        meta (dict | None): {'lineStart', 'lineEnd'} of the originating source
    """
    name: str
    params: Dict[str, Any] = field(default_factory=dict)
    meta: Optional[Dict[str, int]] = None

    @property
    def lines(self) -> Tuple[int, int] | None:
        if not self.meta:
            return None
        return self.meta["lineStart"], self.meta["lineEnd"]

    def to_dict(self) -> dict:
        data = {"name": self.name, "params": self.params}
        if self.meta is not None:
            data["meta"] = self.meta
        return data


@dataclass(frozen=True)
class InputEvent:
    """A pointer event from the rendering surface, consumed by the next update."""
    source: str
    x: Optional[float] = None
    y: Optional[float] = None

    def __post_init__(self):
        if self.source not in EVENT_SOURCES:
            raise ValueError(f"Unknown input event source: {self.source!r}")

    @classmethod
    def from_dict(cls, data: Mapping) -> "InputEvent":
        return cls(data["source"], data.get("x"), data.get("y"))


## --- Sketch Definition ---
def _keep_state(state, events):
    return state


@dataclass(frozen=True)
class SketchDefinition:
    """
    The result of evaluating a sketch: its setup, initial state and the two
    phase functions driven by the simulation loop.

    Attributes:
        setup (dict): Host settings, e.g. {'canvas': [600, 600]}
        initial_state (dict): State the loop starts from after every load
        update (callable): (state, events) -> state
        draw (callable): state -> sequence of [name, params] commands
        config (Mapping): The argument exactly as passed to sketch(...)
    """
    setup: Dict[str, Any]
    initial_state: Dict[str, Any]
    update: Callable
    draw: Callable
    config: Mapping = field(default_factory=dict, repr=False)

    @property
    def canvas_size(self) -> Tuple[int, int]:
        width, height = self.setup.get("canvas", DEFAULT_CANVAS)
        return int(width), int(height)

    @classmethod
    def from_config(cls, config: Mapping) -> "SketchDefinition":
        """
        Validates the argument of a sketch(...) call.

        Both 'initialState' and 'initial_state' are accepted. A missing update
        keeps the state as is; a missing or non-callable draw is an error.

        Raises:
            TypeError: If the config or one of its entries has the wrong type
        """
        if not isinstance(config, Mapping):
            raise TypeError(f"sketch() expects a mapping, got {type(config).__name__}")
        setup = config.get("setup") or {}
        initial_state = config.get("initialState", config.get("initial_state")) or {}
        update = config.get("update") or _keep_state
        draw = config.get("draw")
        if not isinstance(setup, Mapping):
            raise TypeError("sketch() 'setup' must be a mapping")
        if not isinstance(initial_state, Mapping):
            raise TypeError("sketch() 'initialState' must be a mapping")
        if not callable(update):
            raise TypeError("sketch() 'update' must be callable")
        if not callable(draw):
            raise TypeError("sketch() requires a callable 'draw'")
        canvas = setup.get("canvas", DEFAULT_CANVAS)
        if len(canvas) != 2:
            raise TypeError("sketch() 'setup.canvas' must be [width, height]")
        return cls(dict(setup), dict(initial_state), update, draw, config)
