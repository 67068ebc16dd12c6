# livesketch/session.py
"""
Live editing session: the glue between an editor, the pipeline and a canvas.

Source edits are debounced; once the editor has been quiet for the debounce
window the latest text goes through instrument -> evaluate -> load -> tick. A
failed parse or evaluation is reported but never replaces the running sketch,
so the canvas keeps showing the last good frame until the next edit fixes it.
"""
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List

import pandas as pd

from .canvas.base import hit_test
from .core import DrawCommand, EvalError, Failure, InputEvent, ParseError, SketchRuntimeError
from .instrument import instrument
from .sandbox import Sandbox
from .simulation import LoopStatus, SimulationLoop

HISTORY_COLUMNS = ["run", "stage", "message", "line", "column", "n_commands", "frame"]


class Debouncer:
    """
    Coalesces bursts of triggers into one call after a quiet period.

    Every trigger() replaces the pending arguments and restarts the window;
    poll() fires the callback once the window has elapsed. The host drives
    poll(), so there is never more than one call in flight.

    Attributes:
        wait (float): Quiet period in seconds
        callback (callable): Called with the arguments of the last trigger
        clock (callable): Monotonic time source, injectable for tests
    """
    def __init__(self, wait: float, callback: Callable, clock: Callable[[], float] = time.monotonic):
        self.wait = wait
        self.callback = callback
        self.clock = clock
        self._pending = None
        self._deadline = None

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def trigger(self, *args):
        self._pending = args
        self._deadline = self.clock() + self.wait

    def poll(self) -> bool:
        """Fires the pending call if the quiet period is over. Returns whether it fired."""
        if self._pending is None or self.clock() < self._deadline:
            return False
        self.flush()
        return True

    def flush(self):
        if self._pending is None:
            return None
        args, self._pending, self._deadline = self._pending, None, None
        return self.callback(*args)

    def cancel(self):
        self._pending = None
        self._deadline = None


@dataclass
class Report:
    """What the session currently shows: the last error, the highlight and the payload."""
    error: Failure | None = None
    highlight: Dict[str, int] | None = None
    commands: List[DrawCommand] = field(default_factory=list)

    def editor_payload(self) -> dict:
        return {
            "error": self.error.to_dict() if self.error else None,
            "highlight": dict(self.highlight) if self.highlight else None,
        }


class LiveSession:
    """
    Runs the live evaluation pipeline for one editor buffer.

    Attributes:
        loop (SimulationLoop): The running sketch
        sandbox (Sandbox): Evaluator used for every compilation
        debouncer (Debouncer): Delays compilation until edits pause
        error (Failure | None): Failure of the latest run, cleared on success
        highlight (dict | None): Source lines of the command under the pointer
        history (list): One record per pipeline run or step

    Examples:
        >>> session = LiveSession(debounce_ms=0)
        >>> report = session.compile(open("sketches/lissajous.py").read())
        >>> report.commands[0].name
        'background'
    """
    def __init__(self, debounce_ms: float = 16, clock: Callable[[], float] | None = None,
                 sandbox: Sandbox | None = None):
        self.loop = SimulationLoop()
        self.sandbox = sandbox or Sandbox()
        self.debouncer = Debouncer(debounce_ms / 1000.0, self.compile, clock or time.monotonic)
        self.error: Failure | None = None
        self.highlight: Dict[str, int] | None = None
        self.history: List[dict] = []
        self._runs = 0

    @property
    def commands(self) -> List[DrawCommand]:
        return self.loop.commands

    # --- Editor side ---
    def on_source_change(self, text: str):
        self.debouncer.trigger(text)

    def poll(self) -> bool:
        """Runs the pipeline if an edit is due. Returns whether it ran."""
        return self.debouncer.poll()

    def compile(self, source: str) -> Report:
        """
        Runs the full pipeline on `source` right away.

        Parse and evaluation failures leave the running sketch untouched. On
        success the new sketch replaces the old one, starting from its initial
        state, and is ticked once.
        """
        self._runs += 1
        try:
            definition = self.sandbox.evaluate(instrument(source))
        except (ParseError, EvalError) as e:
            self.error = e.failure
            self._record(e.kind, e.failure)
            return self.report()

        self.loop.load(definition)
        self.highlight = None
        return self._tick()

    # --- Canvas side ---
    def push_event(self, event: InputEvent | dict) -> bool:
        if not isinstance(event, InputEvent):
            event = InputEvent.from_dict(event)
        return self.loop.push_event(event)

    def step(self) -> Report:
        """Performs one host-driven tick of the running sketch, if any."""
        if self.loop.status is not LoopStatus.RUNNING:
            return self.report()
        return self._tick()

    def hover(self, x: float, y: float) -> Dict[str, int] | None:
        """Highlights the source of the topmost command under the pointer."""
        command = hit_test(self.commands, x, y)
        self.highlight = dict(command.meta) if command is not None and command.meta else None
        return self.highlight

    def _tick(self) -> Report:
        try:
            self.loop.tick()
        except SketchRuntimeError as e:
            self.error = e.failure
            self._record(e.kind, e.failure)
            return self.report()
        self.error = None
        self._record("ok")
        return self.report()

    # --- Reporting ---
    def report(self) -> Report:
        return Report(self.error, self.highlight, list(self.commands))

    def _record(self, stage: str, failure: Failure | None = None):
        self.history.append({
            "run": self._runs,
            "stage": stage,
            "message": failure.message if failure else None,
            "line": failure.line if failure else None,
            "column": failure.column if failure else None,
            "n_commands": len(self.commands),
            "frame": self.loop.frame_count,
        })

    def history_frame(self) -> pd.DataFrame:
        """Returns the run history as a DataFrame (one row per run or step)."""
        return pd.DataFrame(self.history, columns=HISTORY_COLUMNS)
