# livesketch/simulation.py
"""
The simulation loop driving a live sketch: update the state with the queued
input events, then draw it.

A tick either commits the new state and reports the draw commands, or fails
and leaves the committed state exactly as it was. A bad frame never corrupts
state accumulated so far; the next load (i.e. the next successful edit)
resumes from the definition's initial state.
"""
import copy
from enum import Enum
from typing import Any, Dict, List

from .commands import COMMANDS, is_command
from .core import (
    META_KEY, DrawCommand, Failure, InputEvent, SketchDefinition, SketchRuntimeError,
    describe_exception, locate_exception
)


class LoopStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    FAULTED = "faulted"


def normalize_commands(raw, catalog=COMMANDS) -> List[DrawCommand]:
    """
    Converts the value returned by a draw function into DrawCommands.

    Each entry must be `[name]` or `[name, params]` (list or tuple) with a
    catalog name and a mapping of parameters. The reserved meta key added by
    instrumentation is moved out of the parameters into `DrawCommand.meta`.

    Args:
        raw: The draw function's return value
        catalog: Recognized command names

    Returns:
        List of DrawCommand in drawing order

    Raises:
        TypeError: If the payload or one of its entries has the wrong shape
        ValueError: If an entry names an unknown command

    Examples:
        >>> normalize_commands([["background", {"fill": "#000"}]])
        [DrawCommand(name='background', params={'fill': '#000'}, meta=None)]
    """
    if not isinstance(raw, (list, tuple)):
        raise TypeError(f"draw() must return a list of commands, got {type(raw).__name__}")
    commands = []
    for i, entry in enumerate(raw):
        if not isinstance(entry, (list, tuple)) or len(entry) not in (1, 2):
            raise TypeError(f"Draw command #{i} must be [name, params], got {entry!r}")
        name = entry[0]
        if not is_command(name, catalog):
            raise ValueError(f"Draw command #{i} has unknown name {name!r}")
        params = entry[1] if len(entry) == 2 else {}
        if not isinstance(params, dict):
            raise TypeError(f"Draw command #{i} ('{name}') params must be a dict")
        params = dict(params)
        meta = params.pop(META_KEY, None)
        commands.append(DrawCommand(name, params, meta))
    return commands


def copy_state(value):
    """
    Deep-copies a sketch state, sharing the values that cannot be copied.

    Plain dicts, lists and tuples are rebuilt element by element. Anything
    else goes through `copy.deepcopy`; modules, generators, open files, locks
    and the like are kept by reference.

    Args:
        value: Committed sketch state (or a part of it)

    Returns:
        A copy whose containers are independent of `value`
    """
    if type(value) is dict:
        return {key: copy_state(item) for key, item in value.items()}
    if type(value) is list:
        return [copy_state(item) for item in value]
    if type(value) is tuple:
        return tuple(copy_state(item) for item in value)
    try:
        return copy.deepcopy(value)
    except (TypeError, copy.Error):
        return value


class SimulationLoop:
    """
    Owns the running sketch, its state and the pending input events.

    States: IDLE (nothing loaded), RUNNING, FAULTED (last tick failed). Only a
    RUNNING loop accepts events and ticks; load() always returns to RUNNING.

    Attributes:
        status (LoopStatus): Current state of the loop
        definition (SketchDefinition | None): The live sketch
        current_state (dict | None): Last committed sketch state
        queue (list): Input events waiting for the next tick
        commands (list): Render payload of the last successful tick
        last_failure (Failure | None): Failure that faulted the loop
        frame_count (int): Successful ticks since the last load
    """
    def __init__(self):
        self.status = LoopStatus.IDLE
        self.definition: SketchDefinition | None = None
        self.current_state: Dict[str, Any] | None = None
        self.queue: List[InputEvent] = []
        self.commands: List[DrawCommand] = []
        self.last_failure: Failure | None = None
        self.frame_count = 0

    def load(self, definition: SketchDefinition):
        """Makes `definition` the live sketch, discarding all previous state."""
        self.definition = definition
        self.current_state = definition.initial_state or {}
        self.queue = []
        self.last_failure = None
        self.frame_count = 0
        self.status = LoopStatus.RUNNING

    def push_event(self, event: InputEvent) -> bool:
        """Queues an input event; ignored unless the loop is running."""
        if self.status is not LoopStatus.RUNNING:
            return False
        self.queue.append(event)
        return True

    def tick(self) -> List[DrawCommand]:
        """
        Runs one update -> draw cycle over the queued events.

        update() receives a deep copy of the committed state (see copy_state),
        so whatever it mutates is discarded if the cycle fails. An update returning None is
        taken to mean "the state I was given, as mutated".

        Returns:
            The new render payload

        Raises:
            ValueError: If the loop is not running
            SketchRuntimeError: If update, draw or the returned payload fails;
                the loop becomes FAULTED and the committed state is unchanged
        """
        if self.status is not LoopStatus.RUNNING:
            raise ValueError(f"Cannot tick a {self.status.value} simulation loop")
        events, self.queue = self.queue, []
        try:
            working = copy_state(self.current_state)
            next_state = self.definition.update(working, events)
            if next_state is None:
                next_state = working
            commands = normalize_commands(self.definition.draw(next_state))
        except Exception as e:
            line, column = locate_exception(e)
            error = SketchRuntimeError(describe_exception(e), line, column)
            self.status = LoopStatus.FAULTED
            self.last_failure = error.failure
            raise error from e

        self.current_state = next_state
        self.commands = commands
        self.frame_count += 1
        return commands
