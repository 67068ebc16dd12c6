# livesketch/commands.py
"""
Catalog of the drawing commands a sketch may emit from its draw function.

Each entry maps a command name to the parameters the canvas understands for it.
The instrumenter only asks whether a literal string is a command name; the
parameter sets document the contract with the canvas.
"""
from types import MappingProxyType


COMMANDS = MappingProxyType({
    "background": frozenset({"fill"}),
    "ellipse": frozenset({"pos", "size", "fill", "stroke", "strokeWidth"}),
    "rect": frozenset({"pos", "size", "fill", "stroke", "strokeWidth"}),
    "line": frozenset({"a", "b", "stroke", "strokeWidth"}),
    "polygon": frozenset({"points", "fill", "stroke", "strokeWidth"}),
})


def is_command(name, catalog=COMMANDS) -> bool:
    """Returns True if `name` is a recognized drawing command of `catalog`."""
    return isinstance(name, str) and name in catalog
