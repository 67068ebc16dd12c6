# livesketch/sandbox.py
"""
Evaluation of (instrumented) sketch source behind an explicit interpreter boundary.

Each evaluation runs in a brand-new global scope holding the builtins, an
optional frozen set of extra bindings and one capability, `sketch`. The
capability is created for that evaluation only and writes the definition it
builds into a result cell owned by the same call, so nothing produced by one
evaluation can be observed by the next.

The scope isolates sketches from each other, not from the host: user code can
still import modules and touch the process. It guards against mistakes, not
against malicious programs.
"""
import builtins
from types import MappingProxyType
from typing import Mapping

from .core import (
    SKETCH_FILENAME, EvalError, SketchDefinition, describe_exception, locate_exception
)
from .instrument import SKETCH_CALLABLE


class Sandbox:
    """
    Compiles and executes sketch programs in isolated scopes.

    Attributes:
        bindings (MappingProxyType): Extra read-only names every evaluation sees

    Examples:
        >>> definition = Sandbox().evaluate('sketch({"draw": lambda s: []})')
        >>> definition.initial_state
        {}
    """
    def __init__(self, bindings: Mapping | None = None):
        bindings = dict(bindings or {})
        if SKETCH_CALLABLE in bindings:
            raise ValueError(f"'{SKETCH_CALLABLE}' is reserved for the sketch constructor")
        self.bindings = MappingProxyType(bindings)

    def _scope(self, capability) -> dict:
        scope = {"__builtins__": builtins, "__name__": "__sketch__"}
        scope.update(self.bindings)
        scope[SKETCH_CALLABLE] = capability
        return scope

    def evaluate(self, source: str) -> SketchDefinition:
        """
        Executes a sketch program and returns the definition it constructed.

        Args:
            source: Program text, usually the output of instrument()

        Returns:
            The SketchDefinition passed to the last sketch(...) call

        Raises:
            EvalError: If the program fails to compile or raises while its top
                level runs (including an invalid sketch config), or never calls
                sketch(...)
        """
        result = {}

        def sketch(config=None, **options):
            if options:
                config = {**(config or {}), **options}
            result["definition"] = SketchDefinition.from_config(config)
            return config

        try:
            code = compile(source, SKETCH_FILENAME, "exec")
            exec(code, self._scope(sketch))
        except Exception as e:
            line, column = locate_exception(e)
            raise EvalError(describe_exception(e), line, column) from e

        if "definition" not in result:
            raise EvalError(f"The program never calls {SKETCH_CALLABLE}(...)")
        return result["definition"]


def evaluate(source: str) -> SketchDefinition:
    """Evaluates sketch source in a sandbox without extra bindings."""
    return Sandbox().evaluate(source)
