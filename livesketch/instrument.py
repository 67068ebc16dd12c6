# livesketch/instrument.py
"""
Source-to-source instrumentation of sketch programs.

Every drawing command literal reachable from the sketch's draw function gets
its source line range attached, so a rendered shape can be traced back to the
code that produced it:

    ["ellipse", {"pos": p}]  ->  ["ellipse", {"pos": p, "__meta": {"lineStart": 7, "lineEnd": 7}}]

The program is parsed with the `ast` module, but it is never re-printed from
the tree. Insertions are spliced into the original text instead, so the output
keeps the user's layout, comments and line numbers exactly; only the closing
line of an annotated dict grows.

Traversal is deliberately narrow. Only the region that produces the render
payload is visited (the sketch(...) call, its draw entry or the top-level
`def` or `name = lambda` it names, the return values of draw and the
list-building expressions inside them); every other node kind is
opaque. In particular update() is never touched, even when it contains
command-shaped lists.
"""
import ast
import io
from typing import Dict, List, NamedTuple

from .commands import COMMANDS, is_command
from .core import META_KEY, SKETCH_FILENAME, ParseError, describe_exception


SKETCH_CALLABLE = "sketch"  # Name of the injected sketch constructor
DRAW_KEY = "draw"


class _Insertion(NamedTuple):
    offset: int  # character offset in the original source
    text: str


class DrawInstrumenter:
    """
    Tagged-node visitor that collects __meta insertions for command literals.

    Each node kind the visitor understands has a `visit_<Kind>` method deciding
    which children to descend into; kinds without a method are skipped whole.

    Attributes:
        source (str): The program text being instrumented
        catalog (Mapping): Recognized command names
        insertions (list): Pending (offset, text) splices, filled by visit()

    Examples:
        >>> tree = ast.parse(source)
        >>> instrumenter = DrawInstrumenter(source)
        >>> instrumenter.visit(tree)
        >>> instrumenter.apply()  # instrumented source text
    """
    def __init__(self, source: str, catalog=COMMANDS):
        self.source = source
        self.catalog = catalog
        self.insertions: List[_Insertion] = []
        self._functions: Dict[str, ast.FunctionDef | ast.Lambda] = {}
        self._lines = io.StringIO(source, newline="").readlines()
        self._line_starts = [0]
        for line in self._lines:
            self._line_starts.append(self._line_starts[-1] + len(line))

    def visit(self, node):
        method = getattr(self, f"visit_{type(node).__name__}", None)
        if method is not None:
            method(node)

    # --- Program structure ---
    def visit_Module(self, node: ast.Module):
        # later top-level bindings of a name replace earlier ones
        self._functions = {}
        for stmt in node.body:
            if isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)):
                self._functions[stmt.name] = stmt
            elif isinstance(stmt, ast.Assign) and len(stmt.targets) == 1:
                target = stmt.targets[0]
                if isinstance(target, ast.Name):
                    self._functions.pop(target.id, None)
                    if isinstance(stmt.value, ast.Lambda):
                        self._functions[target.id] = stmt.value
        for stmt in node.body:
            if isinstance(stmt, ast.Expr) and self._is_sketch_call(stmt.value):
                self._visit_sketch_call(stmt.value)

    def _is_sketch_call(self, node) -> bool:
        return (isinstance(node, ast.Call)
                and isinstance(node.func, ast.Name)
                and node.func.id == SKETCH_CALLABLE)

    def _visit_sketch_call(self, node: ast.Call):
        for arg in node.args:
            if isinstance(arg, ast.Dict):
                for key, value in zip(arg.keys, arg.values):
                    if isinstance(key, ast.Constant) and key.value == DRAW_KEY:
                        self._visit_draw(value)
        for keyword in node.keywords:
            if keyword.arg == DRAW_KEY:
                self._visit_draw(keyword.value)

    def _visit_draw(self, node):
        if isinstance(node, ast.Lambda):
            self.visit(node.body)
        elif isinstance(node, ast.Name) and node.id in self._functions:
            function = self._functions[node.id]
            if isinstance(function, ast.Lambda):
                self.visit(function.body)
            else:
                self._visit_statements(function.body)

    def _visit_statements(self, statements):
        """Finds the return statements of a function body, skipping nested scopes."""
        for stmt in statements:
            if isinstance(stmt, ast.Return):
                if stmt.value is not None:
                    self.visit(stmt.value)
            elif isinstance(stmt, (ast.If, ast.For, ast.AsyncFor, ast.While)):
                self._visit_statements(stmt.body)
                self._visit_statements(stmt.orelse)
            elif isinstance(stmt, (ast.With, ast.AsyncWith)):
                self._visit_statements(stmt.body)
            elif isinstance(stmt, ast.Try):
                self._visit_statements(stmt.body)
                for handler in stmt.handlers:
                    self._visit_statements(handler.body)
                self._visit_statements(stmt.orelse)
                self._visit_statements(stmt.finalbody)

    # --- Payload expressions ---
    def visit_List(self, node: ast.List):
        self._visit_sequence(node)

    def visit_Tuple(self, node: ast.Tuple):
        self._visit_sequence(node)

    def visit_Starred(self, node: ast.Starred):
        self.visit(node.value)

    def visit_ListComp(self, node: ast.ListComp):
        self.visit(node.elt)

    def visit_GeneratorExp(self, node: ast.GeneratorExp):
        self.visit(node.elt)

    def visit_IfExp(self, node: ast.IfExp):
        self.visit(node.body)
        self.visit(node.orelse)

    def visit_BinOp(self, node: ast.BinOp):
        if isinstance(node.op, ast.Add):
            self.visit(node.left)
            self.visit(node.right)

    def visit_Call(self, node: ast.Call):
        for arg in node.args:
            self.visit(arg)

    def visit_Lambda(self, node: ast.Lambda):
        self.visit(node.body)

    def _visit_sequence(self, node):
        elements = node.elts
        head = elements[0] if elements else None
        if isinstance(head, ast.Constant) and is_command(head.value, self.catalog):
            # a command literal: annotate it, never look inside
            if len(elements) > 1 and isinstance(elements[1], ast.Dict):
                self._annotate(head, elements[1])
            return
        for element in elements:
            self.visit(element)

    # --- Rewriting ---
    def _annotate(self, name: ast.Constant, params: ast.Dict):
        if any(isinstance(k, ast.Constant) and k.value == META_KEY for k in params.keys):
            return
        meta = f'"{META_KEY}": {{"lineStart": {name.lineno}, "lineEnd": {name.end_lineno}}}'
        closing = self._offset(params.end_lineno, params.end_col_offset) - 1
        if params.values:
            last = params.values[-1]
            between = self.source[self._offset(last.end_lineno, last.end_col_offset):closing]
            code = "".join(line.split("#", 1)[0] for line in between.splitlines())
            meta = (" " if "," in code else ", ") + meta
        self.insertions.append(_Insertion(closing, meta))

    def _offset(self, lineno: int, col_offset: int) -> int:
        """Converts an ast (line, UTF-8 byte column) position into a character offset."""
        line = self._lines[lineno - 1]
        column = len(line.encode("utf-8")[:col_offset].decode("utf-8", errors="ignore"))
        return self._line_starts[lineno - 1] + column

    def apply(self) -> str:
        """Returns the source with all collected insertions spliced in."""
        text = self.source
        for insertion in sorted(self.insertions, key=lambda i: i.offset, reverse=True):
            text = text[:insertion.offset] + insertion.text + text[insertion.offset:]
        return text


def instrument(source: str, catalog=COMMANDS) -> str:
    """
    Attaches source line metadata to every drawing command the draw function returns.

    Args:
        source: Complete sketch program text
        catalog: Recognized command names (defaults to the built-in catalog)

    Returns:
        The instrumented program text. Identical to `source` when no command
        literal needs annotating, so instrumenting twice is a no-op.

    Raises:
        ParseError: If the source is not valid Python

    Examples:
        >>> instrument('sketch({"draw": lambda s: [["background", {"fill": "#000"}]]})')
        'sketch({"draw": lambda s: [["background", {"fill": "#000", "__meta": {"lineStart": 1, "lineEnd": 1}}]]})'
    """
    try:
        tree = ast.parse(source, filename=SKETCH_FILENAME)
    except SyntaxError as e:
        raise ParseError(describe_exception(e), e.lineno, e.offset) from e
    except ValueError as e:
        raise ParseError(describe_exception(e)) from e

    instrumenter = DrawInstrumenter(source, catalog)
    instrumenter.visit(tree)
    return instrumenter.apply()
