import textwrap

import pytest

from livesketch.core import EvalError, SketchDefinition
from livesketch.sandbox import Sandbox, evaluate


def test_evaluate_returns_the_constructed_definition():
    definition = evaluate(textwrap.dedent('''\
        import math

        def draw(state):
            return [["background", {"fill": "#000"}]]

        sketch({
            "setup": {"canvas": [320, 240]},
            "initialState": {"angle": math.pi},
            "draw": draw,
        })
    '''))
    assert isinstance(definition, SketchDefinition)
    assert definition.canvas_size == (320, 240)
    assert definition.initial_state == {"angle": pytest.approx(3.14159, abs=1e-5)}
    assert definition.draw({}) == [["background", {"fill": "#000"}]]
    # a missing update keeps the state
    assert definition.update({"a": 1}, []) == {"a": 1}


def test_keyword_form_and_defaults():
    definition = evaluate('sketch(initial_state={"c": 0}, draw=lambda s: [])')
    assert definition.initial_state == {"c": 0}
    assert definition.setup == {}
    assert definition.canvas_size == (600, 600)


def test_last_sketch_call_wins():
    definition = evaluate(textwrap.dedent('''\
        sketch({"initialState": {"n": 1}, "draw": lambda s: []})
        sketch({"initialState": {"n": 2}, "draw": lambda s: []})
    '''))
    assert definition.initial_state == {"n": 2}


def test_undefined_name_reports_line_and_column():
    with pytest.raises(EvalError) as info:
        evaluate('sketch({"draw": lambda s: []})\n\ny = missing\n')
    error = info.value
    assert error.message == "NameError: name 'missing' is not defined"
    assert error.line == 3
    assert error.column == 5
    assert error.failure.kind == "eval"


def test_syntax_error_is_an_eval_error():
    with pytest.raises(EvalError) as info:
        evaluate("sketch({'draw': lambda s: []})\nx = (\n")
    assert info.value.message.startswith("SyntaxError")
    assert info.value.line == 2


def test_invalid_config_points_at_the_sketch_call():
    with pytest.raises(EvalError) as info:
        evaluate('x = 1\nsketch({"draw": 42})\n')
    assert info.value.message == "TypeError: sketch() requires a callable 'draw'"
    assert info.value.line == 2


def test_source_that_never_calls_sketch():
    with pytest.raises(EvalError, match="never calls sketch"):
        evaluate("x = 1\n")


def test_evaluations_do_not_share_scope_or_results():
    sandbox = Sandbox()
    sandbox.evaluate('leak = 1\nsketch({"draw": lambda s: []})')
    with pytest.raises(EvalError) as info:
        sandbox.evaluate('sketch({"draw": lambda s: [], "initialState": {"v": leak}})')
    assert info.value.message.startswith("NameError")
    # a previous definition never answers for a later evaluation
    with pytest.raises(EvalError):
        sandbox.evaluate("pass")


def test_bindings_are_frozen_and_visible():
    sandbox = Sandbox({"WIDTH": 640})
    definition = sandbox.evaluate('sketch({"setup": {"canvas": [WIDTH, 480]}, "draw": lambda s: []})')
    assert definition.canvas_size == (640, 480)
    with pytest.raises(TypeError):
        sandbox.bindings["WIDTH"] = 1
    with pytest.raises(ValueError):
        Sandbox({"sketch": print})
