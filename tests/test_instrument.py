import ast
import textwrap

import pytest

from livesketch.commands import is_command
from livesketch.core import ParseError
from livesketch.instrument import instrument


def meta(start, end=None):
    return f'"__meta": {{"lineStart": {start}, "lineEnd": {end or start}}}'


DRAW_AND_UPDATE = textwrap.dedent('''\
    def update(state, events):
        state["c"] += 1
        return [["ellipse", {"pos": [0, 0]}]]


    def draw(state):
        return [
            ["background", {"fill": "#000"}],
            [
                "ellipse",
                {"pos": [1, 2]},
            ],
        ]


    sketch({"update": update, "draw": draw})
''')


def test_command_lines_are_taken_from_the_command_name():
    lines = instrument(DRAW_AND_UPDATE).splitlines()
    assert lines[7] == f'        ["background", {{"fill": "#000", {meta(8)}}}],'
    assert lines[10] == f'            {{"pos": [1, 2], {meta(10)}}},'


def test_update_is_never_rewritten():
    lines = instrument(DRAW_AND_UPDATE).splitlines()
    assert lines[2] == DRAW_AND_UPDATE.splitlines()[2]
    assert "__meta" not in "\n".join(lines[:3])


def test_line_count_and_untouched_lines_are_preserved():
    original = DRAW_AND_UPDATE.splitlines()
    result = instrument(DRAW_AND_UPDATE).splitlines()
    assert len(result) == len(original)
    changed = [i for i, (a, b) in enumerate(zip(original, result)) if a != b]
    assert changed == [7, 10]


def test_instrumenting_twice_is_a_fixed_point():
    once = instrument(DRAW_AND_UPDATE)
    assert instrument(once) == once


def test_source_without_commands_is_unchanged():
    source = 'x = [1, 2]\nsketch({"draw": lambda s: [["unknown", {}]]})\n'
    assert instrument(source) == source


def test_lambda_draw_and_keyword_form():
    source = 'sketch(draw=lambda s: [["background", {"fill": "#000"}]])'
    assert instrument(source) == f'sketch(draw=lambda s: [["background", {{"fill": "#000", {meta(1)}}}]])'


def test_command_without_params_dict_is_passed_through():
    source = textwrap.dedent('''\
        params = {"a": [0, 0], "b": [1, 1]}
        sketch({"draw": lambda s: [["line"], ["line", params], ("background", {"fill": "#fff"})]})
    ''')
    result = instrument(source)
    assert '["line"], ["line", params]' in result
    assert f'("background", {{"fill": "#fff", {meta(2)}}})' in result


def test_multiline_params_keep_valid_syntax():
    source = textwrap.dedent('''\
        def draw(state):
            return [
                ["rect", {
                    "pos": [0, 0],
                    "size": [10, 10],
                }],
                ["rect", {
                    "pos": [5, 5]  # top, left
                }],
                ["ellipse", {}],
            ]


        sketch({"draw": draw})
    ''')
    result = instrument(source)
    ast.parse(result)
    lines = result.splitlines()
    assert len(lines) == len(source.splitlines())
    assert lines[5] == f'         {meta(3)}}}],'
    assert lines[8] == f'        , {meta(7)}}}],'
    assert lines[9] == f'        ["ellipse", {{{meta(10)}}}],'


def test_spreads_comprehensions_and_calls_are_traversed():
    source = textwrap.dedent('''\
        def draw(state):
            pts = [[0, 0], [1, 1]]
            return [
                *[["ellipse", {"pos": p}] for p in pts],
                *(list(map(lambda p: ["line", {"a": p, "b": p}], pts)) if state["on"] else []),
                [[["rect", {"pos": [0, 0]}]]],
            ] + [["background", {"fill": "#000"}]]


        sketch({"draw": draw})
    ''')
    result = instrument(source)
    assert f'["ellipse", {{"pos": p, {meta(4)}}}]' in result
    assert f'["line", {{"a": p, "b": p, {meta(5)}}}]' in result
    assert f'["rect", {{"pos": [0, 0], {meta(6)}}}]' in result
    assert f'["background", {{"fill": "#000", {meta(7)}}}]' in result
    # assignments inside draw are not part of the payload
    assert "pts = [[0, 0], [1, 1]]" in result


def test_returns_in_branches_are_found_but_nested_functions_are_skipped():
    source = textwrap.dedent('''\
        def draw(state):
            def helper():
                return [["ellipse", {"pos": [0, 0]}]]
            if state["on"]:
                return [["background", {"fill": "#fff"}]]
            for _ in range(1):
                try:
                    return [["background", {"fill": "#000"}]]
                except KeyError:
                    return helper()


        sketch({"draw": draw})
    ''')
    result = instrument(source)
    assert '[["ellipse", {"pos": [0, 0]}]]' in result
    assert meta(5) in result
    assert meta(8) in result


def test_code_outside_the_sketch_call_is_untouched():
    source = textwrap.dedent('''\
        print([["background", {"fill": "#fff"}]])
        layer = sketch({"draw": lambda s: [["background", {"fill": "#fff"}]]})
        sketch({"update": lambda s, e: [["background", {"fill": "#fff"}]], "draw": lambda s: []})
    ''')
    assert instrument(source) == source


def test_non_ascii_text_before_the_insertion_point():
    source = 'sketch({"draw": lambda s: [["rect", {"label": "héllo wörld", "pos": [0, 0]}]]})'
    result = instrument(source)
    assert f'{{"label": "héllo wörld", "pos": [0, 0], {meta(1)}}}' in result
    ast.parse(result)


def test_malformed_source_raises_parse_error():
    with pytest.raises(ParseError) as info:
        instrument("def draw(state)\n    return []\n")
    assert info.value.line == 1
    assert info.value.message.startswith("SyntaxError")
    assert info.value.failure.kind == "parse"


def test_draw_bound_to_a_lambda_by_assignment():
    source = 'draw = lambda s: [["background", {"fill": "#000"}]]\nsketch({"draw": draw})\n'
    assert instrument(source).splitlines()[0] == (
        f'draw = lambda s: [["background", {{"fill": "#000", {meta(1)}}}]]'
    )


def test_rebinding_a_draw_name_follows_the_last_binding():
    source = textwrap.dedent('''\
        def draw(state):
            return [["background", {"fill": "#000"}]]

        draw = lambda s: [["ellipse", {"pos": [0, 0]}]]
        sketch({"draw": draw})
    ''')
    lines = instrument(source).splitlines()
    assert "__meta" not in lines[1]
    assert lines[3] == f'draw = lambda s: [["ellipse", {{"pos": [0, 0], {meta(4)}}}]]'

    rebound = 'draw = lambda s: [["background", {}]]\ndraw = make_draw()\nsketch({"draw": draw})\n'
    assert instrument(rebound) == rebound


def test_custom_catalog_decides_what_is_a_command():
    catalog = {"dot": frozenset({"pos"})}
    assert is_command("dot", catalog)
    assert not is_command("background", catalog)
    assert not is_command(["dot"], catalog)
    assert is_command("background")

    source = 'sketch({"draw": lambda s: [["dot", {"pos": [0, 0]}], ["background", {}]]})'
    assert instrument(source, catalog) == (
        f'sketch({{"draw": lambda s: [["dot", {{"pos": [0, 0], {meta(1)}}}], ["background", {{}}]]}})'
    )
