import math


def update(state, events):
    for e in events:
        if e.source == "mousemove":
            state["mousePos"] = [e.x, e.y]

        if e.source == "mousedown":
            state["mouseDown"] = True

        if e.source == "mouseup":
            state["mouseDown"] = False

    state["c"] += 0.01

    return state


def draw(state):
    points = [
        [
            math.sin((state["c"] + i * 0.8) * 2.0) * 200 + 300,
            math.sin((state["c"] + i * 0.8) * 3.0) * 200 + 300,
        ]
        for i in range(40)
    ]

    r = 8

    return [
        ["background", {"fill": "#481212"}],
        *[["ellipse", {"pos": p, "size": [r, r], "fill": "#d09191"}] for p in points],
        *([["line", {"a": state["mousePos"], "b": p, "stroke": "#d09191"}] for p in points]
          if state["mouseDown"] else []),
    ]


sketch({
    "setup": {
        "canvas": [600, 600],
    },

    "initialState": {
        "c": 0,
        "mousePos": [0, 0],
        "mouseDown": False,
    },

    "update": update,
    "draw": draw,
})
