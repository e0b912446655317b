"""Scatter-plot explorer: choose two columns, plot one against the other.

Inputs: `x` and `y` column choices and a `go` action button. The `dat`
derivation pairs the two selected columns. The `plot` effect hands a
ScatterPlot to the external plot renderer, either whenever `dat` changes or,
with gated=True, only when `go` is pressed. The optional `y_choices` effect
tells the UI which columns the y selector should offer (every column but x).
"""

from __future__ import annotations

from typing import Callable, NamedTuple, Sequence

from sessionfx.dataset import DataSource
from sessionfx.inputs import InputBinding, InputKind
from sessionfx.session import Session

IRIS_COLUMNS = ("sepal_length", "sepal_width", "petal_length", "petal_width")


class ScatterPlot(NamedTuple):
    x: str
    y: str
    points: list[tuple]


def scatter_inputs(columns: Sequence[str] = IRIS_COLUMNS) -> list[InputBinding]:
    if len(columns) < 2:
        raise ValueError("A scatter plot needs at least two columns")
    return [
        InputBinding("x", kind=InputKind.CHOICE, choices=tuple(columns), default=columns[0]),
        InputBinding("y", kind=InputKind.CHOICE, choices=tuple(columns), default=columns[1]),
        InputBinding("go", kind=InputKind.ACTION),
    ]


def scatter_server(
    data: DataSource,
    render_plot: Callable[[ScatterPlot], object],
    render_choices: Callable[[str, list[str]], object] | None = None,
    *,
    columns: Sequence[str] = IRIS_COLUMNS,
    gated: bool = False,
) -> Callable[[Session], None]:
    """Build the server setup function for App."""

    def server(session: Session) -> None:
        @session.calc
        def dat():
            return list(zip(data.column(session.get("x")), data.column(session.get("y"))))

        def plot():
            return ScatterPlot(session.get("x"), session.get("y"), dat.get())

        if gated:
            session.on_event("plot", ["go"], plot, render=render_plot)
        else:
            session.on_change("plot", ["dat"], plot, render=render_plot)

        if render_choices is not None:
            x_choices = list(columns)

            def y_choices():
                x = session.get("x")
                return [c for c in x_choices if c != x]

            session.on_change("y_choices", ["x"], y_choices, render=lambda choices: render_choices("y", choices))

    return server
