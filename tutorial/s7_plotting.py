"""
S7: Visualization
=================

One figure: predicted mpg against horsepower, with a line per
representative weight (mean - sd, mean, mean + sd) and one panel per
transmission type.
"""

from typing import Any

from .config import code, get_section, prose
from .runner import run_section as _run

CONFIG = get_section("S7")

CELLS = [
    prose("""
        `plot_predictions()` draws predictions over a grid: the first condition
        is the x-axis, the second sets the color and the third the panels.
        Shaded ribbons are 95% confidence intervals.
    """),
    code("""
        fig = plot_predictions(mod, condition={"hp": None, "wt": "threenum", "am": None})
    """),
    prose("""
        Heavier cars lose less efficiency per horsepower, and the pattern
        differs between automatic and manual transmissions.
    """),
]


def run(verbose: bool = True) -> Any:
    """Run S7, preceded by the chapters it builds on."""
    return _run("S7", verbose=verbose)


def describe() -> str:
    """Return the full section description."""
    return __doc__
