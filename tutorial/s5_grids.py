"""
S5: Grids
=========

Goal
----
Show the two kinds of evaluation grid and the value summaries ``datagrid``
understands (``"threenum"``, ``"unique"``, ``"quartile"``, callables, ...).

Usage
-----
    from tutorial import run_section
    run_section("S5")   # runs S1-S4 first
"""

from typing import Any

from .config import code, get_section, prose
from .runner import run_section as _run

CONFIG = get_section("S5")

CELLS = [
    prose("""
        A *typical* grid holds every predictor that is not requested at its
        mean. Requested values can be named summaries: `"threenum"` gives the
        mean and one standard deviation either side, `"unique"` every observed
        value.
    """),
    code("""
        datagrid(mod, hp="threenum", am="unique")
    """),
    code("""
        datagrid(mod, wt=lambda x: x.quantile([0.1, 0.9]))
    """),
    prose("""
        A *counterfactual* grid copies the whole dataset once per requested
        value. Averaging predictions over it answers: what would mean mpg be if
        every car had an automatic transmission, and if every car had a manual
        one?
    """),
    code("""
        cf = datagrid(mod, am=[0, 1], grid_type="counterfactual")
        assert len(cf) == 2 * 32
        cf.head()
    """),
    code("""
        avg_predictions(mod, newdata=cf, by="am")
    """),
]


def run(verbose: bool = True) -> Any:
    """Run S5, preceded by the chapters it builds on."""
    return _run("S5", verbose=verbose)


def describe() -> str:
    """Return the full section description."""
    return __doc__
