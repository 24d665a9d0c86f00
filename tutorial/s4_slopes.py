"""
S4: Slopes
==========

Goal
----
Measure the instantaneous rate of change of the prediction with respect to a
predictor (a "marginal effect").

Key ideas
---------
- Computed by a centered finite difference at each evaluation row
- One row per (predictor x row): 3 x 32 = 96 for this model
- ``slope="eyex"`` (elasticity), ``"eydx"`` and ``"dyex"`` rescale the
  derivative by the prediction and/or the predictor
- Binary predictors (``am``) have no derivative and are reported as the
  ``1 - 0`` contrast, as in S3

Slopes and +1 comparisons agree exactly when the prediction is linear in the
predictor; with interactions they agree only approximately.
"""

from typing import Any

from .config import code, get_section, prose
from .runner import run_section as _run

CONFIG = get_section("S4")

CELLS = [
    prose("""
        A *slope* is the partial derivative of the prediction with respect to one
        predictor, evaluated at a given row. The 0/1 predictor `am` has no
        derivative, so its rows hold the `1 - 0` contrast from S3 instead.
    """),
    code("""
        mfx = slopes(mod)
        assert len(mfx["table"]) == 3 * 32
        mfx["table"][["rowid", "term", "contrast", "estimate", "std_error", "p_value"]].head(6)
    """),
    prose("""
        The slope of `hp` depends on the transmission type: compare a typical
        automatic and a typical manual car.
    """),
    code("""
        slopes(mod, variables="hp", newdata=datagrid(mod, am=[0, 1]))
    """),
    prose("""
        The marginal effect at the mean evaluates the slope at the single row
        where every predictor is at its mean.
    """),
    code("""
        slopes(mod, variables="hp", newdata="mean")
    """),
    prose("""
        An elasticity reads as the percentage change in mpg for a one percent
        change in weight.
    """),
    code("""
        slopes(mod, variables="wt", slope="eyex", newdata="mean")
    """),
]


def run(verbose: bool = True) -> Any:
    """Run S4, preceded by the chapters it builds on."""
    return _run("S4", verbose=verbose)


def describe() -> str:
    """Return the full section description."""
    return __doc__
