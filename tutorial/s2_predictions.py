"""
S2: Predictions
===============

Goal
----
Compute the outcome the model expects for a given set of predictor values,
with a standard error and confidence interval.

Key ideas
---------
- Unit-level predictions: one per row of the data (32 here)
- Predictions on a grid: one per row of a synthetic ``datagrid``
- Prediction at the mean: ``newdata="mean"``
- Counterfactual predictions: ``variables={"am": [0, 1]}`` duplicates every
  evaluation row for each value

Standard errors come from the delta method. For a linear model the
Jacobian of a prediction is its row of the design matrix, so the standard
error equals the one statsmodels reports for the mean prediction.
"""

from typing import Any

from .config import code, get_section, prose
from .runner import run_section as _run

CONFIG = get_section("S2")

CELLS = [
    prose("""
        A *prediction* is the outcome value implied by the model for one row of
        predictor values. By default `predictions()` evaluates the model at
        every row of the data used to fit it.
    """),
    code("""
        pre = predictions(mod)
        assert len(pre["table"]) == len(dat) == 32
        pre["table"][["rowid", "estimate", "std_error", "ci_lower", "ci_upper", "hp", "wt", "am"]].head()
    """),
    prose("""
        Often the interesting rows are not in the data. `datagrid()` builds them:
        the requested columns take every combination of the requested values and
        the remaining predictors are held at their mean (or mode for
        categorical predictors).
    """),
    code("""
        grid = datagrid(mod, hp=[100, 120], am=[0, 1])
        grid
    """),
    code("""
        predictions(mod, newdata=grid)
    """),
    prose("""
        `newdata="mean"` is a shortcut for the single row where every predictor
        sits at its mean.
    """),
    code("""
        predictions(mod, newdata="mean")
    """),
    prose("""
        Counterfactual predictions replicate each evaluation row once per value
        of a variable: here, the same two cars with an automatic and with a
        manual transmission.
    """),
    code("""
        predictions(mod, newdata=datagrid(mod, hp=[100, 150]), variables={"am": [0, 1]})
    """),
]


def run(verbose: bool = True) -> Any:
    """Run S2, preceded by the chapters it builds on."""
    return _run("S2", verbose=verbose)


def describe() -> str:
    """Return the full section description."""
    return __doc__
