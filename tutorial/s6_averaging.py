"""
S6: Averaging
=============

Goal
----
Summarize unit-level quantities by averaging them, overall or within groups.

Key ideas
---------
- The average prediction equals the arithmetic mean of the unit-level ones
- Uncertainty is propagated by averaging the rows of the Jacobian
- ``avg_*`` functions are the unit-level functions with ``by=True``;
  ``aggregate()`` averages an existing result
"""

from typing import Any

from .config import code, get_section, prose
from .runner import run_section as _run

CONFIG = get_section("S6")

CELLS = [
    prose("""
        Unit-level results are rich but long. Averaging them gives one number per
        question, with a standard error that accounts for the correlation between
        the averaged rows.
    """),
    code("""
        pre = predictions(mod)
        avg = avg_predictions(mod)
        assert len(avg["table"]) == 1
        assert np.isclose(avg["table"]["estimate"].iloc[0], pre["table"]["estimate"].mean())
        avg
    """),
    code("""
        by_am = avg_predictions(mod, by="am")
        assert len(by_am["table"]) == dat["am"].nunique()
        by_am
    """),
    prose("""
        `aggregate()` does the same for a result that has already been computed.
    """),
    code("""
        aggregate(pre, by="am")
    """),
    prose("""
        Average comparisons: the mean effect of each predictor over the observed
        cars, overall and by transmission type.
    """),
    code("""
        avg_comparisons(mod)
    """),
    code("""
        avg_comparisons(mod, variables="hp", by="am")
    """),
    code("""
        avg_slopes(mod, by="am")
    """),
]


def run(verbose: bool = True) -> Any:
    """Run S6, preceded by the chapters it builds on."""
    return _run("S6", verbose=verbose)


def describe() -> str:
    """Return the full section description."""
    return __doc__
