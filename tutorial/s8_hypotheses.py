"""
S8: Hypothesis and Equivalence Tests
====================================

Goal
----
Test linear and non-linear restrictions on coefficients and on computed
estimates, and test whether an effect is practically negligible.

Hypothesis syntax
-----------------
- Positional: ``"b3 = 2 * b2"`` (``b1`` is the first estimate)
- Named: ``"wt = 2 * hp"`` when names are unique in the result
- Keywords: ``"pairwise"``, ``"revpairwise"``, ``"reference"``, ``"sequential"``
- A number tests every estimate against that value

Equivalence
-----------
``equivalence=(low, high)`` adds two one-sided tests (TOST). The estimate is
declared equivalent when both reject at 1 - conf_level.

Interpretation
--------------
- Positional and named references to the same coefficients give identical
  statistics
- A non-significant difference is not evidence of equivalence; the TOST
  columns answer that question directly
"""

from typing import Any

from .config import code, get_section, prose
from .runner import run_section as _run

CONFIG = get_section("S8")

CELLS = [
    prose("""
        `hypotheses()` tests restrictions on the coefficients of a model. `b2`
        and `b3` refer to the second and third coefficients (`hp` and `wt`).
    """),
    code("""
        h_pos = hypotheses(mod, "b3 = 2 * b2")
        assert len(h_pos["table"]) == 1
        h_pos
    """),
    prose("""
        The same restriction written with coefficient names gives identical
        numbers.
    """),
    code("""
        h_name = hypotheses(mod, "wt = 2 * hp")
        assert np.isclose(h_pos["table"]["statistic"].iloc[0], h_name["table"]["statistic"].iloc[0])
        assert np.isclose(h_pos["table"]["p_value"].iloc[0], h_name["table"]["p_value"].iloc[0])
        h_name
    """),
    prose("""
        The `hypothesis` argument of the effects functions tests restrictions on
        their estimates. With a categorical predictor, pairwise differences
        between average predictions compare every pair of cylinder counts.
    """),
    code("""
        mod_cyl = fit_ols(dat, "mpg ~ hp + wt + C(cyl)")
        avg_predictions(mod_cyl, by="cyl", hypothesis="pairwise")
    """),
    code("""
        avg_comparisons(mod_cyl, variables="cyl")
    """),
    prose("""
        Is the average effect of a manual transmission practically negligible,
        that is, inside (-2, 2) mpg? The equivalence columns are appended to the
        table; estimate and standard error are unchanged.
    """),
    code("""
        plain = avg_comparisons(mod, variables="am")
        equiv = avg_comparisons(mod, variables="am", equivalence=(-2, 2))
        assert np.allclose(plain["table"]["estimate"], equiv["table"]["estimate"])
        assert np.allclose(plain["table"]["std_error"], equiv["table"]["std_error"])
        assert "equivalent" in equiv["table"].columns
        equiv
    """),
    code("""
        hypotheses(mod, "b3 = 2 * b2", equivalence=(-2, 2))
    """),
]


def run(verbose: bool = True) -> Any:
    """Run S8, preceded by the chapters it builds on."""
    return _run("S8", verbose=verbose)


def describe() -> str:
    """Return the full section description."""
    return __doc__
