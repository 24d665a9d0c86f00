"""
S3: Comparisons
===============

Goal
----
Quantify how the predicted outcome changes when one predictor moves between
two values, holding the others fixed at each row's observed values.

Key ideas
---------
- Default contrasts: +1 unit for numeric predictors, 1 - 0 for binary ones,
  each level vs. the reference level for categorical ones
- One row per (predictor x evaluation row): 3 x 32 = 96 for this model
- The two values can be a fixed pair (``[100, 120]``), a symbolic spread
  (``"sd"``: one standard deviation centered on the mean, ``"iqr"``,
  ``"minmax"``), or a step (``50``)
- ``comparison=`` switches from differences to ratios, log ratios, or
  functions of the average predictions (``"ratioavg"``)

Interpretation
--------------
A comparison of ``hp`` with contrast ``+1`` is the expected change in mpg for
one extra horsepower for that particular car.
"""

from typing import Any

from .config import code, get_section, prose
from .runner import run_section as _run

CONFIG = get_section("S3")

CELLS = [
    prose("""
        A *comparison* contrasts two predictions that differ only in the value of
        one predictor. By default every predictor is moved by one unit (binary
        predictors from 0 to 1) at every row of the data.
    """),
    code("""
        cmp = comparisons(mod)
        assert len(cmp["table"]) == 3 * 32
        cmp["table"][["rowid", "term", "contrast", "estimate", "std_error", "p_value"]].head(6)
    """),
    prose("""
        The values being compared can be set explicitly. A fixed pair compares
        100 and 120 horsepower for every car; `"sd"` compares one standard
        deviation centered on the mean. The row count and the columns are the
        same either way; only the numbers change.
    """),
    code("""
        cmp_pair = comparisons(mod, variables={"hp": [100, 120]})
        cmp_sd = comparisons(mod, variables={"hp": "sd"})
        assert len(cmp_pair["table"]) == len(cmp_sd["table"]) == 32
        assert list(cmp_pair["table"].columns) == list(cmp_sd["table"].columns)
        print(cmp_pair["table"]["contrast"].iloc[0], "|", cmp_sd["table"]["contrast"].iloc[0])
        print(round(cmp_pair["table"]["estimate"].mean(), 3), round(cmp_sd["table"]["estimate"].mean(), 3))
    """),
    prose("""
        A number is read as a step: here the effect of 50 extra horsepower for a
        typical automatic and a typical manual car.
    """),
    code("""
        comparisons(mod, variables={"hp": 50}, newdata=datagrid(mod, am=[0, 1]))
    """),
    prose("""
        Ratios answer a relative question. `"ratioavg"` divides the average
        prediction with one extra horsepower by the average prediction without
        it, giving a single row.
    """),
    code("""
        avg_comparisons(mod, variables="hp", comparison="ratioavg")
    """),
    prose("""
        `transform` applies a function to the estimate and its interval after
        inference, for instance to turn a log ratio back into a ratio.
    """),
    code("""
        avg_comparisons(mod, variables="am", comparison="lnratioavg", transform=np.exp)
    """),
]


def run(verbose: bool = True) -> Any:
    """Run S3, preceded by the chapters it builds on."""
    return _run("S3", verbose=verbose)


def describe() -> str:
    """Return the full section description."""
    return __doc__
