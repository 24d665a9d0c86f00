"""
S1: Data and Model
==================

Goal
----
Fit the model every later chapter interprets.

Background
----------
``mtcars`` holds fuel efficiency (mpg) and design features for 32 cars.
The model lets the effect of horsepower depend on weight and on the
transmission type (``am``: 0 = automatic, 1 = manual):

    mpg ~ hp * wt * am

With three-way interactions the coefficients are hard to read on their own,
which is the motivation for the rest of the tutorial: ask the model
questions on the scale of the outcome instead.

Usage
-----
    from tutorial import run_section
    result = run_section("S1")
"""

from typing import Any

from .config import code, get_section, prose
from .runner import run_section as _run

CONFIG = get_section("S1")

CELLS = [
    prose("""
        This tutorial interprets a regression model through the quantities it
        implies: **predictions**, **comparisons** between predictions, and
        **slopes**. We start from the `mtcars` data shipped with the package.
    """),
    code("""
        dat = load_mtcars()
        print(dat.shape)
        dat[["model", "mpg", "hp", "wt", "am", "cyl"]].head()
    """),
    prose("""
        Fuel efficiency is modelled as a function of horsepower, weight and
        transmission type, with every interaction between them.
    """),
    code("""
        mod = fit_ols(dat, "mpg ~ hp * wt * am")
        print(summarize_ols_result(mod))
    """),
    code("""
        mod["coefficients"]
    """),
    prose("""
        Eight coefficients, three of them interactions. The sign of `hp` alone
        says little about how horsepower relates to fuel efficiency for a
        typical car, because its effect shifts with `wt` and `am`.
    """),
]


def run(verbose: bool = True) -> Any:
    """Run S1, preceded by the chapters it builds on."""
    return _run("S1", verbose=verbose)


def describe() -> str:
    """Return the full section description."""
    return __doc__
