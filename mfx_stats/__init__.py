"""
mfx_stats: Predictions, Comparisons and Slopes for Regression Models
====================================================================

Interpret a fitted linear model through the quantities it implies rather
than through its raw coefficients.

Usage:
    from mfx_stats import load_mtcars, fit_ols, predictions, avg_slopes

    mod = fit_ols(load_mtcars(), "mpg ~ hp * wt * am")
    pre = predictions(mod)                     # one row per car
    avg_slopes(mod, variables="hp", by="am")   # average marginal effect of hp
    hypotheses(mod, "b3 = 2 * b2")
"""

from .datasets import DATASETS, list_datasets, load_dataset, load_mtcars
from .models import (
    OLSResult,
    coefficient_names,
    design_matrix,
    fit_ols,
    summarize_ols_result,
)
from .grid import SUMMARIES, datagrid
from .inference import EffectsResult, equivalence_test
from .effects import aggregate, transform_estimates
from .hypotheses import hypotheses
from .predictions import avg_predictions, predictions
from .comparisons import avg_comparisons, comparisons
from .slopes import avg_slopes, slopes
from .reporting import (
    format_table,
    get_option,
    option_context,
    reset_options,
    set_option,
)
from .plotting import plot_predictions

__all__ = [
    # Data
    "DATASETS",
    "list_datasets",
    "load_dataset",
    "load_mtcars",
    # Models
    "OLSResult",
    "fit_ols",
    "design_matrix",
    "coefficient_names",
    "summarize_ols_result",
    # Grids
    "SUMMARIES",
    "datagrid",
    # Effects
    "EffectsResult",
    "predictions",
    "avg_predictions",
    "comparisons",
    "avg_comparisons",
    "slopes",
    "avg_slopes",
    "aggregate",
    "transform_estimates",
    "hypotheses",
    "equivalence_test",
    # Presentation
    "format_table",
    "get_option",
    "set_option",
    "reset_options",
    "option_context",
    "plot_predictions",
]
