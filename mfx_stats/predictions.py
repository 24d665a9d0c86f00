"""
Predictions
===========

Model-implied outcome values with delta-method uncertainty.

- predictions: one row per row of ``newdata`` (default: the training rows)
- avg_predictions: the same, averaged overall or within ``by`` groups

For a linear model the Jacobian of the prediction with respect to the
coefficients is the design matrix itself, so no numerical differentiation
is needed here.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Tuple

import numpy as np

from .effects import By, finalize_effects
from .grid import datagrid, resolve_newdata
from .hypotheses import Hypothesis
from .inference import EffectsResult, create_effects_result
from .models import OLSResult, design_matrix


def predictions(
    model: OLSResult,
    newdata: Any = None,
    variables: Optional[Dict[str, Any]] = None,
    by: By = False,
    hypothesis: Optional[Hypothesis] = None,
    equivalence: Optional[Tuple[float, float]] = None,
    transform: Optional[Callable[[np.ndarray], np.ndarray]] = None,
    conf_level: float = 0.95,
    df: float = np.inf,
) -> EffectsResult:
    """
    Unit-level predictions.

    :param model: OLSResult from fit_ols()
    :param newdata: None (training rows), "mean", "median", or a DataFrame (e.g. datagrid())
    :param variables: Column -> values; replicates ``newdata`` once per value (counterfactual)
    :param by: Aggregate overall (True) or by column(s)
    :param hypothesis: Hypothesis on the resulting estimates
    :param equivalence: (low, high) bounds for equivalence tests
    :param transform: Function applied to estimates and confidence bounds
    :param conf_level: Confidence level
    :param df: Degrees of freedom (inf = normal reference)
    :returns: EffectsResult with one row per evaluation row (or group)

    Example:
        >>> pre = predictions(mod)
        >>> len(pre["table"]) == len(mod["data"])
        True
        >>> predictions(mod, newdata=datagrid(mod, hp=[100, 120], am=[0, 1]))
    """
    grid, focus = resolve_newdata(model, newdata)

    if variables:
        if not isinstance(variables, dict):
            raise ValueError("predictions(variables=...) must be a dict of column -> values")
        grid = datagrid(model, newdata=grid, grid_type="counterfactual", **variables)
        focus = focus + [v for v in variables if v not in focus]

    X = design_matrix(model, grid)
    estimates = X @ model["params"]

    context = grid.reset_index(drop=True).drop(columns=["rowid"], errors="ignore")
    context.insert(0, "rowid", np.arange(len(context)))

    result = create_effects_result(
        kind="predictions",
        context=context,
        estimates=estimates,
        jacobian=X,
        model=model,
        lead_columns=["rowid"] + focus,
        conf_level=conf_level,
        df=df,
    )
    return finalize_effects(
        result,
        by=by,
        hypothesis=hypothesis,
        equivalence=equivalence,
        transform=transform,
    )


def avg_predictions(
    model: OLSResult,
    newdata: Any = None,
    variables: Optional[Dict[str, Any]] = None,
    by: By = True,
    hypothesis: Optional[Hypothesis] = None,
    equivalence: Optional[Tuple[float, float]] = None,
    transform: Optional[Callable[[np.ndarray], np.ndarray]] = None,
    conf_level: float = 0.95,
    df: float = np.inf,
) -> EffectsResult:
    """
    Average predictions (overall by default, or within ``by`` groups).

    Example:
        >>> avg_predictions(mod)             # one row
        >>> avg_predictions(mod, by="am")    # one row per value of am
    """
    return predictions(
        model,
        newdata=newdata,
        variables=variables,
        by=by,
        hypothesis=hypothesis,
        equivalence=equivalence,
        transform=transform,
        conf_level=conf_level,
        df=df,
    )
