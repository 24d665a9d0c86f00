"""
Slopes
======

Partial derivatives of the predicted outcome with respect to a predictor,
evaluated at each row of ``newdata``.

The derivative is a centered finite difference:

    dY/dX ~ (f(x + eps/2) - f(x - eps/2)) / eps,   eps = 1e-4 * range(x)

Slope types (``slope``):
- "dydx": dY/dX
- "eyex": dY/dX * x / Y   (elasticity)
- "eydx": dY/dX / Y       (semi-elasticity, proportional change in Y per unit X)
- "dyex": dY/dX * x       (change in Y per proportional change in X)

Categorical predictors have no derivative; they are reported as reference
contrasts (each level minus the reference level). Binary 0/1 predictors are
reported as the 1 - 0 contrast, as in comparisons().
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from .comparisons import categorical_contrasts, numeric_contrast
from .effects import By, finalize_effects
from .grid import resolve_newdata
from .hypotheses import Hypothesis
from .inference import EffectsResult, create_effects_result, numeric_jacobian
from .models import OLSResult, design_matrix


SLOPE_LABELS: Dict[str, str] = {
    "dydx": "dY/dX",
    "eyex": "eY/eX",
    "eydx": "eY/dX",
    "dyex": "dY/eX",
}


def _step(model: OLSResult, var: str, eps: Optional[float]) -> float:
    if eps is not None:
        if eps <= 0:
            raise ValueError(f"eps must be positive, got {eps}")
        return float(eps)
    col = model["data"][var].astype(float)
    spread = col.max() - col.min()
    return 1e-4 * spread if spread > 0 else 1e-4


def _slope_variables(model: OLSResult, variables: Any) -> List[str]:
    if variables is None:
        names = list(model["predictors"])
    elif isinstance(variables, str):
        names = [variables]
    else:
        names = list(variables)
    unknown = [v for v in names if v not in model["predictors"]]
    if unknown:
        raise ValueError(f"Variables {unknown} are not predictors of the model: {model['predictors']}")
    return names


def slopes(
    model: OLSResult,
    variables: Any = None,
    newdata: Any = None,
    slope: str = "dydx",
    by: By = False,
    hypothesis: Optional[Hypothesis] = None,
    equivalence: Optional[Tuple[float, float]] = None,
    transform: Optional[Callable[[np.ndarray], np.ndarray]] = None,
    conf_level: float = 0.95,
    df: float = np.inf,
    eps: Optional[float] = None,
) -> EffectsResult:
    """
    Unit-level slopes (marginal effects).

    :param model: OLSResult from fit_ols()
    :param variables: Predictor name(s) (default: every predictor)
    :param newdata: None (training rows), "mean", "median", or a DataFrame
    :param slope: "dydx", "eyex", "eydx" or "dyex"
    :param by: Aggregate overall (True) or by column(s)
    :param hypothesis: Hypothesis on the resulting estimates
    :param equivalence: (low, high) bounds for equivalence tests
    :param transform: Function applied to estimates and confidence bounds
    :param conf_level: Confidence level
    :param df: Degrees of freedom (inf = normal reference)
    :param eps: Finite-difference step (default: 1e-4 * range of the predictor)
    :returns: EffectsResult with one row per (variable x evaluation row)

    Example:
        >>> slopes(mod)                                  # 3 x 32 rows
        >>> slopes(mod, variables="hp", newdata="mean")  # marginal effect at the mean
        >>> avg_slopes(mod, by="am")
    """
    if slope not in SLOPE_LABELS:
        raise ValueError(f"Unknown slope '{slope}'. Available: {list(SLOPE_LABELS)}")

    grid, focus = resolve_newdata(model, newdata)
    grid = grid.reset_index(drop=True)
    params = model["params"]
    X = design_matrix(model, grid)

    # (term, contrast, X_lo, X_hi, step, x); step is None for level contrasts
    blocks = []
    for var in _slope_variables(model, variables):
        kind = model["variable_types"][var]
        if kind in ("categorical", "binary"):
            # No derivative: report the level contrast instead
            specs = (categorical_contrasts(model, var) if kind == "categorical"
                     else [numeric_contrast(model, var, grid)])
            for spec in specs:
                lo, hi = grid.copy(), grid.copy()
                lo[var] = spec["lo"]
                hi[var] = spec["hi"]
                blocks.append((var, spec["label"], design_matrix(model, lo),
                               design_matrix(model, hi), None, None))
            continue

        h = _step(model, var, eps)
        x = grid[var].to_numpy(dtype=float)
        lo, hi = grid.copy(), grid.copy()
        lo[var] = x - h / 2
        hi[var] = x + h / 2
        blocks.append((var, SLOPE_LABELS[slope], design_matrix(model, lo),
                       design_matrix(model, hi), h, x))

    def fn(beta: np.ndarray) -> np.ndarray:
        y = X @ beta
        out = []
        for _, _, X_lo, X_hi, h, x in blocks:
            if h is None:
                out.append(X_hi @ beta - X_lo @ beta)
                continue
            dydx = (X_hi @ beta - X_lo @ beta) / h
            if slope == "eyex":
                dydx = dydx * x / y
            elif slope == "eydx":
                dydx = dydx / y
            elif slope == "dyex":
                dydx = dydx * x
            out.append(dydx)
        return np.concatenate(out)

    predicted = X @ params
    frames = []
    for term, contrast, _, _, _, _ in blocks:
        frame = grid.drop(columns=["rowid"], errors="ignore")
        frame.insert(0, "rowid", np.arange(len(grid)))
        frame.insert(1, "term", term)
        frame.insert(2, "contrast", contrast)
        frame["predicted"] = predicted
        frames.append(frame)

    result = create_effects_result(
        kind="slopes",
        context=pd.concat(frames, ignore_index=True),
        estimates=fn(params),
        jacobian=numeric_jacobian(fn, params),
        model=model,
        lead_columns=["rowid", "term", "contrast"] + focus,
        conf_level=conf_level,
        df=df,
    )
    return finalize_effects(result, by=by, hypothesis=hypothesis,
                            equivalence=equivalence, transform=transform)


def avg_slopes(
    model: OLSResult,
    variables: Any = None,
    newdata: Any = None,
    slope: str = "dydx",
    by: By = True,
    hypothesis: Optional[Hypothesis] = None,
    equivalence: Optional[Tuple[float, float]] = None,
    transform: Optional[Callable[[np.ndarray], np.ndarray]] = None,
    conf_level: float = 0.95,
    df: float = np.inf,
    eps: Optional[float] = None,
) -> EffectsResult:
    """Average slopes (average marginal effects), overall or by group."""
    return slopes(
        model,
        variables=variables,
        newdata=newdata,
        slope=slope,
        by=by,
        hypothesis=hypothesis,
        equivalence=equivalence,
        transform=transform,
        conf_level=conf_level,
        df=df,
        eps=eps,
    )
