"""
Inference Module
================

Shared machinery for every quantity the effects engine reports:

- numeric_jacobian: central finite differences of a quantity with respect
  to the model coefficients
- standard_errors: delta-method standard errors, sqrt(diag(J V J'))
- inference_frame: statistic, p-value, S-value and confidence interval
- create_effects_result: assemble an EffectsResult dict
- equivalence_test: two one-sided tests against an interval

Architecture Note:
    EffectsResult is a plain dict (kind, table, jacobian, vcov, model, ...)
    in keeping with OLSResult. Functions never mutate a result; they return
    a new one.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import stats

from .models import OLSResult


# =============================================================================
# EffectsResult (dict)
# =============================================================================

EffectsResult = Dict[str, Any]

INFERENCE_COLUMNS = [
    "estimate",
    "std_error",
    "statistic",
    "p_value",
    "s_value",
    "ci_lower",
    "ci_upper",
]

EQUIVALENCE_COLUMNS = [
    "statistic_noninf",
    "statistic_nonsup",
    "p_value_noninf",
    "p_value_nonsup",
    "p_value_equiv",
    "equivalent",
]


def is_effects_result(obj: Any) -> bool:
    """True if ``obj`` looks like an EffectsResult dictionary."""
    return isinstance(obj, dict) and "kind" in obj and "table" in obj


def _reference_distribution(df: float):
    """Normal for infinite degrees of freedom, Student t otherwise."""
    if df is None or np.isinf(df):
        return stats.norm
    return stats.t(df)


# =============================================================================
# Delta Method
# =============================================================================

def numeric_jacobian(
    func: Callable[[np.ndarray], np.ndarray],
    params: np.ndarray,
    step: Optional[float] = None,
) -> np.ndarray:
    """
    Jacobian of ``func`` at ``params`` by central finite differences.

    :param func: Maps a coefficient vector to a vector of estimates
    :param params: Coefficient vector at which to differentiate
    :param step: Absolute step (default: 1e-5 scaled by max(|param|, 1))
    :returns: Array of shape (n_estimates, n_params)
    """
    params = np.asarray(params, dtype=float)
    base = np.atleast_1d(np.asarray(func(params), dtype=float))
    jac = np.empty((base.size, params.size))

    for j in range(params.size):
        h = step if step is not None else 1e-5 * max(abs(params[j]), 1.0)
        up = params.copy()
        down = params.copy()
        up[j] += h
        down[j] -= h
        f_up = np.atleast_1d(np.asarray(func(up), dtype=float))
        f_down = np.atleast_1d(np.asarray(func(down), dtype=float))
        jac[:, j] = (f_up - f_down) / (2 * h)

    return jac


def standard_errors(jacobian: np.ndarray, vcov: np.ndarray) -> np.ndarray:
    """Delta-method standard errors: sqrt(diag(J V J'))."""
    variances = np.einsum("ij,jk,ik->i", jacobian, vcov, jacobian)
    # Round-off can leave tiny negatives for exactly-zero contrasts
    return np.sqrt(np.clip(variances, 0.0, None))


def inference_frame(
    estimates: np.ndarray,
    std_errors: np.ndarray,
    conf_level: float = 0.95,
    df: float = np.inf,
    null: float = 0.0,
) -> pd.DataFrame:
    """
    Build the statistics block of a result table.

    :param estimates: Point estimates
    :param std_errors: Standard errors (NaN allowed)
    :param conf_level: Confidence level for the interval
    :param df: Degrees of freedom (inf = normal reference)
    :param null: Null-hypothesis value for the test statistic
    :returns: DataFrame with INFERENCE_COLUMNS
    """
    if not 0 < conf_level < 1:
        raise ValueError(f"conf_level must be in (0, 1), got {conf_level}")

    estimates = np.asarray(estimates, dtype=float)
    std_errors = np.asarray(std_errors, dtype=float)
    dist = _reference_distribution(df)

    with np.errstate(divide="ignore", invalid="ignore"):
        statistic = (estimates - null) / std_errors
        p_value = 2 * dist.sf(np.abs(statistic))
        s_value = -np.log2(p_value)

    crit = dist.ppf(1 - (1 - conf_level) / 2)

    return pd.DataFrame({
        "estimate": estimates,
        "std_error": std_errors,
        "statistic": statistic,
        "p_value": p_value,
        "s_value": s_value,
        "ci_lower": estimates - crit * std_errors,
        "ci_upper": estimates + crit * std_errors,
    })


# =============================================================================
# Result Assembly
# =============================================================================

def create_effects_result(
    kind: str,
    context: pd.DataFrame,
    estimates: np.ndarray,
    jacobian: Optional[np.ndarray],
    model: OLSResult,
    lead_columns: Optional[Sequence[str]] = None,
    conf_level: float = 0.95,
    df: float = np.inf,
    null: float = 0.0,
) -> EffectsResult:
    """
    Create an EffectsResult dictionary.

    The table is laid out as: lead columns (identifiers such as ``rowid``,
    ``term``, ``contrast``, grid/by columns), then the statistics, then any
    remaining context columns (predicted values, covariates).

    :param kind: "predictions", "comparisons", "slopes", "coefficients" or "hypotheses"
    :param context: One row per estimate with identifying/covariate columns
    :param estimates: Point estimates, aligned with ``context``
    :param jacobian: d(estimates)/d(coefficients), or None if not available
    :param model: OLSResult the estimates were derived from
    :param lead_columns: Context columns to place before the statistics
    :param conf_level: Confidence level
    :param df: Degrees of freedom for the reference distribution
    :param null: Null-hypothesis value
    :returns: EffectsResult dictionary
    """
    estimates = np.atleast_1d(np.asarray(estimates, dtype=float))
    context = context.reset_index(drop=True)
    if len(context) != len(estimates):
        raise ValueError(
            f"Context has {len(context)} rows but there are {len(estimates)} estimates"
        )

    vcov = model["vcov"]
    if jacobian is not None:
        se = standard_errors(jacobian, vcov)
    else:
        se = np.full(len(estimates), np.nan)

    lead = [c for c in (lead_columns or []) if c in context.columns]
    trailing = context.drop(columns=lead)
    # Covariates must not shadow the statistics columns
    trailing = trailing.drop(columns=[c for c in INFERENCE_COLUMNS if c in trailing.columns])

    table = pd.concat(
        [
            context[lead],
            inference_frame(estimates, se, conf_level=conf_level, df=df, null=null),
            trailing,
        ],
        axis=1,
    )

    return {
        "kind": kind,
        "table": table,
        "jacobian": jacobian,
        "vcov": vcov,
        "model": model,
        "lead_columns": lead,
        "conf_level": conf_level,
        "df": df,
        "null": null,
    }


def replace_table(result: EffectsResult, table: pd.DataFrame, **changes: Any) -> EffectsResult:
    """Copy of ``result`` with a new table (and optional other keys replaced)."""
    new = dict(result)
    new["table"] = table
    new.update(changes)
    return new


def coefficients_result(
    model: OLSResult,
    conf_level: float = 0.95,
    df: float = np.inf,
) -> EffectsResult:
    """Wrap model coefficients as an EffectsResult (Jacobian = identity)."""
    names = list(model["model"].params.index)
    context = pd.DataFrame({"term": names})
    return create_effects_result(
        kind="coefficients",
        context=context,
        estimates=model["params"],
        jacobian=np.eye(len(names)),
        model=model,
        lead_columns=["term"],
        conf_level=conf_level,
        df=df,
    )


# =============================================================================
# Equivalence Tests
# =============================================================================

def equivalence_test(
    result: EffectsResult,
    bounds: Tuple[float, float],
) -> EffectsResult:
    """
    Two one-sided tests (TOST) that each estimate lies inside ``bounds``.

    Appends non-inferiority / non-superiority statistics and p-values, the
    equivalence p-value (the larger of the two) and a boolean ``equivalent``
    verdict at alpha = 1 - conf_level. Estimate and SE columns are untouched.

    :param result: EffectsResult with standard errors
    :param bounds: (low, high) equivalence interval
    :returns: New EffectsResult with EQUIVALENCE_COLUMNS appended
    :raises ValueError: If bounds are malformed or SEs are unavailable
    """
    try:
        low, high = (float(b) for b in bounds)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Equivalence bounds must be a (low, high) pair, got {bounds!r}") from e
    if not low < high:
        raise ValueError(f"Equivalence bounds must satisfy low < high, got ({low}, {high})")

    table = result["table"].copy()
    if "std_error" not in table.columns:
        raise ValueError("Equivalence test needs standard errors (was a transform applied?)")

    dist = _reference_distribution(result.get("df", np.inf))
    est = table["estimate"].to_numpy(dtype=float)
    se = table["std_error"].to_numpy(dtype=float)

    with np.errstate(divide="ignore", invalid="ignore"):
        stat_noninf = (est - low) / se
        stat_nonsup = (est - high) / se
    p_noninf = dist.sf(stat_noninf)
    p_nonsup = dist.cdf(stat_nonsup)
    p_equiv = np.maximum(p_noninf, p_nonsup)

    table["statistic_noninf"] = stat_noninf
    table["statistic_nonsup"] = stat_nonsup
    table["p_value_noninf"] = p_noninf
    table["p_value_nonsup"] = p_nonsup
    table["p_value_equiv"] = p_equiv
    table["equivalent"] = p_equiv < (1 - result["conf_level"])

    return replace_table(result, table, equivalence_bounds=(low, high))
