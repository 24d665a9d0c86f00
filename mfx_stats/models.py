"""
Linear Models Module
====================

Fits ordinary least-squares models from formulas using statsmodels and
exposes what the effects engine needs downstream: coefficients, their
covariance, and a way to rebuild the design matrix for new rows.

Architecture Note:
    Like the rest of mfx_stats, this module uses dictionaries instead of
    classes for data structures. ``OLSResult`` is a plain dict.

Key features:
- OLSResult dict for structured model output
- Formula validation (missing columns, malformed terms) as ValueError
- Singular designs are rejected instead of silently pseudo-inverted
- Variable classification (numeric / binary / categorical) for contrasts
- Design matrices for arbitrary evaluation grids via patsy
"""
from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional

import numpy as np
import pandas as pd
import statsmodels.api as sm
from patsy import DesignInfo, PatsyError, build_design_matrices, dmatrices
from statsmodels.regression.linear_model import RegressionResultsWrapper


# =============================================================================
# OLSResult (dict)
# =============================================================================

OLSResult = Dict[str, Any]

VariableType = str  # "numeric" | "binary" | "categorical"

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_CATEGORICAL_TERM = re.compile(r"C\(\s*([A-Za-z_][A-Za-z0-9_]*)")


def create_ols_result(
    outcome: str,
    formula: str,
    model: Optional[RegressionResultsWrapper] = None,
    data: Optional[pd.DataFrame] = None,
    coefficients: Optional[pd.DataFrame] = None,
    fit_stats: Optional[Dict[str, float]] = None,
    predictors: Optional[List[str]] = None,
    variable_types: Optional[Dict[str, VariableType]] = None,
    levels: Optional[Dict[str, list]] = None,
    n_obs: int = 0,
    model_warnings: Optional[List[str]] = None,
    design_info: Optional[DesignInfo] = None,
) -> OLSResult:
    """
    Create an OLSResult dictionary with all model output.

    :param outcome: Name of the outcome column
    :param formula: Model formula used
    :param model: Fitted statsmodels results object
    :param data: Rows actually used for fitting
    :param coefficients: DataFrame with estimates, SEs, CIs, p-values
    :param fit_stats: Dict with R², AIC, BIC, log-likelihood, etc.
    :param predictors: Predictor columns in formula order
    :param variable_types: Mapping predictor -> "numeric" | "binary" | "categorical"
    :param levels: Observed levels of categorical predictors
    :param n_obs: Number of observations
    :param model_warnings: List of warnings generated during fitting
    :param design_info: patsy design of the predictor matrix, reused for new rows
    :returns: OLSResult dictionary
    """
    params = model.params.to_numpy(dtype=float) if model is not None else np.array([])
    vcov = model.cov_params().to_numpy(dtype=float) if model is not None else np.empty((0, 0))
    return {
        "outcome": outcome,
        "formula": formula,
        "model": model,
        "data": data if data is not None else pd.DataFrame(),
        "params": params,
        "vcov": vcov,
        "coefficients": coefficients if coefficients is not None else pd.DataFrame(),
        "fit_stats": fit_stats if fit_stats is not None else {},
        "predictors": predictors if predictors is not None else [],
        "variable_types": variable_types if variable_types is not None else {},
        "levels": levels if levels is not None else {},
        "n_obs": n_obs,
        "warnings": model_warnings if model_warnings is not None else [],
        "design_info": design_info,
    }


def is_ols_result(obj: Any) -> bool:
    """True if ``obj`` looks like an OLSResult dictionary."""
    return isinstance(obj, dict) and "formula" in obj and "params" in obj


def summarize_ols_result(result: OLSResult) -> str:
    """
    Generate a summary string for an OLS result.

    :param result: OLSResult dictionary
    :returns: Human-readable summary string
    """
    stats = result["fit_stats"]
    lines = [
        f"OLS Result: {result['outcome']}",
        f"  Formula: {result['formula']}",
        f"  N observations: {result['n_obs']}",
        f"  Coefficients: {len(result['params'])}",
        f"  R²: {stats.get('r2', np.nan):.3f} (adj. {stats.get('adj_r2', np.nan):.3f})",
        f"  AIC: {stats.get('aic', np.nan):.2f}",
        f"  Residual variance: {stats.get('scale', np.nan):.3f}",
    ]
    if result["warnings"]:
        lines.append(f"  Warnings: {len(result['warnings'])}")
    return "\n".join(lines)


def coefficient_names(result: OLSResult) -> List[str]:
    """Coefficient names in model order (``Intercept``, ``hp``, ``C(cyl)[T.6]``, ...)."""
    return list(result["model"].params.index)


# =============================================================================
# Formula Helpers
# =============================================================================

def formula_variables(formula: str, columns: Iterable[str]) -> List[str]:
    """
    Data columns referenced in a formula (or one side of it), in order of appearance.

    :param formula: Formula text, e.g. ``"mpg ~ hp * wt * am"``
    :param columns: Available column names
    :returns: Unique column names found in the formula
    """
    available = set(columns)
    found: List[str] = []
    for token in _IDENTIFIER.findall(formula):
        if token in available and token not in found:
            found.append(token)
    return found


def classify_variables(
    data: pd.DataFrame,
    predictors: List[str],
    formula: str,
) -> Dict[str, VariableType]:
    """
    Classify predictors for contrast construction.

    - categorical: wrapped in ``C(...)`` in the formula, or non-numeric dtype
    - binary: numeric with observed values exactly {0, 1}
    - numeric: everything else
    """
    wrapped = set(_CATEGORICAL_TERM.findall(formula))
    types: Dict[str, VariableType] = {}
    for var in predictors:
        col = data[var]
        if var in wrapped or not pd.api.types.is_numeric_dtype(col) or pd.api.types.is_bool_dtype(col):
            types[var] = "categorical"
        elif set(col.dropna().unique().tolist()) == {0, 1}:
            types[var] = "binary"
        else:
            types[var] = "numeric"
    return types


def _observed_levels(col: pd.Series) -> list:
    """Levels in the order patsy uses for treatment coding."""
    if isinstance(col.dtype, pd.CategoricalDtype):
        return list(col.cat.categories)
    return sorted(col.dropna().unique().tolist())


# =============================================================================
# Model Fitting
# =============================================================================

def fit_ols(
    data: pd.DataFrame,
    formula: str,
) -> OLSResult:
    """
    Fit an ordinary least-squares model from a formula.

    :param data: DataFrame with outcome and predictor columns
    :param formula: statsmodels/patsy formula, e.g. ``"mpg ~ hp * wt * am"``
    :returns: OLSResult dictionary with model output
    :raises ValueError: If the formula is malformed, references missing
        columns, or yields a singular design matrix

    Example:
        >>> mod = fit_ols(load_mtcars(), "mpg ~ hp * wt * am")
        >>> print(mod["coefficients"])
    """
    model_warnings = []

    if "~" not in formula:
        raise ValueError(f"Formula '{formula}' has no '~' separating outcome and predictors")

    lhs, rhs = formula.split("~", 1)
    outcome_vars = formula_variables(lhs, data.columns)
    if not outcome_vars:
        raise ValueError(f"Outcome in formula '{formula}' not found in dataset")
    outcome = outcome_vars[0]
    predictors = formula_variables(rhs, data.columns)

    # Drop rows with missing values in any formula variable
    df = data.dropna(subset=[outcome] + predictors).copy()
    n_dropped = len(data) - len(df)
    if n_dropped:
        model_warnings.append(f"Dropped {n_dropped} rows with missing values")

    try:
        y, X = dmatrices(formula, df, return_type="dataframe", NA_action="raise")
    except PatsyError as e:
        raise ValueError(f"Invalid formula '{formula}': {e}") from e
    if y.shape[1] != 1:
        raise ValueError(f"Formula '{formula}' must have a single numeric outcome")

    # Reject rank-deficient designs (OLS would otherwise pinv its way through)
    exog = X.to_numpy(dtype=float)
    rank = np.linalg.matrix_rank(exog)
    if rank < exog.shape[1]:
        raise ValueError(
            f"Design matrix is singular for formula '{formula}' "
            f"(rank {rank} < {exog.shape[1]} columns)"
        )
    if exog.shape[0] <= exog.shape[1]:
        raise ValueError(
            f"Not enough observations ({exog.shape[0]}) for {exog.shape[1]} coefficients"
        )

    fitted = sm.OLS(y.iloc[:, 0], X).fit()

    variable_types = classify_variables(df, predictors, formula)
    levels = {
        var: _observed_levels(df[var])
        for var, kind in variable_types.items()
        if kind == "categorical"
    }

    fit_stats = {
        "r2": float(fitted.rsquared),
        "adj_r2": float(fitted.rsquared_adj),
        "aic": float(fitted.aic),
        "bic": float(fitted.bic),
        "llf": float(fitted.llf),
        "scale": float(fitted.scale),
        "df_resid": float(fitted.df_resid),
    }

    return create_ols_result(
        outcome=outcome,
        formula=formula,
        model=fitted,
        data=df.reset_index(drop=True),
        coefficients=_extract_coefficients(fitted),
        fit_stats=fit_stats,
        predictors=predictors,
        variable_types=variable_types,
        levels=levels,
        n_obs=int(fitted.nobs),
        model_warnings=model_warnings,
        design_info=X.design_info,
    )


def _extract_coefficients(result: RegressionResultsWrapper) -> pd.DataFrame:
    """Extract coefficient table from fitted model."""
    summary_df = pd.DataFrame({
        "estimate": result.params,
        "std_error": result.bse,
        "t_value": result.tvalues,
        "p_value": result.pvalues,
    })

    conf_int = result.conf_int()
    summary_df["ci_lower"] = conf_int.iloc[:, 0]
    summary_df["ci_upper"] = conf_int.iloc[:, 1]

    summary_df = summary_df.reset_index()
    summary_df = summary_df.rename(columns={"index": "term"})

    return summary_df


# =============================================================================
# Design Matrices
# =============================================================================

def design_matrix(result: OLSResult, newdata: pd.DataFrame) -> np.ndarray:
    """
    Build the model matrix for new rows using the fitted design.

    Categorical levels and term structure come from the training data, so a
    grid with a single value of ``cyl`` still produces every dummy column.

    :param result: OLSResult from fit_ols()
    :param newdata: Rows at which to evaluate the model
    :returns: Array of shape (len(newdata), n_coefficients)
    :raises ValueError: If predictor columns are missing or values cannot be encoded
    """
    missing = [c for c in result["predictors"] if c not in newdata.columns]
    if missing:
        raise ValueError(f"Missing columns in newdata: {missing}")

    design_info = result.get("design_info")
    if design_info is None:
        raise ValueError("Model has no stored design; fit it with fit_ols()")
    try:
        (matrix,) = build_design_matrices([design_info], newdata, NA_action="raise")
    except PatsyError as e:
        raise ValueError(f"Cannot build design matrix for newdata: {e}") from e
    return np.asarray(matrix, dtype=float)
