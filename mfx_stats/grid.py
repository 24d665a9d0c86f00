"""
Data Grids
==========

Build synthetic evaluation grids to pass as ``newdata`` to predictions(),
comparisons() and slopes().

Two grid types:
- typical: one row per combination of the requested values; every other
  model predictor held at a representative value (mean for numeric and
  binary columns, mode for categorical columns)
- counterfactual: the full dataset replicated once per combination of the
  requested values (``rowidcf`` points back at the original row)

Requested values can be a scalar, a list/array, a callable applied to the
column, or the name of a summary (see SUMMARIES).

Example:
    >>> datagrid(mod, hp=[100, 120], am=[0, 1])       # 4 rows
    >>> datagrid(mod, wt="threenum")                   # mean - sd, mean, mean + sd
    >>> datagrid(mod, am=[0, 1], grid_type="counterfactual")   # 64 rows
"""
from __future__ import annotations

import itertools
from typing import Any, Callable, Dict, List, Literal, Optional, Tuple

import numpy as np
import pandas as pd

from .models import OLSResult


GridType = Literal["typical", "counterfactual"]


# =============================================================================
# Summaries
# =============================================================================

def _mode(col: pd.Series) -> Any:
    counts = col.value_counts(sort=True, dropna=True)
    if counts.empty:
        raise ValueError(f"Column '{col.name}' has no observed values")
    # Ties resolve to the smallest level for a stable grid
    top = counts[counts == counts.iloc[0]].index
    return sorted(top.tolist())[0] if len(top) > 1 else top[0]


def _threenum(col: pd.Series) -> List[float]:
    m, s = col.mean(), col.std()
    return [m - s, m, m + s]


SUMMARIES: Dict[str, Callable[[pd.Series], Any]] = {
    "mean": lambda col: col.mean(),
    "median": lambda col: col.median(),
    "mode": _mode,
    "min": lambda col: col.min(),
    "max": lambda col: col.max(),
    "minmax": lambda col: [col.min(), col.max()],
    "quartile": lambda col: col.quantile([0.25, 0.5, 0.75]).tolist(),
    "threenum": _threenum,
    "fivenum": lambda col: col.quantile([0.0, 0.25, 0.5, 0.75, 1.0]).tolist(),
    "unique": lambda col: sorted(col.dropna().unique().tolist()),
}


def summarize_column(col: pd.Series, summary: str) -> List[Any]:
    """
    Resolve a named summary for a column.

    :param col: Source column
    :param summary: Key of SUMMARIES
    :returns: List of values
    :raises ValueError: If the summary is unknown
    """
    if summary not in SUMMARIES:
        raise ValueError(f"Unknown summary '{summary}' for '{col.name}'. Available: {list(SUMMARIES)}")
    return _as_list(SUMMARIES[summary](col))


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple, np.ndarray, pd.Series, pd.Index)):
        return list(value)
    return [value]


def representative_value(col: pd.Series, variable_type: str = "numeric") -> Any:
    """Mean for numeric/binary columns, mode for categorical ones."""
    if variable_type == "categorical" or not pd.api.types.is_numeric_dtype(col) or pd.api.types.is_bool_dtype(col):
        return _mode(col)
    return col.mean()


def _resolve_values(col: pd.Series, spec: Any) -> List[Any]:
    if isinstance(spec, str) and (spec in SUMMARIES or pd.api.types.is_numeric_dtype(col)):
        return summarize_column(col, spec)
    if callable(spec):
        return _as_list(spec(col))
    values = _as_list(spec)
    if not values:
        raise ValueError(f"No values requested for '{col.name}'")
    return values


# =============================================================================
# Grid Builder
# =============================================================================

def datagrid(
    model: Optional[OLSResult] = None,
    newdata: Optional[pd.DataFrame] = None,
    grid_type: GridType = "typical",
    **overrides: Any,
) -> pd.DataFrame:
    """
    Build an evaluation grid.

    :param model: OLSResult whose predictors define the grid columns
    :param newdata: Source data (default: the model's training data)
    :param grid_type: "typical" or "counterfactual"
    :param overrides: Column -> value(s), callable, or summary name
    :returns: DataFrame; requested columns are listed in ``attrs["focus"]``
    :raises ValueError: If no source data is available, a column is unknown,
        or the grid type is invalid
    """
    if newdata is None:
        if model is None:
            raise ValueError("datagrid() needs a model or newdata")
        newdata = model["data"]

    unknown = [c for c in overrides if c not in newdata.columns]
    if unknown:
        raise ValueError(f"Unknown grid columns: {unknown}. Available: {list(newdata.columns)}")

    if model is not None:
        columns = list(model["predictors"])
        variable_types = model["variable_types"]
    else:
        columns = list(newdata.columns)
        variable_types = {}

    values = {name: _resolve_values(newdata[name], spec) for name, spec in overrides.items()}
    focus = list(overrides)
    combos = list(itertools.product(*values.values())) if values else [()]

    if grid_type == "typical":
        fixed = {
            c: representative_value(newdata[c], variable_types.get(c, "numeric"))
            for c in columns
            if c not in overrides
        }
        rows = []
        for combo in combos:
            row = dict(zip(focus, combo))
            row.update(fixed)
            rows.append(row)
        order = focus + [c for c in columns if c not in focus]
        grid = pd.DataFrame(rows, columns=order)

    elif grid_type == "counterfactual":
        base = newdata.reset_index(drop=True)
        keep = [c for c in base.columns if c in columns or c in focus] if model is not None else list(base.columns)
        if model is not None and model["outcome"] in base.columns and model["outcome"] not in keep:
            keep.append(model["outcome"])
        blocks = []
        for combo in combos:
            block = base[keep].copy()
            for name, value in zip(focus, combo):
                block[name] = value
            block.insert(0, "rowidcf", np.arange(len(base)))
            blocks.append(block)
        grid = pd.concat(blocks, ignore_index=True)

    else:
        raise ValueError(f"Unknown grid_type '{grid_type}'. Use 'typical' or 'counterfactual'")

    # Keep integer-coded columns integer when every value is whole
    for name in focus:
        col = grid[name]
        src = newdata[name]
        if pd.api.types.is_integer_dtype(src) and pd.api.types.is_float_dtype(col):
            if np.all(np.mod(col.to_numpy(), 1) == 0):
                grid[name] = col.astype(src.dtype)

    grid.attrs["focus"] = focus
    return grid


def resolve_newdata(
    model: OLSResult,
    newdata: Any = None,
) -> Tuple[pd.DataFrame, List[str]]:
    """
    Normalize the ``newdata`` argument of the effects functions.

    :param model: OLSResult
    :param newdata: None (training rows), "mean", "median", or a DataFrame
    :returns: (evaluation grid, focus columns to display)
    :raises ValueError: For unsupported values
    """
    if newdata is None:
        return model["data"].copy(), []

    if isinstance(newdata, str):
        if newdata == "mean":
            return datagrid(model), list(model["predictors"])
        if newdata == "median":
            numeric = {
                c: "median"
                for c in model["predictors"]
                if model["variable_types"].get(c) != "categorical"
            }
            grid = datagrid(model, **numeric)
            return grid[list(model["predictors"])], list(model["predictors"])
        raise ValueError(f"Unknown newdata shortcut '{newdata}'. Use 'mean', 'median' or a DataFrame")

    if isinstance(newdata, pd.DataFrame):
        if newdata.empty:
            raise ValueError("newdata is empty")
        focus = [c for c in newdata.attrs.get("focus", []) if c in newdata.columns]
        return newdata.copy(), focus

    raise ValueError(f"newdata must be None, 'mean', 'median' or a DataFrame, got {type(newdata).__name__}")
