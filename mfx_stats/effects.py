"""
Effects Post-processing
=======================

Operations applied on top of unit-level effects results:

- aggregate: average estimates overall or within groups, propagating
  uncertainty through the averaged Jacobian
- transform_estimates: apply a function to estimates and confidence bounds
- finalize_effects: the shared pipeline used by predictions(),
  comparisons() and slopes():
  aggregate (by) -> hypothesis -> equivalence -> transform

Example:
    >>> pre = predictions(mod)
    >>> aggregate(pre)             # one row: mean prediction
    >>> aggregate(pre, by="am")    # one row per transmission type
"""
from __future__ import annotations

from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .hypotheses import Hypothesis, apply_hypothesis
from .inference import (
    EffectsResult,
    create_effects_result,
    equivalence_test,
    replace_table,
)


By = Union[bool, str, Sequence[str], None]


# =============================================================================
# Aggregation
# =============================================================================

def _by_columns(by: By) -> List[str]:
    if by is None or by is False or by is True:
        return []
    if isinstance(by, str):
        return [by]
    return list(by)


def aggregate(result: EffectsResult, by: By = True) -> EffectsResult:
    """
    Average an effects result overall or within groups.

    Rows are always kept apart by ``term`` and ``contrast`` (when present),
    so ``aggregate(comparisons(mod))`` returns one average per contrast.

    :param result: EffectsResult with unit-level (or already grouped) rows
    :param by: True or None for one overall row, column name(s) to group by,
        or False to return the result unchanged
    :returns: New EffectsResult with one row per group
    :raises ValueError: If a ``by`` column is missing or the result has no Jacobian
    """
    if by is False:
        return result

    jacobian = result.get("jacobian")
    if jacobian is None:
        raise ValueError("Cannot aggregate a transformed result; aggregate before transforming")

    table = result["table"]
    by_cols = _by_columns(by)
    missing = [c for c in by_cols if c not in table.columns]
    if missing:
        raise ValueError(
            f"Grouping columns {missing} not found in result. Available: {list(table.columns)}"
        )

    keys = [c for c in ("term", "contrast") if c in table.columns] + by_cols
    estimates = table["estimate"].to_numpy(dtype=float)

    if keys:
        grouped = table.groupby(keys, sort=True, dropna=False).indices
        groups = [
            (key if isinstance(key, tuple) else (key,), idx)
            for key, idx in grouped.items()
        ]
    else:
        groups = [((), np.arange(len(table)))]

    rows = []
    avg_estimates = []
    avg_jacobian = []
    for key, idx in groups:
        rows.append(dict(zip(keys, key)))
        avg_estimates.append(estimates[idx].mean())
        avg_jacobian.append(jacobian[idx].mean(axis=0))

    context = pd.DataFrame(rows, columns=keys)

    return create_effects_result(
        kind=result["kind"],
        context=context,
        estimates=np.array(avg_estimates),
        jacobian=np.vstack(avg_jacobian),
        model=result["model"],
        lead_columns=keys,
        conf_level=result["conf_level"],
        df=result["df"],
    )


# =============================================================================
# Transforms
# =============================================================================

def transform_estimates(
    result: EffectsResult,
    transform: Callable[[np.ndarray], np.ndarray],
) -> EffectsResult:
    """
    Apply a function to estimates and confidence bounds (e.g. ``np.exp``).

    The standard error no longer describes the transformed scale, so the
    column is dropped and the Jacobian discarded; tests computed earlier
    (statistic, p-value) are kept.

    :param result: EffectsResult
    :param transform: Vectorized function
    :returns: New EffectsResult
    """
    table = result["table"].copy()
    for col in ("estimate", "ci_lower", "ci_upper"):
        table[col] = np.asarray(transform(table[col].to_numpy(dtype=float)), dtype=float)

    # A decreasing transform swaps the interval ends
    lower = np.minimum(table["ci_lower"], table["ci_upper"])
    upper = np.maximum(table["ci_lower"], table["ci_upper"])
    table["ci_lower"] = lower
    table["ci_upper"] = upper

    table = table.drop(columns=["std_error"])
    return replace_table(result, table, jacobian=None, transformed=True)


# =============================================================================
# Pipeline
# =============================================================================

def finalize_effects(
    result: EffectsResult,
    by: By = False,
    hypothesis: Optional[Hypothesis] = None,
    equivalence: Optional[Tuple[float, float]] = None,
    transform: Optional[Callable[[np.ndarray], np.ndarray]] = None,
) -> EffectsResult:
    """Apply aggregation, hypothesis, equivalence and transform, in that order."""
    result = aggregate(result, by=by)
    result = apply_hypothesis(result, hypothesis)
    if equivalence is not None:
        result = equivalence_test(result, equivalence)
    if transform is not None:
        result = transform_estimates(result, transform)
    return result
