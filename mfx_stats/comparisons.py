"""
Comparisons
===========

Change in the predicted outcome between two values of a predictor, holding
the other covariates fixed at their values in each evaluation row.

Contrast specification (``variables``):
- None: every predictor with its default contrast
- "hp" or ["hp", "wt"]: the listed predictors, default contrasts
- {"hp": spec, ...}: per-predictor contrast, where spec is

  ===================  =================================================
  None / 1 (default)   numeric: x -> x + 1; binary: 0 -> 1;
                       categorical: each level vs. the reference level
  number d             x -> x + d
  [lo, hi]             fixed values lo -> hi
  "sd"                 mean - sd/2 -> mean + sd/2
  "2sd"                mean - sd -> mean + sd
  "iqr"                first quartile -> third quartile
  "minmax"             minimum -> maximum
  "reference",         categorical level contrasts
  "sequential",
  "pairwise", "all"
  ===================  =================================================

Comparison functions (``comparison``):
- row-wise: "difference", "ratio", "lnratio"
- averaged (one row per contrast/group): "differenceavg", "ratioavg", "lnratioavg"
- a callable ``f(hi, lo)`` returning either one value per row or one value
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from .effects import By, _by_columns, finalize_effects
from .grid import resolve_newdata
from .hypotheses import Hypothesis
from .inference import EffectsResult, create_effects_result, numeric_jacobian
from .models import OLSResult, design_matrix


ContrastSpec = Dict[str, Any]

CATEGORICAL_CONTRASTS = ("reference", "sequential", "pairwise", "all")

COMPARISONS: Dict[str, Tuple[Callable[[np.ndarray, np.ndarray], Any], bool]] = {
    "difference": (lambda hi, lo: hi - lo, False),
    "ratio": (lambda hi, lo: hi / lo, False),
    "lnratio": (lambda hi, lo: np.log(hi / lo), False),
    "differenceavg": (lambda hi, lo: np.mean(hi) - np.mean(lo), True),
    "ratioavg": (lambda hi, lo: np.mean(hi) / np.mean(lo), True),
    "lnratioavg": (lambda hi, lo: np.log(np.mean(hi) / np.mean(lo)), True),
}


def _fmt(value: Any) -> str:
    if isinstance(value, (int, np.integer)):
        return str(int(value))
    if isinstance(value, (float, np.floating)):
        return str(int(value)) if float(value).is_integer() else f"{value:.4g}"
    return str(value)


# =============================================================================
# Contrast Specifications
# =============================================================================

def _spec(term: str, lo: Any, hi: Any, lo_label: str, hi_label: str, label: Optional[str] = None) -> ContrastSpec:
    return {
        "term": term,
        "lo": lo,
        "hi": hi,
        "lo_label": lo_label,
        "hi_label": hi_label,
        "label": label if label is not None else f"{hi_label} - {lo_label}",
    }


def numeric_contrast(
    model: OLSResult,
    var: str,
    grid: pd.DataFrame,
    spec: Any = None,
) -> ContrastSpec:
    """
    Contrast for a numeric or binary predictor.

    :param model: OLSResult (training data supplies sd/quantiles)
    :param var: Predictor name
    :param grid: Evaluation rows
    :param spec: Contrast specification (see module docstring)
    :returns: ContrastSpec with per-row ``lo`` and ``hi`` values
    :raises ValueError: If the specification is not understood
    """
    train = model["data"][var].astype(float)
    x = grid[var].to_numpy(dtype=float)
    n = len(x)

    if spec is None and model["variable_types"].get(var) == "binary":
        return _spec(var, np.zeros(n), np.ones(n), "0", "1")

    if spec is None:
        spec = 1

    if isinstance(spec, bool):
        raise ValueError(f"Invalid contrast for '{var}': {spec!r}")

    if isinstance(spec, (int, float, np.integer, np.floating)):
        d = float(spec)
        return _spec(var, x, x + d, "x", f"x + {_fmt(spec)}", label=f"+{_fmt(spec)}")

    if isinstance(spec, (list, tuple, np.ndarray)):
        if len(spec) != 2:
            raise ValueError(f"Contrast pair for '{var}' must have 2 values, got {len(spec)}")
        lo, hi = float(spec[0]), float(spec[1])
        return _spec(var, np.full(n, lo), np.full(n, hi), _fmt(spec[0]), _fmt(spec[1]))

    if isinstance(spec, str):
        mean, sd = train.mean(), train.std()
        if spec == "sd":
            return _spec(var, np.full(n, mean - sd / 2), np.full(n, mean + sd / 2),
                         "(x - sd/2)", "(x + sd/2)")
        if spec == "2sd":
            return _spec(var, np.full(n, mean - sd), np.full(n, mean + sd),
                         "(x - sd)", "(x + sd)")
        if spec == "iqr":
            q1, q3 = train.quantile(0.25), train.quantile(0.75)
            return _spec(var, np.full(n, q1), np.full(n, q3), "Q1", "Q3")
        if spec == "minmax":
            return _spec(var, np.full(n, train.min()), np.full(n, train.max()), "Min", "Max")

    raise ValueError(
        f"Invalid contrast for numeric '{var}': {spec!r}. "
        f"Use a number, a [lo, hi] pair, 'sd', '2sd', 'iqr' or 'minmax'"
    )


def categorical_contrasts(
    model: OLSResult,
    var: str,
    spec: Any = None,
) -> List[ContrastSpec]:
    """
    Level contrasts for a categorical predictor.

    :param model: OLSResult (supplies observed levels)
    :param var: Predictor name
    :param spec: "reference" (default), "sequential", "pairwise", "all", or a [lo, hi] pair
    :returns: List of ContrastSpec with scalar ``lo``/``hi`` levels
    """
    levels = list(model["levels"][var])
    spec = "reference" if spec is None else spec

    if isinstance(spec, (list, tuple)) and len(spec) == 2:
        unknown = [v for v in spec if v not in levels]
        if unknown:
            raise ValueError(f"Unknown levels {unknown} for '{var}'. Observed: {levels}")
        pairs = [(spec[0], spec[1])]
    elif spec == "reference":
        pairs = [(levels[0], lvl) for lvl in levels[1:]]
    elif spec == "sequential":
        pairs = [(levels[i - 1], levels[i]) for i in range(1, len(levels))]
    elif spec == "pairwise":
        pairs = [(levels[i], levels[j]) for i in range(len(levels)) for j in range(i + 1, len(levels))]
    elif spec == "all":
        pairs = [(a, b) for a in levels for b in levels if a != b]
    else:
        raise ValueError(
            f"Invalid contrast for categorical '{var}': {spec!r}. "
            f"Use one of {CATEGORICAL_CONTRASTS} or a [lo, hi] pair of levels"
        )

    return [_spec(var, lo, hi, _fmt(lo), _fmt(hi)) for lo, hi in pairs]


def contrast_specs(
    model: OLSResult,
    variables: Any,
    grid: pd.DataFrame,
) -> List[ContrastSpec]:
    """
    Expand the ``variables`` argument into a list of contrasts.

    :raises ValueError: If a variable is not a model predictor
    """
    if variables is None:
        requested: Dict[str, Any] = {v: None for v in model["predictors"]}
    elif isinstance(variables, str):
        requested = {variables: None}
    elif isinstance(variables, dict):
        requested = dict(variables)
    else:
        requested = {v: None for v in variables}

    unknown = [v for v in requested if v not in model["predictors"]]
    if unknown:
        raise ValueError(f"Variables {unknown} are not predictors of the model: {model['predictors']}")

    specs: List[ContrastSpec] = []
    for var, spec in requested.items():
        if model["variable_types"][var] == "categorical":
            specs.extend(categorical_contrasts(model, var, spec))
        else:
            specs.append(numeric_contrast(model, var, grid, spec))
    return specs


def _contrast_label(spec: ContrastSpec, comparison: Any) -> str:
    hi, lo = spec["hi_label"], spec["lo_label"]
    if comparison == "difference" or callable(comparison):
        return spec["label"]
    if comparison == "differenceavg":
        return f"mean({hi}) - mean({lo})"
    if comparison == "ratio":
        return f"{hi} / {lo}"
    if comparison == "ratioavg":
        return f"mean({hi}) / mean({lo})"
    if comparison == "lnratio":
        return f"ln({hi} / {lo})"
    if comparison == "lnratioavg":
        return f"ln(mean({hi}) / mean({lo}))"
    return spec["label"]


def _counterfactual(grid: pd.DataFrame, var: str, value: Any) -> pd.DataFrame:
    frame = grid.copy()
    frame[var] = value
    return frame


# =============================================================================
# Comparisons
# =============================================================================

def comparisons(
    model: OLSResult,
    variables: Any = None,
    newdata: Any = None,
    comparison: Union[str, Callable[[np.ndarray, np.ndarray], Any]] = "difference",
    by: By = False,
    hypothesis: Optional[Hypothesis] = None,
    equivalence: Optional[Tuple[float, float]] = None,
    transform: Optional[Callable[[np.ndarray], np.ndarray]] = None,
    conf_level: float = 0.95,
    df: float = np.inf,
) -> EffectsResult:
    """
    Compare predictions between two values of each requested predictor.

    :param model: OLSResult from fit_ols()
    :param variables: Predictors and contrasts (see module docstring)
    :param newdata: None (training rows), "mean", "median", or a DataFrame
    :param comparison: Comparison function name or callable ``f(hi, lo)``
    :param by: Aggregate overall (True) or by column(s)
    :param hypothesis: Hypothesis on the resulting estimates
    :param equivalence: (low, high) bounds for equivalence tests
    :param transform: Function applied to estimates and confidence bounds
    :param conf_level: Confidence level
    :param df: Degrees of freedom (inf = normal reference)
    :returns: EffectsResult; row-wise comparisons give one row per
        (contrast x evaluation row)

    Example:
        >>> cmp = comparisons(mod)                              # 3 x 32 rows
        >>> comparisons(mod, variables={"hp": [100, 120]})      # fixed pair
        >>> comparisons(mod, variables={"hp": "sd"})            # one SD around the mean
        >>> avg_comparisons(mod, variables="hp", comparison="ratioavg")
    """
    if isinstance(comparison, str):
        if comparison not in COMPARISONS:
            raise ValueError(f"Unknown comparison '{comparison}'. Available: {list(COMPARISONS)}")
        func, averaged = COMPARISONS[comparison]
    elif callable(comparison):
        func, averaged = comparison, None
    else:
        raise ValueError(f"comparison must be a name or a callable, got {comparison!r}")

    grid, focus = resolve_newdata(model, newdata)
    grid = grid.reset_index(drop=True)
    params = model["params"]
    specs = contrast_specs(model, variables, grid)

    blocks = []
    for spec in specs:
        X_lo = design_matrix(model, _counterfactual(grid, spec["term"], spec["lo"]))
        X_hi = design_matrix(model, _counterfactual(grid, spec["term"], spec["hi"]))
        blocks.append((spec, X_lo, X_hi))

    if averaged is None:
        # A custom function is averaged if it collapses rows to one value
        probe = np.atleast_1d(func(blocks[0][2] @ params, blocks[0][1] @ params))
        if probe.size == len(grid):
            averaged = False
        elif probe.size == 1:
            averaged = True
        else:
            raise ValueError(
                f"Custom comparison returned {probe.size} values; expected {len(grid)} or 1"
            )

    if not averaged:
        return _rowwise_comparisons(
            model, grid, focus, blocks, func, comparison,
            by, hypothesis, equivalence, transform, conf_level, df,
        )

    by_cols = _by_columns(by)
    missing = [c for c in by_cols if c not in grid.columns]
    if missing:
        raise ValueError(f"Grouping columns {missing} not found in newdata")
    if by_cols:
        groups = [
            (key if isinstance(key, tuple) else (key,), idx)
            for key, idx in grid.groupby(by_cols, sort=True).indices.items()
        ]
    else:
        groups = [((), np.arange(len(grid)))]

    def fn(beta: np.ndarray) -> np.ndarray:
        out = []
        for _, X_lo, X_hi in blocks:
            hi, lo = X_hi @ beta, X_lo @ beta
            for _, idx in groups:
                out.append(float(np.asarray(func(hi[idx], lo[idx]))))
        return np.array(out)

    rows = []
    for spec, _, _ in blocks:
        for key, _ in groups:
            row = {"term": spec["term"], "contrast": _contrast_label(spec, comparison)}
            row.update(dict(zip(by_cols, key)))
            rows.append(row)

    result = create_effects_result(
        kind="comparisons",
        context=pd.DataFrame(rows),
        estimates=fn(params),
        jacobian=numeric_jacobian(fn, params),
        model=model,
        lead_columns=["term", "contrast"] + by_cols,
        conf_level=conf_level,
        df=df,
    )
    return finalize_effects(result, by=False, hypothesis=hypothesis,
                            equivalence=equivalence, transform=transform)


def _rowwise_comparisons(
    model: OLSResult,
    grid: pd.DataFrame,
    focus: List[str],
    blocks: list,
    func: Callable[[np.ndarray, np.ndarray], Any],
    comparison: Any,
    by: By,
    hypothesis: Optional[Hypothesis],
    equivalence: Optional[Tuple[float, float]],
    transform: Optional[Callable[[np.ndarray], np.ndarray]],
    conf_level: float,
    df: float,
) -> EffectsResult:
    """One estimate per (contrast x evaluation row)."""
    params = model["params"]
    predicted = design_matrix(model, grid) @ params

    def fn(beta: np.ndarray) -> np.ndarray:
        return np.concatenate([
            np.atleast_1d(func(X_hi @ beta, X_lo @ beta)) for _, X_lo, X_hi in blocks
        ])

    frames = []
    for spec, X_lo, X_hi in blocks:
        frame = grid.drop(columns=["rowid"], errors="ignore")
        frame.insert(0, "rowid", np.arange(len(grid)))
        frame.insert(1, "term", spec["term"])
        frame.insert(2, "contrast", _contrast_label(spec, comparison))
        frame["predicted_lo"] = X_lo @ params
        frame["predicted_hi"] = X_hi @ params
        frame["predicted"] = predicted
        frames.append(frame)

    result = create_effects_result(
        kind="comparisons",
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


def avg_comparisons(
    model: OLSResult,
    variables: Any = None,
    newdata: Any = None,
    comparison: Union[str, Callable[[np.ndarray, np.ndarray], Any]] = "difference",
    by: By = True,
    hypothesis: Optional[Hypothesis] = None,
    equivalence: Optional[Tuple[float, float]] = None,
    transform: Optional[Callable[[np.ndarray], np.ndarray]] = None,
    conf_level: float = 0.95,
    df: float = np.inf,
) -> EffectsResult:
    """
    Average comparisons (one row per contrast, or per contrast and ``by`` group).

    Example:
        >>> avg_comparisons(mod)                     # one row per predictor
        >>> avg_comparisons(mod, variables="hp", by="am")
    """
    return comparisons(
        model,
        variables=variables,
        newdata=newdata,
        comparison=comparison,
        by=by,
        hypothesis=hypothesis,
        equivalence=equivalence,
        transform=transform,
        conf_level=conf_level,
        df=df,
    )
