"""
Prediction Plots
================

plot_predictions draws model-implied predictions with confidence ribbons
across a grid of one to three conditioning variables:

- 1st condition: x-axis (continuous, 50 evenly spaced values over its range)
- 2nd condition: color (numeric -> mean - sd, mean, mean + sd; binary and
  categorical -> observed levels)
- 3rd condition: facets (same value rules as color)

Every other predictor is held at its mean (numeric/binary) or mode
(categorical), as in datagrid().

Example:
    >>> mod = fit_ols(load_mtcars(), "mpg ~ hp * wt * am")
    >>> plot_predictions(mod, condition={"hp": None, "wt": "threenum", "am": None})
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple, Union
import warnings

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns

from .grid import datagrid
from .models import OLSResult
from .predictions import predictions


# =============================================================================
# Style Configuration
# =============================================================================

DEFAULT_STYLE = {
    "figure.figsize": (9, 5),
    "axes.spines.top": False,
    "axes.spines.right": False,
    "font.size": 11,
    "axes.labelsize": 12,
    "axes.titlesize": 13,
}

N_POINTS = 50


def _apply_style() -> None:
    """Apply consistent plotting style."""
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        plt.rcParams.update(DEFAULT_STYLE)
        sns.set_palette("colorblind")


def _format_value(value: Any) -> str:
    if isinstance(value, (float, np.floating)):
        return f"{value:.3g}"
    return str(value)


# =============================================================================
# Condition Handling
# =============================================================================

def _normalize_condition(condition: Union[str, List[str], Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(condition, str):
        condition = [condition]
    if isinstance(condition, dict):
        cond = dict(condition)
    else:
        cond = {name: None for name in condition}
    if not cond:
        raise ValueError("plot_predictions() needs at least one condition variable")
    if len(cond) > 3:
        raise ValueError(f"At most 3 condition variables are supported, got {len(cond)}: {list(cond)}")
    return cond


def _condition_values(model: OLSResult, name: str, spec: Any, position: int) -> Any:
    """Default grid values for a conditioning variable."""
    if spec is not None:
        return spec
    vtype = model["variable_types"][name]
    col = model["data"][name]
    if position == 0:
        lo, hi = float(col.min()), float(col.max())
        return np.linspace(lo, hi, N_POINTS)
    if vtype == "numeric":
        return "threenum"
    return list(model["levels"].get(name) or sorted(col.dropna().unique().tolist()))


# =============================================================================
# Main Plot
# =============================================================================

def plot_predictions(
    model: OLSResult,
    condition: Union[str, List[str], Dict[str, Any]],
    conf_level: float = 0.95,
    title: Optional[str] = None,
    figsize: Optional[Tuple[int, int]] = None,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """
    Plot predictions over a grid of conditioning variables.

    :param model: OLSResult from fit_ols()
    :param condition: Variable name(s), or a dict of name -> grid values /
        summary name (None = default values for that position)
    :param conf_level: Confidence level of the ribbons
    :param title: Figure title (auto-generated if None)
    :param figsize: Figure size (default: wider when faceting)
    :param save_path: Path to save figure (None = do not save)
    :returns: matplotlib Figure object
    :raises ValueError: For zero or more than 3 conditions, unknown
        variables, or a non-continuous x variable
    """
    cond = _normalize_condition(condition)
    unknown = [c for c in cond if c not in model["predictors"]]
    if unknown:
        raise ValueError(f"Condition variables {unknown} are not predictors of the model: {model['predictors']}")

    names = list(cond)
    x_name = names[0]
    if model["variable_types"][x_name] != "numeric":
        raise ValueError(
            f"The first condition ('{x_name}') is plotted on the x-axis and must be continuous; "
            f"it is {model['variable_types'][x_name]}"
        )

    _apply_style()

    overrides = {name: _condition_values(model, name, cond[name], i) for i, name in enumerate(names)}
    grid = datagrid(model, **overrides)
    table = predictions(model, newdata=grid, conf_level=conf_level)["table"]

    hue = names[1] if len(names) > 1 else None
    facet = names[2] if len(names) > 2 else None
    facet_values = list(pd.unique(table[facet])) if facet else [None]

    if figsize is None:
        figsize = (5 * len(facet_values), 4.5) if facet else DEFAULT_STYLE["figure.figsize"]
    fig, axes = plt.subplots(1, len(facet_values), figsize=figsize, sharey=True, squeeze=False)

    hue_values = list(pd.unique(table[hue])) if hue else [None]
    colors = sns.color_palette("colorblind", n_colors=max(len(hue_values), 1))

    for ax, fval in zip(axes[0], facet_values):
        panel = table if facet is None else table[table[facet] == fval]
        for color, hval in zip(colors, hue_values):
            sub = panel if hue is None else panel[panel[hue] == hval]
            sub = sub.sort_values(x_name)
            label = None if hue is None else _format_value(hval)
            ax.plot(sub[x_name], sub["estimate"], color=color, linewidth=2, label=label)
            ax.fill_between(
                sub[x_name].to_numpy(dtype=float),
                sub["ci_lower"].to_numpy(dtype=float),
                sub["ci_upper"].to_numpy(dtype=float),
                color=color,
                alpha=0.2,
                linewidth=0,
            )
        ax.set_xlabel(x_name)
        if facet is not None:
            ax.set_title(f"{facet} = {_format_value(fval)}")

    axes[0][0].set_ylabel(model["outcome"])
    if hue is not None:
        axes[0][-1].legend(title=hue, loc="best")

    fig.suptitle(title or f"Predicted {model['outcome']} ({int(round(conf_level * 100))}% CI)")
    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")
        print(f"Saved figure to: {save_path}")

    return fig
