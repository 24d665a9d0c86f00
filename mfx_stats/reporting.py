"""
Reporting Module
================

Table formatting for effects results, plus process-wide presentation
options used by the tutorial renderer.

Options (see OPTIONS):
- table_style: "auto" | "plain" | "markdown" | "html" | "latex"
  ("auto" lets the caller pick; format_table treats it as "plain")
- float_placement: LaTeX float specifier for tables and figures ("H", "htbp", ...)
- digits: significant digits shown for statistics
- max_rows: truncate long tables to this many rows (None = no limit)

Example:
    >>> set_option("table_style", "markdown")
    >>> print(format_table(avg_predictions(mod, by="am")))
    >>> with option_context(table_style="latex", float_placement="htbp"):
    ...     tex = format_table(hypotheses(mod, "b3 = 2 * b2"))
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .inference import EQUIVALENCE_COLUMNS, INFERENCE_COLUMNS, EffectsResult, is_effects_result


# =============================================================================
# Options
# =============================================================================

TABLE_STYLES = ("auto", "plain", "markdown", "html", "latex")

DEFAULT_OPTIONS: Dict[str, Any] = {
    "table_style": "auto",
    "float_placement": "H",
    "digits": 3,
    "max_rows": 40,
}

OPTIONS: Dict[str, Any] = dict(DEFAULT_OPTIONS)


def _validate_option(name: str, value: Any) -> None:
    if name not in DEFAULT_OPTIONS:
        raise ValueError(f"Unknown option '{name}'. Available: {list(DEFAULT_OPTIONS)}")
    if name == "table_style" and value not in TABLE_STYLES:
        raise ValueError(f"table_style must be one of {TABLE_STYLES}, got {value!r}")
    if name == "float_placement" and (not isinstance(value, str) or not value):
        raise ValueError(f"float_placement must be a non-empty string, got {value!r}")
    if name == "digits" and (not isinstance(value, int) or isinstance(value, bool) or value < 1):
        raise ValueError(f"digits must be a positive integer, got {value!r}")
    if name == "max_rows" and value is not None and (not isinstance(value, int) or value < 1):
        raise ValueError(f"max_rows must be a positive integer or None, got {value!r}")


def get_option(name: str) -> Any:
    if name not in OPTIONS:
        raise ValueError(f"Unknown option '{name}'. Available: {list(OPTIONS)}")
    return OPTIONS[name]


def set_option(name: str, value: Any) -> None:
    """Set a presentation option for the rest of the process."""
    _validate_option(name, value)
    OPTIONS[name] = value


def reset_options() -> None:
    OPTIONS.clear()
    OPTIONS.update(DEFAULT_OPTIONS)


@contextmanager
def option_context(**options: Any) -> Iterator[None]:
    """Temporarily set options; previous values are restored on exit."""
    for name, value in options.items():
        _validate_option(name, value)
    saved = {name: OPTIONS[name] for name in options}
    OPTIONS.update(options)
    try:
        yield
    finally:
        OPTIONS.update(saved)


# =============================================================================
# Table Formatting
# =============================================================================

def _default_columns(result: EffectsResult) -> List[str]:
    table = result["table"]
    columns = list(result.get("lead_columns", []))
    if result["kind"] == "predictions":
        # Unit-level predictions are unreadable without their covariates
        columns += [c for c in result["model"]["predictors"] if c not in columns]
    columns += INFERENCE_COLUMNS + EQUIVALENCE_COLUMNS
    seen = set()
    return [c for c in columns if c in table.columns and not (c in seen or seen.add(c))]


def _format_number(value: Any, digits: int) -> Any:
    if isinstance(value, (bool, np.bool_)):
        return value
    if isinstance(value, (float, np.floating)):
        if np.isnan(value):
            return ""
        return f"{value:.{digits}g}"
    return value


def _format_p(value: Any, digits: int) -> Any:
    if isinstance(value, (float, np.floating)) and not np.isnan(value) and value < 0.001:
        return "<0.001"
    return _format_number(value, digits)


def _check_cells(frame: pd.DataFrame) -> None:
    for col in frame.columns:
        if frame[col].dtype == object:
            nested = frame[col].map(lambda v: isinstance(v, (list, tuple, dict, set, np.ndarray, pd.DataFrame)))
            if nested.any():
                raise ValueError(f"Column '{col}' holds nested values and cannot be rendered as a table")


def format_table(
    result: Union[EffectsResult, pd.DataFrame],
    style: Optional[str] = None,
    digits: Optional[int] = None,
    columns: Optional[Sequence[str]] = None,
    max_rows: Optional[int] = None,
) -> str:
    """
    Render an effects result (or any DataFrame) as text.

    :param result: EffectsResult or DataFrame
    :param style: "plain", "markdown", "html" or "latex" (default: table_style option)
    :param digits: Significant digits (default: digits option)
    :param columns: Columns to show (default: identifiers + statistics)
    :param max_rows: Row limit (default: max_rows option)
    :returns: Rendered table
    :raises ValueError: For empty tables, nested cells, unknown columns or styles
    """
    style = style or get_option("table_style")
    if style not in TABLE_STYLES:
        raise ValueError(f"Unknown table style '{style}'. Use one of {TABLE_STYLES}")
    if style == "auto":
        style = "plain"
    digits = digits or get_option("digits")
    max_rows = max_rows if max_rows is not None else get_option("max_rows")

    if is_effects_result(result):
        frame = result["table"]
        default = _default_columns(result)
    elif isinstance(result, pd.DataFrame):
        frame = result
        default = list(frame.columns)
    else:
        raise ValueError(f"format_table() expects an EffectsResult or DataFrame, got {type(result).__name__}")

    if frame.empty:
        raise ValueError("Cannot render an empty table")

    columns = list(columns) if columns is not None else default
    missing = [c for c in columns if c not in frame.columns]
    if missing:
        raise ValueError(f"Columns {missing} not found. Available: {list(frame.columns)}")

    shown = frame[columns]
    _check_cells(shown)
    n_rows = len(shown)
    if max_rows is not None and n_rows > max_rows:
        shown = shown.head(max_rows)

    shown = shown.copy()
    for col in shown.columns:
        fmt = _format_p if col.startswith("p_value") else _format_number
        shown[col] = shown[col].map(lambda v, f=fmt: f(v, digits))

    if style == "plain":
        text = shown.to_string(index=False)
    elif style == "markdown":
        text = shown.to_markdown(index=False)
    elif style == "html":
        text = shown.to_html(index=False, border=0)
    else:
        text = shown.to_latex(index=False, position=get_option("float_placement"), escape=True)

    if len(shown) < n_rows:
        note = f"({n_rows - len(shown)} more rows not shown)"
        text = f"{text}\n{note}" if style != "html" else f"{text}\n<p>{note}</p>"
    return text
