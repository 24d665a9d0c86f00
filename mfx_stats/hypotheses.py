"""
Hypothesis Tests Module
=======================

Linear and non-linear hypothesis tests on model coefficients or on any
effects result (predictions, comparisons, slopes and their averages).

Hypotheses can be given as:
- an equation string: ``"b3 = 2 * b2"`` (positional, 1-indexed) or
  ``"wt = 2 * hp"`` (by name, when names are unique in the result)
- a keyword: ``"pairwise"``, ``"revpairwise"``, ``"reference"``, ``"sequential"``
- a number: null value against which every estimate is tested
- a weight vector (one hypothesis) or matrix (one hypothesis per column)

Equations are parsed with ``ast`` and compiled to closures over the
estimate vector; only arithmetic, numeric constants, estimate references and
``exp``/``log``/``sqrt``/``abs`` are accepted. Standard errors of the tested
contrast follow from the chain rule: J_new = G @ J, where G is the Jacobian of
the hypothesis with respect to the estimates.

Example:
    >>> mod = fit_ols(load_mtcars(), "mpg ~ hp + wt + C(cyl)")
    >>> hypotheses(mod, "b3 = 2 * b2")      # wt = 2 * hp
    >>> hypotheses(mod, "wt = 2 * hp")      # same test, by name
"""
from __future__ import annotations

import ast
import operator
import re
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from .inference import (
    EffectsResult,
    INFERENCE_COLUMNS,
    coefficients_result,
    create_effects_result,
    equivalence_test,
    is_effects_result,
    numeric_jacobian,
)
from .models import is_ols_result


HYPOTHESIS_KEYWORDS = ("pairwise", "revpairwise", "reference", "sequential")

_EQUALS = re.compile(r"(?<![<>!=])=(?!=)")
_POSITIONAL = re.compile(r"b(\d+)")

_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Pow: operator.pow,
}
_UNARY_OPS = {
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}
_FUNCTIONS = {
    "exp": np.exp,
    "log": np.log,
    "sqrt": np.sqrt,
    "abs": np.abs,
}

Hypothesis = Union[str, float, int, np.ndarray, List[float]]


# =============================================================================
# Labels
# =============================================================================

def _format_value(value: Any) -> str:
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return str(int(value))
    if isinstance(value, (float, np.floating)):
        return f"{value:.4g}"
    return str(value)


def named_estimates(result: EffectsResult) -> Dict[str, int]:
    """Map ``term`` names to positions when every term is unique."""
    table = result["table"]
    if "term" not in table.columns or not table["term"].is_unique:
        return {}
    return {str(name): i for i, name in enumerate(table["term"])}


def row_labels(result: EffectsResult) -> List[str]:
    """
    Human-readable label for every estimate, used by keyword hypotheses.

    Built from the identifying columns (term, contrast, grid/by columns);
    falls back to positional ``b1, b2, ...`` when those are absent or not unique.
    """
    table = result["table"]
    n = len(table)
    positional = [f"b{i + 1}" for i in range(n)]

    cols = [c for c in result.get("lead_columns", []) if c != "rowid"]
    if not cols:
        return positional

    labels = []
    for _, row in table[cols].iterrows():
        parts = []
        for col in cols:
            if col in ("term", "contrast"):
                parts.append(_format_value(row[col]))
            else:
                parts.append(f"{col}={_format_value(row[col])}")
        labels.append(" ".join(parts))

    if len(set(labels)) != n:
        return positional
    return labels


def _wrap(label: str) -> str:
    return f"({label})" if " " in label else label


# =============================================================================
# Expression Parsing
# =============================================================================

def _make_resolver(
    names: Dict[str, int],
    n: int,
    all_terms: Optional[List[str]] = None,
) -> Callable[[str], int]:
    """Resolve a name in a hypothesis to a 0-based estimate position."""

    def resolve(name: str) -> int:
        if name in names:
            return names[name]
        match = _POSITIONAL.fullmatch(name)
        if match:
            position = int(match.group(1))
            if not 1 <= position <= n:
                raise ValueError(
                    f"Position '{name}' is out of range: there are {n} estimates (b1..b{n})"
                )
            return position - 1
        if all_terms and name in all_terms:
            raise ValueError(
                f"Name '{name}' is not unique in this result; use positional references (b1..b{n})"
            )
        raise ValueError(
            f"Unknown name '{name}' in hypothesis. Use b1..b{n} or one of: {list(names)}"
        )

    return resolve


def _compile_node(node: ast.AST, resolve: Callable[[str], int]) -> Callable[[np.ndarray], Any]:
    """Compile a parsed expression into a function of the estimate vector."""
    if isinstance(node, ast.Expression):
        return _compile_node(node.body, resolve)

    if isinstance(node, ast.Constant):
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            raise ValueError(f"Unsupported constant in hypothesis: {node.value!r}")
        value = float(node.value)
        return lambda theta: value

    if isinstance(node, ast.Name):
        if node.id in _FUNCTIONS:
            raise ValueError(f"Function '{node.id}' must be called with one argument")
        index = resolve(node.id)
        return lambda theta: theta[index]

    if isinstance(node, ast.BinOp):
        op = _BINARY_OPS.get(type(node.op))
        if op is None:
            raise ValueError(f"Unsupported operator in hypothesis: {type(node.op).__name__}")
        left = _compile_node(node.left, resolve)
        right = _compile_node(node.right, resolve)
        return lambda theta: op(left(theta), right(theta))

    if isinstance(node, ast.UnaryOp):
        op = _UNARY_OPS.get(type(node.op))
        if op is None:
            raise ValueError(f"Unsupported operator in hypothesis: {type(node.op).__name__}")
        operand = _compile_node(node.operand, resolve)
        return lambda theta: op(operand(theta))

    if isinstance(node, ast.Call):
        if not isinstance(node.func, ast.Name) or node.func.id not in _FUNCTIONS:
            raise ValueError(
                f"Unsupported function in hypothesis; allowed: {sorted(_FUNCTIONS)}"
            )
        if len(node.args) != 1 or node.keywords:
            raise ValueError(f"Function '{node.func.id}' takes exactly one argument")
        func = _FUNCTIONS[node.func.id]
        arg = _compile_node(node.args[0], resolve)
        return lambda theta: func(arg(theta))

    raise ValueError(
        f"Unsupported syntax in hypothesis: {type(node).__name__}. "
        f"Non-identifier names must be referenced by position (b1, b2, ...)"
    )


def parse_hypothesis(
    expression: str,
    names: Dict[str, int],
    n: int,
    all_terms: Optional[List[str]] = None,
) -> Tuple[Callable[[np.ndarray], float], str]:
    """
    Parse an equation such as ``"b3 = 2 * b2"`` into a function of the estimates.

    ``lhs = rhs`` is tested as ``(lhs) - (rhs) = 0``; an expression without
    ``=`` is tested against zero.

    :param expression: Hypothesis text
    :param names: Unique names -> 0-based positions
    :param n: Number of estimates (bounds positional references)
    :param all_terms: Every term in the result, to report non-unique names
    :returns: (function of estimate vector, label)
    :raises ValueError: If the expression is malformed or references are invalid
    """
    text = expression.strip()
    if not text:
        raise ValueError("Hypothesis expression is empty")

    sides = _EQUALS.split(text)
    if len(sides) > 2:
        raise ValueError(f"Hypothesis '{expression}' has more than one '='")
    if any(not side.strip() for side in sides):
        raise ValueError(f"Hypothesis '{expression}' has an empty side")

    body = f"({sides[0].strip()}) - ({sides[1].strip()})" if len(sides) == 2 else text

    try:
        tree = ast.parse(body, mode="eval")
    except SyntaxError as e:
        raise ValueError(f"Malformed hypothesis '{expression}': {e.msg}") from e

    resolve = _make_resolver(names, n, all_terms)
    func = _compile_node(tree, resolve)
    return func, text


def hypothesis_matrix(keyword: str, labels: List[str]) -> Tuple[np.ndarray, List[str]]:
    """
    Contrast matrix for a keyword hypothesis.

    :param keyword: One of HYPOTHESIS_KEYWORDS
    :param labels: Label of each estimate
    :returns: (matrix of shape (n_estimates, n_hypotheses), hypothesis labels)
    """
    n = len(labels)
    if n < 2:
        raise ValueError(f"'{keyword}' hypothesis needs at least 2 estimates, got {n}")

    columns = []
    names = []

    def contrast(hi: int, lo: int) -> None:
        vec = np.zeros(n)
        vec[hi] = 1.0
        vec[lo] = -1.0
        columns.append(vec)
        names.append(f"{_wrap(labels[hi])} - {_wrap(labels[lo])}")

    if keyword == "pairwise":
        for i in range(n):
            for j in range(i + 1, n):
                contrast(i, j)
    elif keyword == "revpairwise":
        for i in range(n):
            for j in range(i + 1, n):
                contrast(j, i)
    elif keyword == "reference":
        for i in range(1, n):
            contrast(i, 0)
    elif keyword == "sequential":
        for i in range(1, n):
            contrast(i, i - 1)
    else:
        raise ValueError(f"Unknown hypothesis keyword: {keyword}. Available: {HYPOTHESIS_KEYWORDS}")

    return np.column_stack(columns), names


# =============================================================================
# Applying Hypotheses
# =============================================================================

def _with_null(result: EffectsResult, null: float) -> EffectsResult:
    """Re-test every estimate against a different null value."""
    table = result["table"]
    context = table.drop(columns=[c for c in INFERENCE_COLUMNS if c in table.columns])
    return create_effects_result(
        kind=result["kind"],
        context=context,
        estimates=table["estimate"].to_numpy(dtype=float),
        jacobian=result["jacobian"],
        model=result["model"],
        lead_columns=result["lead_columns"],
        conf_level=result["conf_level"],
        df=result["df"],
        null=float(null),
    )


def apply_hypothesis(result: EffectsResult, hypothesis: Optional[Hypothesis]) -> EffectsResult:
    """
    Test a hypothesis on the estimates of an effects result.

    :param result: EffectsResult (predictions, comparisons, slopes, coefficients, ...)
    :param hypothesis: Equation string, keyword, null value, or weights
    :returns: New EffectsResult of kind "hypotheses" (or the same kind for a null value)
    :raises ValueError: If the hypothesis is malformed or cannot be evaluated
    """
    if hypothesis is None:
        return result

    jacobian = result.get("jacobian")
    if jacobian is None:
        raise ValueError("Hypothesis tests need a Jacobian (was a transform applied?)")

    table = result["table"]
    theta = table["estimate"].to_numpy(dtype=float)
    n = len(theta)

    if isinstance(hypothesis, (int, float, np.integer, np.floating)) and not isinstance(hypothesis, bool):
        return _with_null(result, float(hypothesis))

    if isinstance(hypothesis, str):
        keyword = hypothesis.strip().lower()
        if keyword in HYPOTHESIS_KEYWORDS:
            matrix, labels = hypothesis_matrix(keyword, row_labels(result))
            estimates = matrix.T @ theta
            new_jacobian = matrix.T @ jacobian
        else:
            all_terms = [str(t) for t in table["term"]] if "term" in table.columns else None
            func, label = parse_hypothesis(hypothesis, named_estimates(result), n, all_terms)

            def contrast(th: np.ndarray) -> np.ndarray:
                return np.atleast_1d(np.asarray(func(th), dtype=float))

            estimates = contrast(theta)
            new_jacobian = numeric_jacobian(contrast, theta) @ jacobian
            labels = [label]
    else:
        matrix = np.asarray(hypothesis, dtype=float)
        if matrix.ndim == 1:
            matrix = matrix[:, None]
        if matrix.ndim != 2 or matrix.shape[0] != n:
            raise ValueError(
                f"Hypothesis weights must have {n} rows (one per estimate), got shape {matrix.shape}"
            )
        estimates = matrix.T @ theta
        new_jacobian = matrix.T @ jacobian
        if matrix.shape[1] == 1:
            labels = ["custom"]
        else:
            labels = [f"custom{i + 1}" for i in range(matrix.shape[1])]

    return create_effects_result(
        kind="hypotheses",
        context=pd.DataFrame({"term": labels}),
        estimates=estimates,
        jacobian=new_jacobian,
        model=result["model"],
        lead_columns=["term"],
        conf_level=result["conf_level"],
        df=result["df"],
    )


def hypotheses(
    obj: Any,
    hypothesis: Optional[Hypothesis] = None,
    equivalence: Optional[Tuple[float, float]] = None,
    conf_level: float = 0.95,
    df: float = np.inf,
) -> EffectsResult:
    """
    Hypothesis and equivalence tests on a fitted model or an effects result.

    On a fitted model the estimates are the coefficients (``b1`` is the
    intercept). On an effects result they are the rows of its table, and
    the result's own confidence level and reference distribution are kept.

    :param obj: OLSResult from fit_ols() or an EffectsResult
    :param hypothesis: Equation, keyword, null value or weights (None = report estimates)
    :param equivalence: Optional (low, high) interval for equivalence tests
    :param conf_level: Confidence level (fitted-model input only)
    :param df: Degrees of freedom (fitted-model input only; inf = normal)
    :returns: EffectsResult
    :raises ValueError: If ``obj`` is neither a model nor an effects result,
        or the hypothesis is invalid

    Example:
        >>> hypotheses(mod, "b3 = 2 * b2")
        >>> hypotheses(avg_slopes(mod), "pairwise")
        >>> hypotheses(mod, equivalence=(-2, 2))
    """
    if is_effects_result(obj):
        result = obj
    elif is_ols_result(obj):
        result = coefficients_result(obj, conf_level=conf_level, df=df)
    else:
        raise ValueError("hypotheses() expects a fitted model (fit_ols) or an effects result")

    result = apply_hypothesis(result, hypothesis)
    if equivalence is not None:
        result = equivalence_test(result, equivalence)
    return result
