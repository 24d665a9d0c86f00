import numpy as np
import pytest

from mfx_stats import avg_predictions, avg_slopes, hypotheses, predictions
from mfx_stats.hypotheses import hypothesis_matrix, parse_hypothesis


def test_positional_equation_returns_one_row(mod):
    h = hypotheses(mod, "b3 = 2 * b2")
    table = h["table"]
    assert len(table) == 1
    assert np.isfinite(table["statistic"].iloc[0])
    assert 0 <= table["p_value"].iloc[0] <= 1
    b = mod["model"].params
    assert table["estimate"].iloc[0] == pytest.approx(b["wt"] - 2 * b["hp"])


def test_positional_and_named_are_identical(mod):
    pos = hypotheses(mod, "b3 = 2 * b2")["table"]
    named = hypotheses(mod, "wt = 2 * hp")["table"]
    for col in ("estimate", "std_error", "statistic", "p_value"):
        assert np.isclose(pos[col].iloc[0], named[col].iloc[0])


def test_linear_contrast_standard_error(mod):
    c = np.zeros(len(mod["params"]))
    c[1], c[2] = -2.0, 1.0
    se = hypotheses(mod, "b3 = 2 * b2")["table"]["std_error"].iloc[0]
    assert se == pytest.approx(np.sqrt(c @ mod["vcov"] @ c))


def test_no_hypothesis_reports_coefficients(mod):
    table = hypotheses(mod)["table"]
    assert len(table) == len(mod["params"])
    assert np.allclose(table["estimate"], mod["params"])
    assert np.allclose(table["std_error"], mod["model"].bse)


def test_nonlinear_expression(mod):
    table = hypotheses(mod, "exp(b2) = 1")["table"]
    assert table["estimate"].iloc[0] == pytest.approx(np.exp(mod["params"][1]) - 1)


def test_hypothesis_on_effects_result_by_name(mod):
    table = hypotheses(avg_slopes(mod), "hp = wt")["table"]
    assert len(table) == 1


def test_null_value(mod):
    table = predictions(mod, newdata="mean", hypothesis=20)["table"]
    est, se = table["estimate"].iloc[0], table["std_error"].iloc[0]
    assert table["statistic"].iloc[0] == pytest.approx((est - 20) / se)


def test_pairwise_keyword(mod_cyl):
    table = avg_predictions(mod_cyl, by="cyl", hypothesis="pairwise")["table"]
    assert len(table) == 3
    assert table["term"].iloc[0] == "cyl=4 - cyl=6"


def test_reference_and_sequential_keywords(mod_cyl):
    by_cyl = avg_predictions(mod_cyl, by="cyl")["table"]["estimate"].to_numpy()
    ref = avg_predictions(mod_cyl, by="cyl", hypothesis="reference")["table"]
    seq = avg_predictions(mod_cyl, by="cyl", hypothesis="sequential")["table"]
    assert np.allclose(ref["estimate"], [by_cyl[1] - by_cyl[0], by_cyl[2] - by_cyl[0]])
    assert np.allclose(seq["estimate"], [by_cyl[1] - by_cyl[0], by_cyl[2] - by_cyl[1]])


def test_weight_vector(mod):
    w = np.zeros(len(mod["params"]))
    w[1] = 1.0
    table = hypotheses(mod, w)["table"]
    assert table["term"].iloc[0] == "custom"
    assert table["estimate"].iloc[0] == pytest.approx(mod["params"][1])


def test_out_of_range_position_raises(mod):
    with pytest.raises(ValueError, match="out of range"):
        hypotheses(mod, "b9 = 0")


def test_malformed_expression_raises(mod):
    with pytest.raises(ValueError, match="Malformed"):
        hypotheses(mod, "b2 = * b3")


def test_unknown_name_raises(mod):
    with pytest.raises(ValueError, match="Unknown name"):
        hypotheses(mod, "disp = 0")


def test_non_unique_name_raises(mod):
    cmp = predictions(mod, newdata="mean")
    with pytest.raises(ValueError):
        hypotheses(cmp, "hp = 0")


def test_non_unique_term_in_slopes_raises(mod):
    with pytest.raises(ValueError, match="not unique"):
        hypotheses(avg_slopes(mod, by="am"), "hp = 0")


def test_two_equals_raises():
    with pytest.raises(ValueError):
        parse_hypothesis("b1 = b2 = b3", {}, 3)


def test_bad_weights_shape_raises(mod):
    with pytest.raises(ValueError, match="rows"):
        hypotheses(mod, [1.0, -1.0])


def test_invalid_input_raises():
    with pytest.raises(ValueError):
        hypotheses({"not": "a model"}, "b1 = 0")


def test_hypothesis_matrix_revpairwise():
    matrix, labels = hypothesis_matrix("revpairwise", ["a", "b", "c"])
    assert matrix.shape == (3, 3)
    assert labels == ["b - a", "c - a", "c - b"]
