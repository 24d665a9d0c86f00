import numpy as np
import pytest

from mfx_stats import avg_slopes, comparisons, datagrid, slopes


def test_default_count(mod):
    mfx = slopes(mod)
    assert len(mfx["table"]) == 3 * 32
    labels = mfx["table"].groupby("term")["contrast"].first().to_dict()
    assert labels == {"am": "1 - 0", "hp": "dY/dX", "wt": "dY/dX"}


def test_additive_model_slope_equals_coefficient(mod_additive):
    table = slopes(mod_additive, variables="hp")["table"]
    assert np.allclose(table["estimate"], mod_additive["model"].params["hp"])
    assert np.allclose(table["std_error"], mod_additive["model"].bse["hp"], rtol=1e-4)


def test_interaction_slope_is_analytic_derivative(dat, mod):
    b = mod["model"].params
    table = slopes(mod, variables="hp")["table"]
    wt, am = dat["wt"], dat["am"]
    expected = b["hp"] + b["hp:wt"] * wt + b["hp:am"] * am + b["hp:wt:am"] * wt * am
    assert np.allclose(table["estimate"], expected, rtol=1e-6)


def test_slope_at_mean(mod):
    table = slopes(mod, variables="hp", newdata="mean")["table"]
    assert len(table) == 1
    assert table["contrast"].iloc[0] == "dY/dX"


def test_elasticity(mod_additive):
    at_mean = slopes(mod_additive, variables="wt", newdata="mean")["table"]
    eyex = slopes(mod_additive, variables="wt", slope="eyex", newdata="mean")["table"]
    x = at_mean["wt"].iloc[0]
    y = at_mean["predicted"].iloc[0]
    assert eyex["estimate"].iloc[0] == pytest.approx(at_mean["estimate"].iloc[0] * x / y, rel=1e-6)
    assert eyex["contrast"].iloc[0] == "eY/eX"


def test_slopes_on_grid(mod):
    table = slopes(mod, variables="hp", newdata=datagrid(mod, am=[0, 1]))["table"]
    assert list(table["am"]) == [0, 1]


def test_categorical_falls_back_to_contrasts(mod_cyl):
    table = avg_slopes(mod_cyl, variables="cyl")["table"]
    assert list(table["contrast"]) == ["6 - 4", "8 - 4"]


def test_avg_slopes_by_group(mod):
    table = avg_slopes(mod, by="am")["table"]
    assert len(table) == 3 * 2


def test_unknown_slope_raises(mod):
    with pytest.raises(ValueError, match="Unknown slope"):
        slopes(mod, slope="dxdy")


def test_unknown_variable_raises(mod):
    with pytest.raises(ValueError, match="not predictors"):
        slopes(mod, variables="qsec")


def test_binary_slope_matches_comparison(mod):
    mfx = slopes(mod, variables="am")["table"]
    cmp = comparisons(mod, variables="am")["table"]
    assert set(mfx["contrast"]) == {"1 - 0"}
    assert np.allclose(mfx["estimate"], cmp["estimate"])
    assert np.allclose(mfx["std_error"], cmp["std_error"], rtol=1e-6)
