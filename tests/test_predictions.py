import numpy as np
import pytest

from mfx_stats import aggregate, avg_predictions, datagrid, design_matrix, predictions


def test_unit_level_count(mod):
    pre = predictions(mod)
    assert len(pre["table"]) == 32
    assert list(pre["table"]["rowid"]) == list(range(32))


def test_estimates_match_fitted_values(mod):
    pre = predictions(mod)
    assert np.allclose(pre["table"]["estimate"], mod["model"].fittedvalues)


def test_standard_errors_match_statsmodels(dat, mod):
    pre = predictions(mod)
    expected = mod["model"].get_prediction(design_matrix(mod, dat)).se_mean
    assert np.allclose(pre["table"]["std_error"], expected)


def test_table_layout(mod):
    table = predictions(mod)["table"]
    assert list(table.columns[:8]) == [
        "rowid", "estimate", "std_error", "statistic", "p_value", "s_value", "ci_lower", "ci_upper",
    ]
    assert {"hp", "wt", "am", "mpg"} <= set(table.columns)


def test_grid_predictions_show_focus_columns(mod):
    pre = predictions(mod, newdata=datagrid(mod, hp=[100, 120], am=[0, 1]))
    assert len(pre["table"]) == 4
    assert pre["lead_columns"] == ["rowid", "hp", "am"]


def test_prediction_at_mean(dat, mod):
    pre = predictions(mod, newdata="mean")
    assert len(pre["table"]) == 1
    row = dat[["hp", "wt", "am"]].mean().to_frame().T
    assert pre["table"]["estimate"].iloc[0] == pytest.approx((design_matrix(mod, row) @ mod["params"])[0])


def test_counterfactual_variables(mod):
    pre = predictions(mod, variables={"am": [0, 1]})
    assert len(pre["table"]) == 64
    assert "am" in pre["lead_columns"]


def test_overall_average_equals_mean(mod):
    pre = predictions(mod)
    avg = aggregate(pre, by=True)
    assert len(avg["table"]) == 1
    assert avg["table"]["estimate"].iloc[0] == pytest.approx(pre["table"]["estimate"].mean())
    assert avg_predictions(mod)["table"]["estimate"].iloc[0] == pytest.approx(pre["table"]["estimate"].mean())


def test_average_by_group(dat, mod):
    avg = avg_predictions(mod, by="am")
    assert len(avg["table"]) == dat["am"].nunique()
    assert list(avg["table"]["am"]) == [0, 1]
    means = predictions(mod)["table"].groupby("am")["estimate"].mean()
    assert np.allclose(avg["table"]["estimate"], means)


def test_average_se_uses_mean_jacobian(dat, mod):
    avg = avg_predictions(mod)
    X = mod["model"].model.exog
    g = X.mean(axis=0)
    assert avg["table"]["std_error"].iloc[0] == pytest.approx(np.sqrt(g @ mod["vcov"] @ g))


def test_unknown_by_column_raises(mod):
    with pytest.raises(ValueError, match="Grouping columns"):
        avg_predictions(mod, by="transmission")


def test_t_reference_distribution_widens_interval(mod):
    normal = predictions(mod, newdata="mean")["table"]
    student = predictions(mod, newdata="mean", df=mod["fit_stats"]["df_resid"])["table"]
    assert (student["ci_upper"] - student["ci_lower"]).iloc[0] > (normal["ci_upper"] - normal["ci_lower"]).iloc[0]


def test_transform_drops_std_error(mod):
    pre = predictions(mod, newdata="mean", transform=np.log)
    table = pre["table"]
    assert "std_error" not in table.columns
    assert pre["jacobian"] is None
    assert table["ci_lower"].iloc[0] < table["estimate"].iloc[0] < table["ci_upper"].iloc[0]


def test_invalid_conf_level_raises(mod):
    with pytest.raises(ValueError, match="conf_level"):
        predictions(mod, conf_level=95)
