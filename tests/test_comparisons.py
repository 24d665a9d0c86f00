import numpy as np
import pytest

from mfx_stats import avg_comparisons, comparisons, datagrid, design_matrix


def test_default_count(mod):
    cmp = comparisons(mod)
    assert len(cmp["table"]) == 3 * 32
    assert list(cmp["table"]["term"].unique()) == ["hp", "wt", "am"]


def test_default_contrast_labels(mod):
    table = comparisons(mod)["table"]
    labels = table.groupby("term")["contrast"].first().to_dict()
    assert labels == {"am": "1 - 0", "hp": "+1", "wt": "+1"}


def test_difference_matches_predictions(dat, mod):
    table = comparisons(mod, variables="hp")["table"]
    hi = design_matrix(mod, dat.assign(hp=dat["hp"] + 1)) @ mod["params"]
    lo = design_matrix(mod, dat) @ mod["params"]
    assert np.allclose(table["estimate"], hi - lo)
    assert np.allclose(table["predicted_hi"], hi)
    assert np.allclose(table["predicted_lo"], lo)


def test_pair_vs_sd_same_shape_different_values(mod):
    pair = comparisons(mod, variables={"hp": [100, 120]})["table"]
    sd = comparisons(mod, variables={"hp": "sd"})["table"]
    assert len(pair) == len(sd) == 32
    assert list(pair.columns) == list(sd.columns)
    assert not np.allclose(pair["estimate"], sd["estimate"])
    assert pair["contrast"].iloc[0] == "120 - 100"


def test_sd_contrast_width(dat, mod_additive):
    table = comparisons(mod_additive, variables={"hp": "sd"})["table"]
    b_hp = mod_additive["model"].params["hp"]
    assert np.allclose(table["estimate"], b_hp * dat["hp"].std())


def test_additive_model_unit_comparison_equals_coefficient(mod_additive):
    table = comparisons(mod_additive, variables="hp")["table"]
    assert np.allclose(table["estimate"], mod_additive["model"].params["hp"])
    assert np.allclose(table["std_error"], mod_additive["model"].bse["hp"])


def test_step_contrast(mod_additive):
    table = comparisons(mod_additive, variables={"hp": 50})["table"]
    assert np.allclose(table["estimate"], 50 * mod_additive["model"].params["hp"])
    assert table["contrast"].iloc[0] == "+50"


def test_categorical_reference_contrasts(mod_cyl):
    cmp = avg_comparisons(mod_cyl, variables="cyl")
    table = cmp["table"]
    assert list(table["contrast"]) == ["6 - 4", "8 - 4"]
    params = mod_cyl["model"].params
    assert np.allclose(table["estimate"], [params["C(cyl)[T.6]"], params["C(cyl)[T.8]"]])


def test_categorical_pairwise_contrasts(mod_cyl):
    table = avg_comparisons(mod_cyl, variables={"cyl": "pairwise"})["table"]
    assert list(table["contrast"]) == ["6 - 4", "8 - 4", "8 - 6"]


def test_ratioavg_is_one_row(dat, mod):
    cmp = avg_comparisons(mod, variables="hp", comparison="ratioavg")
    assert len(cmp["table"]) == 1
    hi = (design_matrix(mod, dat.assign(hp=dat["hp"] + 1)) @ mod["params"]).mean()
    lo = (design_matrix(mod, dat) @ mod["params"]).mean()
    assert cmp["table"]["estimate"].iloc[0] == pytest.approx(hi / lo)


def test_differenceavg_equals_average_difference(mod):
    avg = avg_comparisons(mod, variables="wt")["table"]["estimate"].iloc[0]
    davg = comparisons(mod, variables="wt", comparison="differenceavg")["table"]["estimate"].iloc[0]
    assert avg == pytest.approx(davg)


def test_averaged_comparison_by_group(mod):
    table = comparisons(mod, variables="hp", comparison="differenceavg", by="am")["table"]
    assert list(table["am"]) == [0, 1]


def test_custom_rowwise_function(mod):
    table = comparisons(mod, variables="hp", comparison=lambda hi, lo: hi - lo)["table"]
    assert len(table) == 32


def test_custom_averaged_function(mod):
    table = comparisons(mod, variables="hp", comparison=lambda hi, lo: np.mean(hi - lo))["table"]
    assert len(table) == 1


def test_comparisons_on_grid(mod):
    cmp = comparisons(mod, variables={"hp": 50}, newdata=datagrid(mod, am=[0, 1]))
    assert len(cmp["table"]) == 2
    assert "am" in cmp["lead_columns"]


def test_avg_comparisons_by_group(mod):
    table = avg_comparisons(mod, variables="hp", by="am")["table"]
    assert list(table["am"]) == [0, 1]
    assert list(table["term"]) == ["hp", "hp"]


def test_invalid_contrast_raises(mod):
    with pytest.raises(ValueError, match="Invalid contrast"):
        comparisons(mod, variables={"hp": "quartile"})


def test_invalid_pair_length_raises(mod):
    with pytest.raises(ValueError, match="2 values"):
        comparisons(mod, variables={"hp": [1, 2, 3]})


def test_unknown_variable_raises(mod):
    with pytest.raises(ValueError, match="not predictors"):
        comparisons(mod, variables="disp")


def test_unknown_comparison_raises(mod):
    with pytest.raises(ValueError, match="Unknown comparison"):
        comparisons(mod, comparison="odds")
