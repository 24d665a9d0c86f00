import numpy as np
import pandas as pd
import pytest

from mfx_stats import datagrid
from mfx_stats.grid import resolve_newdata, summarize_column


def test_typical_grid_combinations(dat, mod):
    grid = datagrid(mod, hp=[100, 120], am=[0, 1])
    assert len(grid) == 4
    assert list(grid.columns) == ["hp", "am", "wt"]
    assert np.allclose(grid["wt"], dat["wt"].mean())
    assert grid.attrs["focus"] == ["hp", "am"]
    assert grid["hp"].dtype.kind == "i"


def test_typical_grid_without_overrides_is_one_mean_row(dat, mod):
    grid = datagrid(mod)
    assert len(grid) == 1
    assert grid["hp"].iloc[0] == pytest.approx(dat["hp"].mean())


def test_categorical_filled_with_mode(dat, mod_cyl):
    grid = datagrid(mod_cyl, hp=[100])
    assert grid["cyl"].iloc[0] == 8


def test_named_summaries(dat, mod):
    grid = datagrid(mod, wt="threenum")
    m, s = dat["wt"].mean(), dat["wt"].std()
    assert np.allclose(grid["wt"], [m - s, m, m + s])

    assert list(datagrid(mod, am="unique")["am"]) == [0, 1]
    assert len(datagrid(mod, hp="fivenum")) == 5
    assert list(datagrid(mod, hp="minmax")["hp"]) == [dat["hp"].min(), dat["hp"].max()]


def test_callable_override(dat, mod):
    grid = datagrid(mod, wt=lambda x: x.quantile([0.1, 0.9]))
    assert np.allclose(grid["wt"], dat["wt"].quantile([0.1, 0.9]))


def test_counterfactual_grid(dat, mod):
    cf = datagrid(mod, am=[0, 1], grid_type="counterfactual")
    assert len(cf) == 64
    assert list(cf["rowidcf"][:32]) == list(range(32))
    assert set(cf["am"][:32]) == {0}
    assert set(cf["am"][32:]) == {1}
    assert np.allclose(cf["hp"][:32], dat["hp"])


def test_unknown_column_raises(mod):
    with pytest.raises(ValueError, match="Unknown grid columns"):
        datagrid(mod, horsepower=[100])


def test_unknown_summary_raises(mod):
    with pytest.raises(ValueError, match="Unknown summary"):
        datagrid(mod, hp="average")


def test_unknown_grid_type_raises(mod):
    with pytest.raises(ValueError, match="grid_type"):
        datagrid(mod, hp=[100], grid_type="balanced")


def test_needs_model_or_data():
    with pytest.raises(ValueError):
        datagrid(hp=[100])


def test_grid_from_data_only():
    data = pd.DataFrame({"x": [1.0, 2.0, 3.0], "g": ["a", "b", "b"]})
    grid = datagrid(newdata=data, x=[0.0])
    assert grid["g"].iloc[0] == "b"


def test_summarize_column_quartile():
    col = pd.Series([1.0, 2.0, 3.0, 4.0, 5.0], name="x")
    assert summarize_column(col, "quartile") == [2.0, 3.0, 4.0]


def test_resolve_newdata_shortcuts(mod):
    grid, focus = resolve_newdata(mod, None)
    assert len(grid) == 32 and focus == []

    grid, focus = resolve_newdata(mod, "mean")
    assert len(grid) == 1 and focus == ["hp", "wt", "am"]

    grid, _ = resolve_newdata(mod, "median")
    assert grid["hp"].iloc[0] == pytest.approx(mod["data"]["hp"].median())

    with pytest.raises(ValueError):
        resolve_newdata(mod, "typical")
