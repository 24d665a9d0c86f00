import pytest

from mfx_stats import DATASETS, list_datasets, load_dataset, load_mtcars
from mfx_stats import datasets


def test_mtcars_shape_and_columns():
    dat = load_mtcars()
    assert dat.shape == (32, 12)
    assert list(dat.columns) == [
        "model", "mpg", "cyl", "disp", "hp", "drat", "wt", "qsec", "vs", "am", "gear", "carb",
    ]


def test_mtcars_known_values():
    dat = load_mtcars()
    assert dat["mpg"].sum() == pytest.approx(642.9)
    assert dat["hp"].sum() == 4694
    assert set(dat["am"]) == {0, 1}
    assert sorted(dat["cyl"].unique()) == [4, 6, 8]


def test_each_load_is_a_fresh_copy():
    first = load_mtcars()
    first["mpg"] = 0.0
    assert load_mtcars()["mpg"].sum() == pytest.approx(642.9)


def test_registry_lists_mtcars():
    assert "mtcars" in list_datasets()
    assert DATASETS["mtcars"]["n_rows"] == 32


def test_unknown_dataset_raises():
    with pytest.raises(ValueError, match="Unknown dataset"):
        load_dataset("iris")


def test_missing_file_raises(monkeypatch, tmp_path):
    monkeypatch.setattr(datasets, "DATA_DIR", tmp_path)
    with pytest.raises(FileNotFoundError):
        load_dataset("mtcars")
