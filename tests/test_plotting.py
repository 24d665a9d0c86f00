import matplotlib.pyplot as plt
import pytest

from mfx_stats import plot_predictions


def test_three_conditions_make_facets(mod):
    fig = plot_predictions(mod, condition={"hp": None, "wt": "threenum", "am": None})
    assert len(fig.axes) == 2
    ax = fig.axes[0]
    assert len(ax.get_lines()) == 3
    assert ax.get_xlabel() == "hp"
    assert ax.get_ylabel() == "mpg"
    plt.close(fig)


def test_single_condition(mod):
    fig = plot_predictions(mod, condition="hp")
    assert len(fig.axes) == 1
    line = fig.axes[0].get_lines()[0]
    assert len(line.get_xdata()) == 50
    plt.close(fig)


def test_save_path(mod, tmp_path, capsys):
    path = tmp_path / "pred.png"
    fig = plot_predictions(mod, condition=["hp", "am"], save_path=str(path))
    assert path.exists()
    assert "Saved figure to:" in capsys.readouterr().out
    plt.close(fig)


def test_no_condition_raises(mod):
    with pytest.raises(ValueError, match="at least one"):
        plot_predictions(mod, condition=[])


def test_too_many_conditions_raise(mod_cyl):
    with pytest.raises(ValueError, match="At most 3"):
        plot_predictions(mod_cyl, condition=["hp", "wt", "cyl", "hp2"])


def test_non_continuous_x_raises(mod):
    with pytest.raises(ValueError, match="continuous"):
        plot_predictions(mod, condition=["am", "hp"])


def test_unknown_condition_raises(mod):
    with pytest.raises(ValueError, match="not predictors"):
        plot_predictions(mod, condition=["disp"])
