import numpy as np
import pytest

from mfx_stats import avg_comparisons, equivalence_test, hypotheses
from mfx_stats.inference import EQUIVALENCE_COLUMNS


def test_equivalence_appends_verdict(mod):
    plain = avg_comparisons(mod, variables="am")
    equiv = avg_comparisons(mod, variables="am", equivalence=(-2, 2))
    for col in EQUIVALENCE_COLUMNS:
        assert col in equiv["table"].columns
    assert equiv["table"]["equivalent"].dtype == bool
    assert np.allclose(plain["table"]["estimate"], equiv["table"]["estimate"])
    assert np.allclose(plain["table"]["std_error"], equiv["table"]["std_error"])
    assert equiv["equivalence_bounds"] == (-2.0, 2.0)


def test_tost_p_value_is_max_of_one_sided(mod):
    table = hypotheses(mod, "b3 = 2 * b2", equivalence=(-2, 2))["table"]
    row = table.iloc[0]
    assert row["p_value_equiv"] == pytest.approx(max(row["p_value_noninf"], row["p_value_nonsup"]))


def test_wide_bounds_are_equivalent(mod):
    table = equivalence_test(hypotheses(mod, "b2 = 0"), (-100, 100))["table"]
    assert bool(table["equivalent"].iloc[0])


def test_narrow_bounds_are_not_equivalent(mod):
    table = equivalence_test(hypotheses(mod, "b1 = 0"), (-0.01, 0.01))["table"]
    assert not bool(table["equivalent"].iloc[0])


def test_reversed_bounds_raise(mod):
    with pytest.raises(ValueError, match="low < high"):
        equivalence_test(hypotheses(mod), (2, -2))


def test_malformed_bounds_raise(mod):
    with pytest.raises(ValueError):
        equivalence_test(hypotheses(mod), (1,))


def test_needs_standard_errors(mod):
    transformed = avg_comparisons(mod, variables="am", comparison="lnratioavg", transform=np.exp)
    with pytest.raises(ValueError, match="standard errors"):
        equivalence_test(transformed, (0.9, 1.1))
