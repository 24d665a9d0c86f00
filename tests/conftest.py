"""Pytest configuration for repository-relative imports and shared models."""

import os
import sys

import matplotlib
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

matplotlib.use("Agg")

from mfx_stats import fit_ols, load_mtcars, reset_options  # noqa: E402


@pytest.fixture
def dat():
    return load_mtcars()


@pytest.fixture(scope="session")
def mod():
    """The tutorial's interaction model."""
    return fit_ols(load_mtcars(), "mpg ~ hp * wt * am")


@pytest.fixture(scope="session")
def mod_additive():
    return fit_ols(load_mtcars(), "mpg ~ hp + wt + am")


@pytest.fixture(scope="session")
def mod_cyl():
    return fit_ols(load_mtcars(), "mpg ~ hp + wt + C(cyl)")


@pytest.fixture(autouse=True)
def _default_options():
    reset_options()
    yield
    reset_options()
