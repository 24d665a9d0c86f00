"""
Built-in Datasets
=================

Static toy datasets shipped with the package as CSV files under ``data/``.

Every loader returns a fresh copy, so callers are free to add columns or
filter rows without affecting later loads.

Available datasets:
- mtcars: Motor Trend road tests of 32 automobiles (1973-74 models).
  Outcome ``mpg`` plus numeric predictors (``hp``, ``wt``, ``am``, ``cyl``, ...).
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import pandas as pd


DATA_DIR = Path(__file__).parent / "data"


# =============================================================================
# Registry
# =============================================================================

DATASETS: Dict[str, Dict[str, Any]] = {
    "mtcars": {
        "file": "mtcars.csv",
        "n_rows": 32,
        "outcome": "mpg",
        "description": "Fuel consumption and 10 design/performance aspects of 32 cars.",
        "dtypes": {
            "model": "string",
            "mpg": float,
            "cyl": int,
            "disp": float,
            "hp": int,
            "drat": float,
            "wt": float,
            "qsec": float,
            "vs": int,
            "am": int,
            "gear": int,
            "carb": int,
        },
    },
}


def list_datasets() -> List[str]:
    """List all available dataset names."""
    return list(DATASETS.keys())


def load_dataset(name: str) -> pd.DataFrame:
    """
    Load a built-in dataset by name.

    :param name: Dataset name (see ``list_datasets()``)
    :returns: DataFrame with the registered schema and row count
    :raises ValueError: If the name is not registered
    :raises FileNotFoundError: If the data file is missing from the install
    """
    if name not in DATASETS:
        raise ValueError(f"Unknown dataset: {name}. Available: {list_datasets()}")

    info = DATASETS[name]
    path = DATA_DIR / info["file"]
    if not path.exists():
        raise FileNotFoundError(f"Data file for '{name}' not found: {path}")

    df = pd.read_csv(path, dtype=info["dtypes"])

    if len(df) != info["n_rows"]:
        raise ValueError(
            f"Dataset '{name}' has {len(df)} rows, expected {info['n_rows']}"
        )
    return df


def load_mtcars() -> pd.DataFrame:
    """
    Load the ``mtcars`` dataset (32 rows, 12 columns).

    Example:
        >>> dat = load_mtcars()
        >>> dat[["mpg", "hp", "wt", "am"]].head()
    """
    return load_dataset("mtcars")
