"""
Tutorial Configuration
======================

Declarative definitions for the tutorial chapters (S1-S8) and the
document they render into.

Each section is a SectionConfig dict with:
- name: Chapter heading
- module: Module (inside this package) holding the chapter's CELLS
- description: One-line summary used by ``--describe``
- figures: Whether the chapter is expected to draw figures

Cells are plain dicts built with prose() and code():
- {"kind": "prose", "text": ...}
- {"kind": "code", "source": ...}
"""

from textwrap import dedent
from typing import Any, Dict, List


SectionConfig = Dict[str, Any]
Cell = Dict[str, Any]


DOCUMENT: Dict[str, Any] = {
    "title": "Predictions, Comparisons and Slopes: A Practical Tour",
    "subtitle": "Interpreting a linear model of fuel efficiency",
    "dataset": "mtcars",
    "default_format": "markdown",
    "default_output": "tutorial.md",
    "figure_dpi": 120,
    "kernel_name": "python3",
    "cell_timeout": 600,
    "include_session_info": True,
}


SECTIONS: Dict[str, SectionConfig] = {
    # =========================================================================
    # S1: Data and model
    # =========================================================================
    "S1": {
        "name": "Data and Model",
        "module": "s1_data_model",
        "description": "Load mtcars and fit mpg ~ hp * wt * am",
        "figures": False,
    },
    # =========================================================================
    # S2: Predictions
    # =========================================================================
    "S2": {
        "name": "Predictions",
        "module": "s2_predictions",
        "description": "Unit-level predictions and predictions on a grid",
        "figures": False,
    },
    # =========================================================================
    # S3: Comparisons
    # =========================================================================
    "S3": {
        "name": "Comparisons",
        "module": "s3_comparisons",
        "description": "Differences and ratios between counterfactual predictions",
        "figures": False,
    },
    # =========================================================================
    # S4: Slopes
    # =========================================================================
    "S4": {
        "name": "Slopes",
        "module": "s4_slopes",
        "description": "Partial derivatives (marginal effects) and elasticities",
        "figures": False,
    },
    # =========================================================================
    # S5: Grids
    # =========================================================================
    "S5": {
        "name": "Grids",
        "module": "s5_grids",
        "description": "Typical and counterfactual evaluation grids",
        "figures": False,
    },
    # =========================================================================
    # S6: Averaging
    # =========================================================================
    "S6": {
        "name": "Averaging",
        "module": "s6_averaging",
        "description": "Average predictions, comparisons and slopes, overall and by group",
        "figures": False,
    },
    # =========================================================================
    # S7: Visualization
    # =========================================================================
    "S7": {
        "name": "Visualization",
        "module": "s7_plotting",
        "description": "Conditional prediction plot with confidence ribbons",
        "figures": True,
    },
    # =========================================================================
    # S8: Hypothesis and equivalence tests
    # =========================================================================
    "S8": {
        "name": "Hypothesis and Equivalence Tests",
        "module": "s8_hypotheses",
        "description": "Tests on coefficients and on effects; equivalence bounds",
        "figures": False,
    },
}


def get_section(section_id: str) -> SectionConfig:
    """Get configuration for a specific section."""
    if section_id not in SECTIONS:
        raise ValueError(f"Unknown section: {section_id}. Available: {list(SECTIONS.keys())}")
    return SECTIONS[section_id]


def list_sections() -> List[str]:
    """List all section IDs in document order."""
    return list(SECTIONS.keys())


def prose(text: str) -> Cell:
    return {"kind": "prose", "text": dedent(text).strip()}


def code(source: str) -> Cell:
    return {"kind": "code", "source": dedent(source).strip()}
