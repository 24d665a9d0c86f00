"""
Marginal Effects Tutorial
=========================

A literate tutorial on predictions, comparisons and slopes, organized as
chapters (S1-S8) of prose and code cells that are executed in order and
rendered into one document.

Each chapter has its own module with:
- A description of what it shows
- CELLS: the prose and code it contributes (built into a Jupyter notebook)
- run() / describe()

Usage:
    from tutorial import run_document, write_document

    document = run_document()
    write_document(document, "tutorial.md")
"""

from .config import DOCUMENT, SECTIONS, SectionConfig, get_section, list_sections
from .runner import (
    CellExecutionError,
    build_notebook,
    execute_cell,
    execute_notebook,
    render_document,
    run_document,
    run_section,
    write_document,
)
from .session import format_session_info, session_info

__all__ = [
    "DOCUMENT",
    "SECTIONS",
    "SectionConfig",
    "get_section",
    "list_sections",
    "CellExecutionError",
    "build_notebook",
    "execute_cell",
    "execute_notebook",
    "run_section",
    "run_document",
    "render_document",
    "write_document",
    "session_info",
    "format_session_info",
]
