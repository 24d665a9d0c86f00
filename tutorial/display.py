"""
Table Display in the Kernel
===========================

Registers IPython display formatters so that an effects result or a
DataFrame left as the last expression of a cell is published in every
table style at once (Markdown, HTML, LaTeX and plain text). The renderer
then keeps the representation that matches the output format and the
``table_style`` option.

The setup cell of every tutorial notebook calls::

    register_table_formatters(get_ipython())
"""

from typing import Any, Optional

import pandas as pd

from mfx_stats.inference import is_effects_result
from mfx_stats.reporting import format_table


# Rich mimetype -> format_table style
TABLE_MIMETYPES = {
    "text/markdown": "markdown",
    "text/html": "html",
    "text/latex": "latex",
}


def is_table(obj: Any) -> bool:
    return is_effects_result(obj) or isinstance(obj, pd.DataFrame)


def _table_printer(style: str):
    def printer(obj: Any) -> Optional[str]:
        if not is_table(obj):
            return None
        try:
            return format_table(obj, style=style)
        except ValueError:
            # Empty or nested tables keep their default representation
            return None
    return printer


def _plain_printer(obj: Any, p: Any, cycle: bool) -> None:
    if cycle or not is_table(obj):
        p.text(repr(obj))
        return
    try:
        p.text(format_table(obj, style="plain"))
    except ValueError:
        p.text(repr(obj))


def register_table_formatters(shell: Any) -> None:
    """
    Publish tables in all styles from an IPython shell.

    Args:
        shell: The running InteractiveShell (``get_ipython()``)
    """
    formatters = shell.display_formatter.formatters
    for mimetype, style in TABLE_MIMETYPES.items():
        formatters[mimetype].enabled = True
        for cls in (dict, pd.DataFrame):
            formatters[mimetype].for_type(cls, _table_printer(style))
    for cls in (dict, pd.DataFrame):
        formatters["text/plain"].for_type(cls, _plain_printer)
