"""
Tutorial Runner
===============

Generic execution engine for the tutorial document.

This module handles the common workflow:
1. Build the selected chapters into one Jupyter notebook (nbformat): a
   hidden setup cell, a heading per chapter, then its prose and code cells
2. Execute the notebook in a fresh kernel (nbconvert ExecutePreprocessor),
   so every cell sees the names defined by the cells before it
3. Collect each cell's printed output, displayed value and figures
4. Render the executed notebook as Markdown, HTML or LaTeX (nbconvert
   exporters)

A failing cell (including a failed ``assert``) halts the run with
CellExecutionError; nothing is rendered from a partial run.
"""

import base64
import copy
import importlib
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import nbformat
from jinja2 import DictLoader
from nbconvert import HTMLExporter, LatexExporter, MarkdownExporter
from nbconvert.preprocessors import CellExecutionError as KernelCellError
from nbconvert.preprocessors import ExecutePreprocessor
from traitlets.config import Config

from mfx_stats.reporting import OPTIONS, get_option

from .config import DOCUMENT, SECTIONS, Cell, get_section
from .display import TABLE_MIMETYPES


ROOT = Path(__file__).resolve().parents[1]

FORMATS = ("markdown", "html", "latex")
SUFFIXES = {".md": "markdown", ".markdown": "markdown", ".html": "html", ".htm": "html", ".tex": "latex"}

NOTEBOOK_METADATA = {
    "kernelspec": {
        "display_name": "Python 3",
        "language": "python",
        "name": DOCUMENT["kernel_name"],
    },
    "language_info": {
        "name": "python",
    },
}

SETUP_CELL = """
%config InlineBackend.figure_formats = ["png"]
%config InlineBackend.rc = {{"figure.dpi": {dpi}}}
%matplotlib inline

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

from mfx_stats import *
from mfx_stats.reporting import set_option
from tutorial.display import register_table_formatters
from tutorial.session import format_session_info, session_info

{options}
register_table_formatters(get_ipython())
"""

SESSION_CELL = "print(format_session_info(session_info()))"


class CellExecutionError(RuntimeError):
    """A tutorial code cell raised (or failed an assertion)."""


# -----------------------------------------------------------------------------
# Results (dictionary-based)
# -----------------------------------------------------------------------------

CellOutput = Dict[str, Any]
SectionResult = Dict[str, Any]
Document = Dict[str, Any]


def create_cell_output(
    cell: Cell,
    stdout: str = "",
    value: Optional[str] = None,
    data: Optional[Dict[str, Any]] = None,
    figures: Optional[List[bytes]] = None,
) -> CellOutput:
    """Create a CellOutput dictionary (value is the plain-text display, figures are PNG bytes)."""
    return {
        "kind": cell["kind"],
        "text": cell.get("text", ""),
        "source": cell.get("source", ""),
        "stdout": stdout,
        "value": value,
        "data": data or {},
        "figures": figures or [],
    }


def collect_outputs(cell: Cell, nb_cell: nbformat.NotebookNode) -> CellOutput:
    """Turn the outputs of an executed notebook cell into a CellOutput."""
    if nb_cell.cell_type != "code":
        return create_cell_output(cell)

    stdout = []
    value = None
    data: Dict[str, Any] = {}
    figures = []
    for output in nb_cell.get("outputs", []):
        if output.output_type == "stream" and output.name == "stdout":
            stdout.append(output.text)
        elif output.output_type == "execute_result":
            data = dict(output.data)
            value = data.get("text/plain")
        if output.output_type in ("execute_result", "display_data") and "image/png" in output.data:
            figures.append(base64.b64decode(output.data["image/png"]))

    return create_cell_output(cell, stdout="".join(stdout), value=value, data=data, figures=figures)


# -----------------------------------------------------------------------------
# Notebook Construction
# -----------------------------------------------------------------------------

def setup_source() -> str:
    """Source of the hidden first cell: imports, plotting and the current table options."""
    options = "\n".join(f"set_option({name!r}, {value!r})" for name, value in OPTIONS.items())
    return SETUP_CELL.format(dpi=DOCUMENT["figure_dpi"], options=options).strip() + "\n"


def _new_cell(cell: Cell, label: str) -> nbformat.NotebookNode:
    if cell["kind"] == "prose":
        return nbformat.v4.new_markdown_cell(cell["text"])
    if cell["kind"] != "code":
        raise ValueError(f"Unknown cell kind '{cell['kind']}' in {label}")
    return nbformat.v4.new_code_cell(cell["source"], metadata={"tutorial": {"label": label}})


def _setup_cell() -> nbformat.NotebookNode:
    return nbformat.v4.new_code_cell(setup_source(), metadata={"tutorial": {"role": "setup", "label": "setup"}})


def section_cells(section_id: str) -> List[Cell]:
    """Load the CELLS list of a section module."""
    config = get_section(section_id)
    module = importlib.import_module(f".{config['module']}", package=__package__)
    return module.CELLS


def build_notebook(sections: List[str]) -> nbformat.NotebookNode:
    """
    Build the notebook for the given sections, in the order given.

    Args:
        sections: Section IDs

    Returns:
        Unexecuted nbformat v4 notebook
    """
    nb = nbformat.v4.new_notebook()
    nb.metadata = nbformat.from_dict(copy.deepcopy(NOTEBOOK_METADATA))
    nb.metadata["title"] = DOCUMENT["title"]

    heading = f"# {DOCUMENT['title']}"
    if DOCUMENT.get("subtitle"):
        heading += f"\n\n*{DOCUMENT['subtitle']}*"
    nb.cells = [nbformat.v4.new_markdown_cell(heading), _setup_cell()]

    for section_id in sections:
        config = get_section(section_id)
        nb.cells.append(nbformat.v4.new_markdown_cell(f"## {section_id}. {config['name']}"))
        for i, cell in enumerate(section_cells(section_id), start=1):
            nb.cells.append(_new_cell(cell, f"{section_id}, cell {i}"))

    if DOCUMENT.get("include_session_info", True):
        nb.cells.append(nbformat.v4.new_markdown_cell("## Session Info"))
        nb.cells.append(
            nbformat.v4.new_code_cell(SESSION_CELL, metadata={"tutorial": {"label": "session info"}})
        )
    return nb


# -----------------------------------------------------------------------------
# Execution
# -----------------------------------------------------------------------------

def _failure_message(nb: nbformat.NotebookNode) -> str:
    for nb_cell in nb.cells:
        for output in nb_cell.get("outputs", []):
            if output.output_type != "error":
                continue
            label = nb_cell.metadata.get("tutorial", {}).get("label", "cell")
            if output.ename == "AssertionError":
                return f"{label}: assertion failed: {output.evalue or 'assert statement is false'}"
            return f"{label}: {output.ename}: {output.evalue}"
    return "notebook execution failed"


def execute_notebook(nb: nbformat.NotebookNode) -> nbformat.NotebookNode:
    """
    Execute every cell of ``nb`` in a fresh kernel, in place.

    The kernel starts in the project root so that ``mfx_stats`` and
    ``tutorial`` import from this checkout.

    Raises:
        CellExecutionError: At the first cell that raises
    """
    ep = ExecutePreprocessor(timeout=DOCUMENT["cell_timeout"], kernel_name=DOCUMENT["kernel_name"])
    try:
        ep.preprocess(nb, {"metadata": {"path": str(ROOT)}})
    except KernelCellError as e:
        raise CellExecutionError(_failure_message(nb)) from e
    return nb


def execute_cell(cell: Cell, label: str = "cell") -> CellOutput:
    """
    Execute one cell after the setup cell, in a fresh kernel.

    Prose cells pass through. For code cells the printed output, the value
    of a trailing expression and every figure the cell draws are collected.

    Args:
        cell: Cell dict from config.prose() / config.code()
        label: Name used in error messages (e.g. "S2, cell 3")

    Returns:
        CellOutput dict

    Raises:
        CellExecutionError: If the code fails to parse or raises
    """
    if cell["kind"] == "prose":
        return create_cell_output(cell)

    nb_cell = _new_cell(cell, label)
    nb = nbformat.v4.new_notebook(metadata=nbformat.from_dict(copy.deepcopy(NOTEBOOK_METADATA)))
    nb.cells = [_setup_cell(), nb_cell]
    execute_notebook(nb)
    return collect_outputs(cell, nb.cells[-1])


# -----------------------------------------------------------------------------
# Sections and Documents
# -----------------------------------------------------------------------------

def _section_results(nb: nbformat.NotebookNode, sections: List[str]) -> List[SectionResult]:
    by_label = {
        c.metadata["tutorial"]["label"]: c
        for c in nb.cells
        if "tutorial" in c.metadata
    }
    results = []
    for section_id in sections:
        cells = section_cells(section_id)
        outputs = []
        for i, cell in enumerate(cells, start=1):
            nb_cell = by_label.get(f"{section_id}, cell {i}")
            outputs.append(collect_outputs(cell, nb_cell) if nb_cell is not None else create_cell_output(cell))
        results.append({"section_id": section_id, "config": get_section(section_id), "outputs": outputs})
    return results


def run_document(
    sections: Optional[List[str]] = None,
    verbose: bool = True,
) -> Document:
    """
    Run all (or selected) sections, in document order, in one kernel.

    Later sections build on names defined by earlier ones (``mod``,
    ``dat``), so a selection normally starts with S1.

    Args:
        sections: Section IDs to run (default: all)
        verbose: Print progress messages

    Returns:
        Document dict (title, sections, executed notebook)
    """
    sections = sections or list(SECTIONS.keys())
    unknown = [s for s in sections if s not in SECTIONS]
    if unknown:
        raise ValueError(f"Unknown sections: {unknown}. Available: {list(SECTIONS.keys())}")
    ordered = [s for s in SECTIONS if s in sections]

    if verbose:
        print("=" * 70)
        print(DOCUMENT["title"].upper())
        print("=" * 70)

    nb = build_notebook(ordered)
    if verbose:
        n_code = sum(c.cell_type == "code" for c in nb.cells)
        print(f"\nExecuting {n_code} code cells in kernel '{DOCUMENT['kernel_name']}'...")

    execute_notebook(nb)
    results = _section_results(nb, ordered)

    if verbose:
        for result in results:
            n_code = sum(o["kind"] == "code" for o in result["outputs"])
            n_fig = sum(len(o["figures"]) for o in result["outputs"])
            print(f"  [{result['section_id']}] {result['config']['name']}: {n_code} code cells"
                  + (f", {n_fig} figure(s)" if n_fig else ""))

    return {
        "title": DOCUMENT["title"],
        "subtitle": DOCUMENT.get("subtitle", ""),
        "sections": results,
        "notebook": nb,
    }


def run_section(section_id: str, verbose: bool = True) -> SectionResult:
    """
    Run one section, preceded by every earlier section it builds on.

    Args:
        section_id: One of "S1", ..., "S8"
        verbose: Print progress messages

    Returns:
        SectionResult dict for ``section_id``
    """
    get_section(section_id)
    ids = list(SECTIONS.keys())
    document = run_document(ids[:ids.index(section_id) + 1], verbose=verbose)
    return document["sections"][-1]


# -----------------------------------------------------------------------------
# Rendering
# -----------------------------------------------------------------------------

# Table mimetypes each exporter renders natively
NATIVE_MIMETYPES = {
    "markdown": ("text/markdown", "text/html"),
    "html": ("text/html",),
    "latex": ("text/latex",),
}

STYLE_MIMETYPES = {style: mimetype for mimetype, style in TABLE_MIMETYPES.items()}
STYLE_MIMETYPES["plain"] = "text/plain"

LATEX_TEMPLATE = r"""
((*- extends 'index.tex.j2' -*))

((* block markdowncell scoped *))
((( cell.source | prose_to_latex )))
((* endblock markdowncell *))

((* block data_png *))
\begin{figure}[((( resources.float_placement )))]
\centering
\includegraphics[width=0.9\linewidth]{((( output.metadata.filenames['image/png'] | posix_path )))}
\end{figure}
((* endblock data_png *))
"""

_INLINE_CODE = re.compile(r"`([^`]+)`")
_BOLD = re.compile(r"\*\*([^*]+)\*\*")
_EMPH = re.compile(r"\*([^*]+)\*")

_LATEX_SPECIALS = {
    "\\": r"\textbackslash{}",
    "&": r"\&",
    "%": r"\%",
    "$": r"\$",
    "#": r"\#",
    "_": r"\_",
    "{": r"\{",
    "}": r"\}",
    "~": r"\textasciitilde{}",
    "^": r"\textasciicircum{}",
}


def _latex_escape(text: str) -> str:
    return "".join(_LATEX_SPECIALS.get(ch, ch) for ch in text)


def _latex_inline(text: str) -> str:
    pieces = []
    last = 0
    for match in _INLINE_CODE.finditer(text):
        pieces.append(_latex_escape(text[last:match.start()]))
        pieces.append(r"\texttt{" + _latex_escape(match.group(1)) + "}")
        last = match.end()
    pieces.append(_latex_escape(text[last:]))
    out = "".join(pieces)
    out = _BOLD.sub(r"\\textbf{\1}", out)
    return _EMPH.sub(r"\\emph{\1}", out)


def prose_to_latex(text: str) -> str:
    """Convert the small Markdown subset used in prose cells to LaTeX."""
    blocks = []
    for para in (p.strip() for p in re.split(r"\n\s*\n", text)):
        if not para or para.startswith("# "):
            # The document title comes from \maketitle
            continue
        if para.startswith("## "):
            blocks.append(r"\section*{" + _latex_inline(para[3:]) + "}")
            continue
        lines = para.splitlines()
        if all(line.lstrip().startswith("- ") for line in lines):
            items = "\n".join(r"  \item " + _latex_inline(line.lstrip()[2:]) for line in lines)
            blocks.append("\\begin{itemize}\n" + items + "\n\\end{itemize}")
            continue
        blocks.append(_latex_inline(" ".join(line.strip() for line in lines)))
    return "\n\n".join(blocks)


def _table_style(fmt: str) -> str:
    style = get_option("table_style")
    return fmt if style == "auto" else style


def _export_notebook(document: Document, fmt: str) -> nbformat.NotebookNode:
    """Copy of the executed notebook without the setup cell, one table representation per output."""
    nb = copy.deepcopy(document["notebook"])
    nb.cells = [c for c in nb.cells if c.metadata.get("tutorial", {}).get("role") != "setup"]

    mimetype = STYLE_MIMETYPES[_table_style(fmt)]
    for nb_cell in nb.cells:
        for output in nb_cell.get("outputs", []):
            data = output.get("data", {})
            # Only tables carry the Markdown representation
            if "text/markdown" not in data or mimetype not in data:
                continue
            text = data[mimetype]
            if mimetype in NATIVE_MIMETYPES[fmt]:
                output["data"] = nbformat.from_dict({mimetype: text})
            else:
                output["data"] = nbformat.from_dict({"text/plain": text})
    return nb


def _figure_count(nb: nbformat.NotebookNode) -> int:
    return sum(
        "image/png" in output.get("data", {})
        for nb_cell in nb.cells
        for output in nb_cell.get("outputs", [])
    )


def _write_outputs(resources: Dict[str, Any], base_dir: Path) -> None:
    for filename, payload in resources.get("outputs", {}).items():
        target = base_dir / filename
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(payload)


def _exporter(fmt: str, extract: bool):
    config = Config({"ExtractOutputPreprocessor": {"enabled": extract}})
    prompts = {"exclude_input_prompt": True, "exclude_output_prompt": True}
    if fmt == "markdown":
        return MarkdownExporter(config=config)
    if fmt == "html":
        return HTMLExporter(config=config, **prompts)
    exporter = LatexExporter(
        config=config,
        extra_loaders=[DictLoader({"tutorial_article.tex.j2": LATEX_TEMPLATE})],
        template_file="tutorial_article.tex.j2",
        **prompts,
    )
    exporter.register_filter("prose_to_latex", prose_to_latex)
    return exporter


def render_document(
    document: Document,
    fmt: str = "markdown",
    assets_dir: Optional[Path] = None,
) -> str:
    """
    Render an executed Document.

    Args:
        document: Document from run_document()
        fmt: "markdown", "html" or "latex"
        assets_dir: Directory for figure files (Markdown: embedded as data
            URIs when None; HTML: always embedded; LaTeX: required when the
            document has figures)

    Returns:
        Rendered document text
    """
    if fmt not in FORMATS:
        raise ValueError(f"Unknown format '{fmt}'. Use one of {FORMATS}")
    nb = _export_notebook(document, fmt)

    assets_dir = Path(assets_dir) if assets_dir is not None else None
    if fmt == "latex" and assets_dir is None and _figure_count(nb):
        raise ValueError("LaTeX output with figures needs an assets directory")
    extract = fmt != "html" and assets_dir is not None

    resources: Dict[str, Any] = {"float_placement": get_option("float_placement")}
    if extract:
        resources["unique_key"] = "figure"
        resources["output_files_dir"] = assets_dir.name

    body, resources = _exporter(fmt, extract).from_notebook_node(nb, resources=resources)
    if extract:
        _write_outputs(resources, assets_dir.parent)
    return body


def write_document(
    document: Document,
    path: Any,
    fmt: Optional[str] = None,
) -> Path:
    """
    Render and write a Document; figures go to ``<stem>_files/`` beside it.

    Args:
        document: Document from run_document()
        path: Output file
        fmt: Output format (default: inferred from the file suffix)

    Returns:
        Path of the written file
    """
    path = Path(path)
    if fmt is None:
        fmt = SUFFIXES.get(path.suffix.lower())
        if fmt is None:
            raise ValueError(f"Cannot infer format from '{path.name}'; pass fmt= one of {FORMATS}")

    path.parent.mkdir(parents=True, exist_ok=True)
    assets_dir = path.parent / f"{path.stem}_files"
    text = render_document(document, fmt=fmt, assets_dir=assets_dir)
    path.write_text(text, encoding="utf-8")
    print(f"Saved document to: {path}")
    return path
