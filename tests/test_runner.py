import re

import pytest

from mfx_stats import option_context
from tutorial import (
    SECTIONS,
    CellExecutionError,
    build_notebook,
    execute_cell,
    get_section,
    list_sections,
    render_document,
    run_document,
    run_section,
    write_document,
)
from tutorial import s2_predictions
from tutorial.config import code, prose
from tutorial.runner import prose_to_latex, section_cells, setup_source
from tutorial.session import format_session_info, session_info

PIPE_RULE = re.compile(r"\|:?---")


@pytest.fixture(scope="module")
def document():
    return run_document(verbose=False)


def test_sections_are_registered():
    assert list_sections() == [f"S{i}" for i in range(1, 9)]
    for s_id in SECTIONS:
        cells = section_cells(s_id)
        assert any(cell["kind"] == "code" for cell in cells)


def test_unknown_section_raises():
    with pytest.raises(ValueError, match="Unknown section"):
        get_section("S9")


def test_build_notebook_layout():
    nb = build_notebook(["S1", "S2"])
    assert nb.cells[0].cell_type == "markdown"
    assert nb.cells[1].metadata["tutorial"]["role"] == "setup"
    headings = [c.source for c in nb.cells if c.cell_type == "markdown" and c.source.startswith("## ")]
    assert headings == ["## S1. Data and Model", "## S2. Predictions", "## Session Info"]
    labels = [c.metadata["tutorial"]["label"] for c in nb.cells if "tutorial" in c.metadata]
    assert "S2, cell 2" in labels


def test_setup_cell_carries_current_options():
    with option_context(float_placement="htbp", digits=2):
        source = setup_source()
    assert "set_option('float_placement', 'htbp')" in source
    assert "set_option('digits', 2)" in source
    assert "register_table_formatters(get_ipython())" in source


def test_execute_cell_captures_stdout_and_value():
    out = execute_cell(code("x = 2\nprint('hello')\nx * 3"))
    assert out["stdout"] == "hello\n"
    assert out["value"] == "6"


def test_prose_cell_passes_through():
    out = execute_cell(prose("Some *text*."))
    assert out["kind"] == "prose"
    assert out["text"] == "Some *text*."


def test_failed_assertion_raises():
    with pytest.raises(CellExecutionError, match="assertion failed"):
        execute_cell(code("assert 1 == 2"))


def test_cell_error_names_cell_and_exception():
    with pytest.raises(CellExecutionError, match="S9, cell 1: ValueError"):
        execute_cell(code("fit_ols(load_mtcars(), 'mpg hp')"), label="S9, cell 1")


def test_syntax_error_raises():
    with pytest.raises(CellExecutionError, match="SyntaxError"):
        execute_cell(code("x = = 1"))


def test_table_value_published_in_every_style():
    out = execute_cell(code("predictions(fit_ols(load_mtcars(), 'mpg ~ hp'), newdata='mean')"))
    assert {"text/markdown", "text/html", "text/latex", "text/plain"} <= set(out["data"])
    assert "estimate" in out["value"]


def test_figures_are_captured():
    out = execute_cell(code("fig, ax = plt.subplots()\nax.plot([1, 2], [3, 4]);"))
    assert len(out["figures"]) == 1
    assert out["figures"][0][:4] == b"\x89PNG"


def test_run_section_runs_earlier_sections_first():
    result = run_section("S2", verbose=False)
    assert result["section_id"] == "S2"
    assert any(o["value"] for o in result["outputs"] if o["kind"] == "code")


def test_chapter_run_without_arguments():
    result = s2_predictions.run(verbose=False)
    assert result["section_id"] == "S2"
    assert result["config"]["name"] == "Predictions"


def test_document_runs_every_section(document):
    assert [s["section_id"] for s in document["sections"]] == list_sections()
    figures = [f for s in document["sections"] for o in s["outputs"] for f in o["figures"]]
    assert len(figures) == 1


def test_render_markdown(document):
    text = render_document(document, fmt="markdown")
    assert text.lstrip().startswith("# ")
    assert "## S8. Hypothesis and Equivalence Tests" in text
    assert "```python" in text
    assert "data:image/png;base64," in text
    assert "## Session Info" in text
    assert "register_table_formatters" not in text
    assert PIPE_RULE.search(text)


def test_render_markdown_plain_tables(document):
    with option_context(table_style="plain"):
        text = render_document(document, fmt="markdown")
    assert not PIPE_RULE.search(text)


def test_render_html(document):
    text = render_document(document, fmt="html")
    assert "<table" in text
    assert "data:image/png;base64," in text
    assert "S8. Hypothesis and Equivalence Tests" in text


def test_render_latex_needs_assets(document, tmp_path):
    with pytest.raises(ValueError, match="assets"):
        render_document(document, fmt="latex")
    text = render_document(document, fmt="latex", assets_dir=tmp_path / "fig")
    assert "\\begin{figure}[H]" in text
    assert "\\section*{S1. Data and Model}" in text
    assert list((tmp_path / "fig").glob("*.png"))


def test_latex_figure_placement_follows_option(document, tmp_path):
    with option_context(float_placement="htbp"):
        text = render_document(document, fmt="latex", assets_dir=tmp_path / "fig")
    assert "\\begin{figure}[htbp]" in text


def test_prose_to_latex():
    text = prose_to_latex("## Slopes\n\nThe **slope** of `hp_x` is *local*.\n\n- one\n- two")
    assert "\\section*{Slopes}" in text
    assert "\\textbf{slope}" in text
    assert "\\texttt{hp\\_x}" in text
    assert "\\emph{local}" in text
    assert "\\begin{itemize}" in text


def test_write_document(document, tmp_path):
    path = write_document(document, tmp_path / "tutorial.md")
    assert path.exists()
    figures = list((tmp_path / "tutorial_files").glob("*.png"))
    assert len(figures) == 1
    assert f"tutorial_files/{figures[0].name}" in path.read_text(encoding="utf-8")


def test_write_document_unknown_suffix(document, tmp_path):
    with pytest.raises(ValueError, match="infer format"):
        write_document(document, tmp_path / "tutorial.docx")


def test_unknown_format_raises(document):
    with pytest.raises(ValueError, match="Unknown format"):
        render_document(document, fmt="pdf")


def test_session_info_lists_stack():
    info = session_info()
    assert info["packages"]["numpy"] is not None
    assert "statsmodels" in format_session_info(info)
