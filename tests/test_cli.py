from render_tutorial import main


def test_describe(capsys):
    assert main(["--describe", "S1"]) == 0
    out = capsys.readouterr().out
    assert "S1: Data and Model" in out
    assert "mpg ~ hp * wt * am" in out


def test_render_selected_sections(tmp_path):
    output = tmp_path / "doc.html"
    assert main(["S1", "S2", "--output", str(output), "--quiet"]) == 0
    assert "S2. Predictions" in output.read_text(encoding="utf-8")


def test_cell_failure_exit_code(monkeypatch, tmp_path, capsys):
    from tutorial import s1_data_model
    from tutorial.config import code

    monkeypatch.setattr(s1_data_model, "CELLS", [code("assert False, 'row count changed'")])
    assert main(["S1", "--output", str(tmp_path / "doc.md"), "--quiet"]) == 1
    assert "row count changed" in capsys.readouterr().err
    assert not (tmp_path / "doc.md").exists()
