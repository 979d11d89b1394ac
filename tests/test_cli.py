import json
from pathlib import Path

from typer.testing import CliRunner

from markdown_typst.cli import app

from conftest import FakeTypst

runner = CliRunner()


def write_config(tmp_path: Path, body: str = "") -> Path:
    path = tmp_path / "config.toml"
    path.write_text(f'[runtime]\noutput_dir = "{(tmp_path / "runs").as_posix()}"\n{body}', encoding="utf-8")
    return path


def test_typst_command_prints_markup(tmp_path: Path) -> None:
    source = tmp_path / "doc.md"
    source.write_text("## Getting Started\n\nSee [here](#getting-started).", encoding="utf-8")
    result = runner.invoke(app, ["typst", str(source), "--config", str(write_config(tmp_path))])
    assert result.exit_code == 0
    assert "== Getting Started <getting-started>" in result.output
    assert "#link(<getting-started>)[here]" in result.output


def test_convert_command(tmp_path: Path, fake_typst: FakeTypst) -> None:
    source = tmp_path / "doc.md"
    source.write_text("# Doc", encoding="utf-8")
    result = runner.invoke(app, ["convert", str(source), "--config", str(write_config(tmp_path))])
    assert result.exit_code == 0
    assert "Success" in result.output
    assert (tmp_path / "doc.pdf").read_bytes() == b"%PDF-1.7 fake"


def test_convert_command_reports_compile_error(tmp_path: Path, fake_typst: FakeTypst) -> None:
    fake_typst.error = "error: expected expression"
    source = tmp_path / "doc.md"
    source.write_text("# Doc", encoding="utf-8")
    result = runner.invoke(app, ["convert", str(source), "--config", str(write_config(tmp_path))])
    assert result.exit_code == 1
    assert "COMPILE_ERROR" in result.output
    assert "expected expression" in result.output


def test_convert_command_rejects_unknown_format(tmp_path: Path) -> None:
    source = tmp_path / "doc.md"
    source.write_text("# Doc", encoding="utf-8")
    result = runner.invoke(app, ["convert", str(source), "--format", "docx"])
    assert result.exit_code != 0


def test_invalid_config_warning_is_printed(tmp_path: Path) -> None:
    source = tmp_path / "doc.md"
    source.write_text("text", encoding="utf-8")
    config = tmp_path / "broken.toml"
    config.write_text("[layout\n", encoding="utf-8")
    result = runner.invoke(app, ["typst", str(source), "--config", str(config)])
    assert result.exit_code == 0
    assert "CONFIG_INVALID" in result.output


def test_sections_command(tmp_path: Path) -> None:
    source = tmp_path / "doc.md"
    source.write_text("# One\n\nText.\n\n## Two\n\nMore.\n", encoding="utf-8")
    result = runner.invoke(app, ["sections", str(source)])
    assert result.exit_code == 0
    assert "H1" in result.output
    assert "Two" in result.output


def test_batch_command(tmp_path: Path, fake_typst: FakeTypst) -> None:
    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "a.md").write_text("# A", encoding="utf-8")
    (docs / "b.md").write_text("# B", encoding="utf-8")
    result = runner.invoke(app, ["batch", str(docs), "--config", str(write_config(tmp_path))])
    assert result.exit_code == 0
    assert "2 succeeded" in result.output


def test_config_command_prints_effective_values(tmp_path: Path) -> None:
    path = write_config(tmp_path, "[layout]\nh2_break_if_lines = 12\n")
    result = runner.invoke(app, ["config", "--config", str(path)])
    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["layout"]["h2_break_if_lines"] == 12
    assert payload["runtime"]["output_dir"] == str(tmp_path / "runs")
