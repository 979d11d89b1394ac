import csv
import json
from pathlib import Path

import pytest

from markdown_typst.config import AppConfig, FontConfig, RuntimeConfig
from markdown_typst.core import ConversionError, ConversionService
from markdown_typst.models import ConversionOptions

from conftest import FakeTypst


def build_config(output_dir: Path, **runtime: object) -> AppConfig:
    return AppConfig(runtime=RuntimeConfig(output_dir=output_dir, **runtime))  # type: ignore[arg-type]


def read_log(config: AppConfig) -> list[dict[str, object]]:
    log_file = config.runtime.output_dir / config.runtime.log_file
    return [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]


def test_convert_to_typst_writes_markup(tmp_path: Path) -> None:
    source = tmp_path / "notes.md"
    source.write_text("# Hello\n\nWorld.", encoding="utf-8")
    config = build_config(tmp_path / "runs")
    result = ConversionService(config).convert_file(source, options=ConversionOptions(output_format="typst"))
    assert result.output_path == tmp_path / "notes.typ"
    assert "= Hello <hello>\n\nWorld." in result.output_path.read_text(encoding="utf-8")
    entries = read_log(config)
    assert entries[-1]["status"] == "success"
    assert entries[-1]["block_count"] == 2
    assert entries[-1]["run_id"] == result.run_id


def test_convert_to_pdf(tmp_path: Path, fake_typst: FakeTypst) -> None:
    source = tmp_path / "notes.md"
    source.write_text("Some *text*.", encoding="utf-8")
    target = tmp_path / "out" / "final.pdf"
    result = ConversionService(build_config(tmp_path / "runs")).convert_file(source, output=target)
    assert result.outputs == [target]
    assert target.read_bytes() == b"%PDF-1.7 fake"
    assert "Some _text_." in fake_typst.calls[0]["markup"]


def test_convert_to_svg_writes_one_file_per_page(tmp_path: Path, fake_typst: FakeTypst) -> None:
    fake_typst.pages = 2
    source = tmp_path / "notes.md"
    source.write_text("Page one\n\n---pagebreak---\n\nPage two", encoding="utf-8")
    result = ConversionService(build_config(tmp_path / "runs")).convert_file(
        source, options=ConversionOptions(output_format="svg")
    )
    assert result.outputs == [tmp_path / "notes-1.svg", tmp_path / "notes-2.svg"]
    assert all(path.read_text(encoding="utf-8").startswith("<svg") for path in result.outputs)


def test_compile_error_is_logged_and_raised(tmp_path: Path, fake_typst: FakeTypst) -> None:
    fake_typst.error = "error: unknown variable"
    source = tmp_path / "notes.md"
    source.write_text("text", encoding="utf-8")
    config = build_config(tmp_path / "runs")
    with pytest.raises(ConversionError) as exc:
        ConversionService(config).convert_file(source)
    assert exc.value.code == "COMPILE_ERROR"
    assert "error: unknown variable" in str(exc.value)
    entry = read_log(config)[-1]
    assert entry["status"] == "failure"
    assert entry["error_code"] == "COMPILE_ERROR"
    assert not (tmp_path / "notes.pdf").exists()


def test_missing_source(tmp_path: Path) -> None:
    with pytest.raises(ConversionError) as exc:
        ConversionService(build_config(tmp_path / "runs")).convert_file(tmp_path / "absent.md")
    assert exc.value.code == "NOT_FOUND"


def test_size_limit(tmp_path: Path) -> None:
    source = tmp_path / "big.md"
    source.write_text("x" * (1024 * 1024 + 1), encoding="utf-8")
    service = ConversionService(build_config(tmp_path / "runs", max_file_size_mb=1))
    with pytest.raises(ConversionError) as exc:
        service.convert_file(source, options=ConversionOptions(output_format="typst"))
    assert exc.value.code == "SIZE_LIMIT"


def test_invalid_utf8(tmp_path: Path) -> None:
    source = tmp_path / "latin.md"
    source.write_bytes(b"caf\xe9")
    with pytest.raises(ConversionError) as exc:
        ConversionService(build_config(tmp_path / "runs")).convert_file(source)
    assert exc.value.code == "DECODE_ERROR"


def test_warnings_are_reported(tmp_path: Path, fake_typst: FakeTypst) -> None:
    source = tmp_path / "notes.md"
    source.write_text("text", encoding="utf-8")
    config = build_config(tmp_path / "runs")
    config.font = FontConfig(sans=True, dir=tmp_path / "no-fonts")
    config.warnings.append("CONFIG_INVALID: config.toml: broken")
    result = ConversionService(config).convert_file(source)
    assert result.warnings == ["CONFIG_INVALID: config.toml: broken", "FONTS_MISSING"]
    assert read_log(config)[-1]["warnings"] == result.warnings


@pytest.mark.parametrize("parallelism", [1, 3])
def test_batch_convert(tmp_path: Path, fake_typst: FakeTypst, parallelism: int) -> None:
    docs = tmp_path / "docs"
    (docs / "nested").mkdir(parents=True)
    (docs / "a.md").write_text("# A", encoding="utf-8")
    (docs / "nested" / "b.markdown").write_text("# B", encoding="utf-8")
    (docs / "skip.txt").write_text("ignored", encoding="utf-8")
    single = tmp_path / "c.md"
    single.write_text("# C", encoding="utf-8")
    missing = tmp_path / "missing.md"
    config = build_config(tmp_path / "runs")

    result = ConversionService(config).batch_convert([docs, single, missing], parallelism=parallelism)

    assert result.summary.total == 4
    assert result.summary.successes == 3
    assert result.summary.failures == 1
    assert result.summary.errors == {"NOT_FOUND": 1}
    assert sorted(run.source.name for run in result.runs) == ["a.md", "b.markdown", "c.md"]
    with (config.runtime.output_dir / config.runtime.summary_csv).open(encoding="utf-8", newline="") as handle:
        rows = list(csv.reader(handle))
    assert rows[0] == ["batch_id", "timestamp", "total", "successes", "failures", "errors"]
    assert rows[1][2:5] == ["4", "3", "1"]


def test_batch_counts_failures(tmp_path: Path, fake_typst: FakeTypst) -> None:
    fake_typst.error = "error: boom"
    source = tmp_path / "a.md"
    source.write_text("# A", encoding="utf-8")
    result = ConversionService(build_config(tmp_path / "runs")).batch_convert([source])
    assert result.summary.failures == 1
    assert result.summary.errors == {"COMPILE_ERROR": 1}
    assert result.runs == []
