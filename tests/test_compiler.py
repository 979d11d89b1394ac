from pathlib import Path

import pytest

from markdown_typst.compiler import (
    DEFAULT_PAGE_SIZE,
    FONT_VARIANTS,
    CompilationError,
    DocumentCompiler,
    FontBundle,
    page_size,
)

from conftest import FakeTypst


def make_fonts(directory: Path, names: list[str]) -> FontBundle:
    for name in names:
        (directory / name).write_bytes(b"\x00\x01\x00\x00")
    return FontBundle.locate(directory)


def test_font_bundle_complete(tmp_path: Path) -> None:
    bundle = make_fonts(tmp_path, list(FONT_VARIANTS.values()))
    assert bundle.complete
    assert bundle.missing == []
    assert bundle.font_paths == [str(tmp_path)]


def test_font_bundle_partial_and_empty(tmp_path: Path) -> None:
    partial = make_fonts(tmp_path, ["OpenSans-Regular.ttf"])
    assert not partial.complete
    assert "OpenSans-Bold.ttf" in partial.missing
    empty = FontBundle.locate(tmp_path / "nowhere")
    assert empty.font_paths == []


def test_compile_pdf_passes_markup_and_fonts(tmp_path: Path, fake_typst: FakeTypst) -> None:
    fonts = make_fonts(tmp_path, list(FONT_VARIANTS.values()))
    pdf = DocumentCompiler(fonts).compile_pdf("= Hi\n")
    assert pdf == b"%PDF-1.7 fake"
    call = fake_typst.calls[0]
    assert call["markup"] == "= Hi\n"
    assert call["format"] == "pdf"
    assert call["font_paths"] == [str(tmp_path)]


def test_compile_svg_pages_and_size(tmp_path: Path, fake_typst: FakeTypst) -> None:
    fake_typst.pages = 3
    document = DocumentCompiler(FontBundle.locate(tmp_path)).compile_svg("= Hi\n")
    assert len(document.pages) == 3
    assert document.pages[0].startswith("<svg")
    assert document.width_pt == pytest.approx(595.2756)
    assert document.height_pt == pytest.approx(841.8898)


def test_compile_svg_single_page(tmp_path: Path, fake_typst: FakeTypst) -> None:
    document = DocumentCompiler(FontBundle.locate(tmp_path)).compile_svg("text")
    assert len(document.pages) == 1


def test_compile_error_is_reported_verbatim(tmp_path: Path, fake_typst: FakeTypst) -> None:
    fake_typst.error = "error: unclosed delimiter"
    with pytest.raises(CompilationError) as exc:
        DocumentCompiler(FontBundle.locate(tmp_path)).compile_pdf("#block([")
    assert "error: unclosed delimiter" in str(exc.value)


def test_page_size_parsing() -> None:
    assert page_size(b'<svg viewBox="0 0 200 100" width="200pt" height="100pt">') == (200.0, 100.0)
    assert page_size(b'<svg viewBox="0 0 300.5 400">') == (300.5, 400.0)
    assert page_size(b"<svg>") == DEFAULT_PAGE_SIZE
