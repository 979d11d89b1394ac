"""Boundary to the Typst compiler.

Markup is written to a scratch ``main.typ`` and compiled with the ``typst``
Python bindings. Everything the compiler rejects surfaces as
:class:`CompilationError` with Typst's own message.
"""

from __future__ import annotations

import re
import tempfile
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Literal

import typst


PACKAGE_FONT_DIR = Path(__file__).parent / "fonts"

FONT_VARIANTS: dict[str, str] = {
    "regular": "OpenSans-Regular.ttf",
    "bold": "OpenSans-Bold.ttf",
    "italic": "OpenSans-Italic.ttf",
    "bold_italic": "OpenSans-BoldItalic.ttf",
}

# A4 in points, used when a document produced no pages.
DEFAULT_PAGE_SIZE = (595.0, 842.0)

_SVG_SIZE_RE = re.compile(rb'<svg[^>]*?\swidth="([\d.]+)(?:pt)?"[^>]*?\sheight="([\d.]+)(?:pt)?"')
_SVG_VIEWBOX_RE = re.compile(rb'<svg[^>]*?\sviewBox="[\d.\-]+ [\d.\-]+ ([\d.]+) ([\d.]+)"')


class CompilationError(RuntimeError):
    """Typst rejected the generated markup."""


@dataclass(frozen=True, slots=True)
class FontBundle:
    directory: Path
    files: dict[str, Path] = field(default_factory=dict)

    @classmethod
    def locate(cls, directory: Path) -> FontBundle:
        files = {
            variant: directory / filename
            for variant, filename in FONT_VARIANTS.items()
            if (directory / filename).is_file()
        }
        return cls(directory=directory, files=files)

    @property
    def complete(self) -> bool:
        return len(self.files) == len(FONT_VARIANTS)

    @property
    def missing(self) -> list[str]:
        return [FONT_VARIANTS[variant] for variant in FONT_VARIANTS if variant not in self.files]

    @property
    def font_paths(self) -> list[str]:
        return [str(self.directory)] if self.files else []


@lru_cache(maxsize=8)
def default_font_bundle(directory: Path | None = None) -> FontBundle:
    """Resolve the font bundle once per directory for the whole process."""

    return FontBundle.locate(directory or PACKAGE_FONT_DIR)


@dataclass(slots=True)
class SvgDocument:
    pages: list[str]
    width_pt: float
    height_pt: float


def page_size(svg: bytes) -> tuple[float, float]:
    match = _SVG_SIZE_RE.search(svg) or _SVG_VIEWBOX_RE.search(svg)
    if not match:
        return DEFAULT_PAGE_SIZE
    return float(match.group(1)), float(match.group(2))


class DocumentCompiler:
    def __init__(self, fonts: FontBundle | None = None) -> None:
        self._fonts = fonts or default_font_bundle()

    @property
    def fonts(self) -> FontBundle:
        return self._fonts

    def compile_pdf(self, markup: str) -> bytes:
        output = self._compile(markup, "pdf")
        if isinstance(output, list):
            return b"".join(output)
        return output

    def compile_svg(self, markup: str) -> SvgDocument:
        output = self._compile(markup, "svg")
        pages = output if isinstance(output, list) else [output]
        pages = [page for page in pages if page]
        width, height = page_size(pages[0]) if pages else DEFAULT_PAGE_SIZE
        return SvgDocument(
            pages=[page.decode("utf-8") for page in pages],
            width_pt=width,
            height_pt=height,
        )

    def _compile(self, markup: str, fmt: Literal["pdf", "svg"]) -> bytes | list[bytes]:
        with tempfile.TemporaryDirectory(prefix="markdown-typst-") as workdir:
            source = Path(workdir) / "main.typ"
            source.write_text(markup, encoding="utf-8")
            try:
                return typst.compile(
                    str(source),
                    root=workdir,
                    font_paths=self._fonts.font_paths,
                    format=fmt,
                )
            except RuntimeError as exc:
                raise CompilationError(f"Typst compilation failed: {exc}") from exc


__all__ = [
    "CompilationError",
    "DocumentCompiler",
    "FontBundle",
    "SvgDocument",
    "default_font_bundle",
    "page_size",
]
