from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from markdown_typst import compiler
from markdown_typst.settings import get_settings

SVG_PAGE = (
    b'<svg class="typst-doc" viewBox="0 0 595.2756 841.8898" width="595.2756pt" '
    b'height="841.8898pt" xmlns="http://www.w3.org/2000/svg"></svg>'
)


class FakeTypst:
    """Stands in for ``typst.compile`` and records every call."""

    def __init__(self, pages: int = 1, error: str | None = None) -> None:
        self.pages = pages
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def __call__(self, source: str, **kwargs: Any) -> bytes | list[bytes]:
        self.calls.append({"markup": Path(source).read_text(encoding="utf-8"), **kwargs})
        if self.error is not None:
            raise RuntimeError(self.error)
        if kwargs.get("format") == "svg":
            if self.pages == 1:
                return SVG_PAGE
            return [SVG_PAGE] * self.pages
        return b"%PDF-1.7 fake"


@pytest.fixture
def fake_typst(monkeypatch: pytest.MonkeyPatch) -> FakeTypst:
    fake = FakeTypst()
    monkeypatch.setattr(compiler.typst, "compile", fake)
    return fake


@pytest.fixture(autouse=True)
def _fresh_settings() -> None:
    get_settings.cache_clear()
