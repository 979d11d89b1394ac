"""Domain models for markdown conversion runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from .logging import BatchSummary

OutputFormat = Literal["pdf", "svg", "typst"]

OUTPUT_SUFFIXES: dict[str, str] = {"pdf": ".pdf", "svg": ".svg", "typst": ".typ"}


@dataclass(slots=True)
class ConversionOptions:
    """Configuration for a single conversion run."""

    output_format: OutputFormat = "pdf"
    size_limit_mb: int | None = None


@dataclass(slots=True)
class ConversionResult:
    """Result metadata for an individual conversion."""

    run_id: str
    source: Path
    outputs: list[Path]
    output_format: OutputFormat
    summary: str
    warnings: list[str] = field(default_factory=list)

    @property
    def output_path(self) -> Path:
        return self.outputs[0]


@dataclass(slots=True)
class BatchConversionResult:
    """Aggregate results for a batch conversion request."""

    runs: list[ConversionResult]
    summary: BatchSummary


__all__ = [
    "OUTPUT_SUFFIXES",
    "OutputFormat",
    "ConversionOptions",
    "ConversionResult",
    "BatchConversionResult",
]
