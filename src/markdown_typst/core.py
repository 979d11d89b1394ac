from __future__ import annotations

import concurrent.futures
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from .blocks import Block
from .compiler import CompilationError, DocumentCompiler, SvgDocument, default_font_bundle
from .config import AppConfig
from .logging import BatchSummary, RunLogEntry, RunLogger, StageTimings, append_summary_csv
from .models import (
    OUTPUT_SUFFIXES,
    BatchConversionResult,
    ConversionOptions,
    ConversionResult,
    OutputFormat,
)
from .parser import parse
from .typst import blocks_to_typst
from .utils import (
    atomic_write,
    atomic_write_bytes,
    generate_run_id,
    iter_markdown_files,
    size_within_limit,
)


class ConversionError(RuntimeError):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


@dataclass(slots=True)
class _Rendered:
    blocks: list[Block]
    markup: str
    payload: list[bytes] = field(default_factory=list)
    parse_ms: float = 0.0
    emit_ms: float = 0.0
    compile_ms: float = 0.0


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


class ConversionService:
    def __init__(self, config: AppConfig, compiler: DocumentCompiler | None = None) -> None:
        self._config = config
        self._compiler = compiler or DocumentCompiler(default_font_bundle(config.font.dir))
        self._logger = RunLogger(config.runtime.output_dir / config.runtime.log_file)

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def compiler(self) -> DocumentCompiler:
        return self._compiler

    def to_typst(self, markdown: str) -> str:
        return blocks_to_typst(parse(markdown), self._config)

    def to_pdf(self, markdown: str) -> bytes:
        return self._compiler.compile_pdf(self.to_typst(markdown))

    def to_svg(self, markdown: str) -> SvgDocument:
        return self._compiler.compile_svg(self.to_typst(markdown))

    def convert_file(
        self,
        path: Path,
        *,
        output: Path | None = None,
        options: ConversionOptions | None = None,
        run_id: str | None = None,
    ) -> ConversionResult:
        opts = options or ConversionOptions()
        run_id = run_id or generate_run_id()
        start = time.perf_counter()
        try:
            markdown, size_bytes, read_ms = self._read_source(path, opts)
            rendered = self._render(markdown, opts.output_format)
            write_start = time.perf_counter()
            outputs = self._write_outputs(path, output, opts.output_format, rendered)
            write_ms = _elapsed_ms(write_start)
        except ConversionError as exc:
            self._log_failure(path, run_id, opts, exc)
            raise

        warnings = list(self._config.warnings)
        if opts.output_format != "typst" and self._config.font.sans and not self._compiler.fonts.complete:
            warnings.append("FONTS_MISSING")
        self._logger.append(
            RunLogEntry(
                run_id=run_id,
                source=str(path),
                status="success",
                output_format=opts.output_format,
                warnings=warnings,
                error_code=None,
                error_message=None,
                timings=StageTimings(
                    read_ms=read_ms,
                    parse_ms=rendered.parse_ms,
                    emit_ms=rendered.emit_ms,
                    compile_ms=rendered.compile_ms,
                    write_ms=write_ms,
                ),
                outputs=[str(item) for item in outputs],
                block_count=len(rendered.blocks),
                size_bytes=size_bytes,
            )
        )
        elapsed = time.perf_counter() - start
        return ConversionResult(
            run_id=run_id,
            source=path,
            outputs=outputs,
            output_format=opts.output_format,
            summary=f"Converted {path.name} -> {outputs[0]} in {elapsed:.2f}s",
            warnings=warnings,
        )

    def _read_source(self, path: Path, options: ConversionOptions) -> tuple[str, int, float]:
        read_start = time.perf_counter()
        if not path.is_file():
            raise ConversionError("NOT_FOUND", f"Source file does not exist: {path}")
        if not size_within_limit(path, self._effective_size_limit(options)):
            raise ConversionError("SIZE_LIMIT", f"File exceeds configured limit: {path.name}")
        try:
            markdown = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise ConversionError("DECODE_ERROR", f"{path.name} is not valid UTF-8: {exc}") from exc
        return markdown, path.stat().st_size, _elapsed_ms(read_start)

    def _render(self, markdown: str, output_format: OutputFormat) -> _Rendered:
        parse_start = time.perf_counter()
        blocks = parse(markdown)
        parse_ms = _elapsed_ms(parse_start)

        emit_start = time.perf_counter()
        markup = blocks_to_typst(blocks, self._config)
        rendered = _Rendered(blocks=blocks, markup=markup, parse_ms=parse_ms, emit_ms=_elapsed_ms(emit_start))
        if output_format == "typst":
            return rendered

        compile_start = time.perf_counter()
        try:
            if output_format == "pdf":
                rendered.payload = [self._compiler.compile_pdf(markup)]
            else:
                svg = self._compiler.compile_svg(markup)
                rendered.payload = [page.encode("utf-8") for page in svg.pages]
        except CompilationError as exc:
            raise ConversionError("COMPILE_ERROR", str(exc)) from exc
        rendered.compile_ms = _elapsed_ms(compile_start)
        return rendered

    def _write_outputs(
        self, source: Path, output: Path | None, output_format: OutputFormat, rendered: _Rendered
    ) -> list[Path]:
        target = output or source.with_suffix(OUTPUT_SUFFIXES[output_format])
        if output_format == "typst":
            atomic_write(target, rendered.markup)
            return [target]
        if output_format == "pdf" or len(rendered.payload) == 1:
            atomic_write_bytes(target, rendered.payload[0] if rendered.payload else b"")
            return [target]
        outputs: list[Path] = []
        for number, page in enumerate(rendered.payload, start=1):
            page_path = target.with_name(f"{target.stem}-{number}{target.suffix}")
            atomic_write_bytes(page_path, page)
            outputs.append(page_path)
        return outputs

    def _log_failure(
        self, path: Path, run_id: str, options: ConversionOptions, exc: ConversionError
    ) -> None:
        size_bytes = path.stat().st_size if path.is_file() else 0
        self._logger.append(
            RunLogEntry(
                run_id=run_id,
                source=str(path),
                status="failure",
                output_format=options.output_format,
                warnings=list(self._config.warnings),
                error_code=exc.code,
                error_message=str(exc),
                timings=StageTimings(0, 0, 0, 0, 0),
                outputs=[],
                block_count=0,
                size_bytes=size_bytes,
            )
        )

    def _effective_size_limit(self, options: ConversionOptions) -> int:
        limit = self._config.runtime.max_file_size_mb
        candidate = options.size_limit_mb
        if candidate is not None and candidate > 0:
            limit = min(limit, candidate)
        return max(1, limit)

    def batch_convert(
        self,
        inputs: Sequence[Path],
        *,
        parallelism: int | None = None,
        options: ConversionOptions | None = None,
    ) -> BatchConversionResult:
        paths = list(iter_markdown_files(inputs))
        summary = BatchSummary(total=len(paths))
        parallelism = max(1, parallelism or self._config.runtime.parallelism)
        opts = options or ConversionOptions()

        if parallelism == 1:
            results = self._run_sequential_batch(paths, summary, opts)
        else:
            results = self._run_parallel_batch(paths, summary, opts, parallelism)

        if paths:
            summary_path = self._config.runtime.output_dir / self._config.runtime.summary_csv
            append_summary_csv(summary_path, summary.as_row(generate_run_id("batch")))
        return BatchConversionResult(runs=results, summary=summary)

    def _run_sequential_batch(
        self, paths: Sequence[Path], summary: BatchSummary, options: ConversionOptions
    ) -> list[ConversionResult]:
        results: list[ConversionResult] = []
        for path in paths:
            try:
                result = self.convert_file(path, options=options)
            except ConversionError as exc:
                summary.record_failure(exc.code)
                continue
            results.append(result)
            summary.successes += 1
        return results

    def _run_parallel_batch(
        self,
        paths: Sequence[Path],
        summary: BatchSummary,
        options: ConversionOptions,
        parallelism: int,
    ) -> list[ConversionResult]:
        results: list[ConversionResult] = []
        with concurrent.futures.ThreadPoolExecutor(max_workers=parallelism) as executor:
            futures = [executor.submit(self.convert_file, path, options=options) for path in paths]
            for future in concurrent.futures.as_completed(futures):
                try:
                    result = future.result()
                except ConversionError as exc:
                    summary.record_failure(exc.code)
                    continue
                results.append(result)
                summary.successes += 1
        return results


def markdown_to_typst(markdown: str, config: AppConfig | None = None) -> str:
    return blocks_to_typst(parse(markdown), config or AppConfig())


def markdown_to_pdf(markdown: str, config: AppConfig | None = None) -> bytes:
    config = config or AppConfig()
    compiler = DocumentCompiler(default_font_bundle(config.font.dir))
    return compiler.compile_pdf(markdown_to_typst(markdown, config))


def markdown_to_svg(markdown: str, config: AppConfig | None = None) -> SvgDocument:
    config = config or AppConfig()
    compiler = DocumentCompiler(default_font_bundle(config.font.dir))
    return compiler.compile_svg(markdown_to_typst(markdown, config))


__all__ = [
    "ConversionError",
    "ConversionService",
    "markdown_to_pdf",
    "markdown_to_svg",
    "markdown_to_typst",
]
