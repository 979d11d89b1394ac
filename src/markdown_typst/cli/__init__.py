from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..blocks import Heading, spans_text
from ..config import AppConfig, dump_config, load_config
from ..core import ConversionError, ConversionService
from ..models import ConversionOptions
from ..parser import parse
from ..settings import get_settings
from ..typst import blocks_to_typst, section_lines

console = Console()

app = typer.Typer(help="Convert Markdown to paginated PDF or SVG through Typst")

FORMAT_HELP = "Output format: pdf, svg or typst"


def _load_config(path: Path | None) -> AppConfig:
    cfg = load_config(path or get_settings().config_path)
    for warning in cfg.warnings:
        console.print(f"[yellow]Warning[/yellow]: {escape(warning)}", soft_wrap=True)
    return cfg


def _check_format(value: str) -> str:
    if value not in {"pdf", "svg", "typst"}:
        raise typer.BadParameter(FORMAT_HELP)
    return value


def _read_markdown(file: Path) -> str:
    try:
        return file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        console.print(f"[red]Error reading {file}[/red]: {escape(str(exc))}", soft_wrap=True)
        raise typer.Exit(1) from exc


@app.command()
def convert(
    file: Path,
    output: Path | None = typer.Option(None, "--output", "-o", help="Output file"),
    fmt: str = typer.Option("pdf", "--format", "-f", callback=_check_format, help=FORMAT_HELP),
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to config.toml"),
) -> None:
    cfg = _load_config(config)
    service = ConversionService(cfg)
    try:
        result = service.convert_file(file, output=output, options=ConversionOptions(output_format=fmt))  # type: ignore[arg-type]
    except ConversionError as exc:
        console.print(f"[red]Conversion failed[/red]: {exc.code} - {escape(str(exc))}", soft_wrap=True)
        raise typer.Exit(1) from exc
    console.print(f"[green]Success[/green]: {result.summary}")
    if len(result.outputs) > 1:
        console.print(f"Wrote {len(result.outputs)} pages")


@app.command()
def batch(
    path: list[Path],
    fmt: str = typer.Option("pdf", "--format", "-f", callback=_check_format, help=FORMAT_HELP),
    parallel: int | None = typer.Option(None, "--parallel", min=1, help="Parallel workers"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to config.toml"),
) -> None:
    cfg = _load_config(config)
    service = ConversionService(cfg)
    batch_result = service.batch_convert(
        path, parallelism=parallel, options=ConversionOptions(output_format=fmt)  # type: ignore[arg-type]
    )
    table = Table(title="Batch summary")
    table.add_column("Source")
    table.add_column("Output")
    table.add_column("Warnings")
    for result in batch_result.runs:
        table.add_row(str(result.source), str(result.output_path), ", ".join(result.warnings) or "-")
    console.print(table)
    summary = batch_result.summary
    console.print(
        f"Processed {summary.total} files: {summary.successes} succeeded, {summary.failures} failed."
    )
    if summary.failures:
        raise typer.Exit(1)


@app.command()
def typst(
    file: Path,
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to config.toml"),
) -> None:
    """Print the generated Typst markup."""

    cfg = _load_config(config)
    markup = blocks_to_typst(parse(_read_markdown(file)), cfg)
    typer.echo(markup, nl=False)


@app.command()
def sections(file: Path) -> None:
    """Show the estimated length of every heading's section."""

    blocks = parse(_read_markdown(file))
    table = Table(title=f"Sections of {file.name}")
    table.add_column("Level", justify="right")
    table.add_column("Heading")
    table.add_column("Lines", justify="right")
    for index, block in enumerate(blocks):
        if isinstance(block, Heading):
            title = spans_text(block.content)
            table.add_row(f"H{block.level}", title[:60], str(section_lines(blocks, index)))
    console.print(table)


@app.command("config")
def show_config(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to config.toml"),
) -> None:
    """Print the effective configuration as JSON."""

    typer.echo(dump_config(_load_config(config)))


if __name__ == "__main__":
    app()
