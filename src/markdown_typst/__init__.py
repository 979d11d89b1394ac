"""Markdown to paginated PDF/SVG through Typst."""

from .blocks import Block, List, ListItem, Span
from .compiler import CompilationError, DocumentCompiler, SvgDocument
from .config import AppConfig, load_config
from .core import (
    ConversionError,
    ConversionService,
    markdown_to_pdf,
    markdown_to_svg,
    markdown_to_typst,
)
from .models import BatchConversionResult, ConversionOptions, ConversionResult
from .parser import parse
from .typst import blocks_to_typst

__all__ = [
    "AppConfig",
    "BatchConversionResult",
    "Block",
    "CompilationError",
    "ConversionError",
    "ConversionOptions",
    "ConversionResult",
    "ConversionService",
    "DocumentCompiler",
    "List",
    "ListItem",
    "Span",
    "SvgDocument",
    "blocks_to_typst",
    "load_config",
    "markdown_to_pdf",
    "markdown_to_svg",
    "markdown_to_typst",
    "parse",
]
