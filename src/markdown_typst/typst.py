"""Typst markup generation with pagination heuristics.

Headings are kept together with the block that follows them, long sections
can be isolated on their own pages (``layout.hN_break_if_lines``), and a
minimum amount of free space can be demanded below a heading
(``layout.hN_min_space``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from .blocks import (
    Block,
    Bold,
    Code,
    CodeBlock,
    Heading,
    Italic,
    LineBreak,
    Link,
    List,
    ListBlock,
    PageBreak,
    Paragraph,
    Rule,
    Span,
    Table,
    Text,
    count_list_items,
    span_char_count,
    spans_text,
)
from .config import AppConfig


PREAMBLE = '#set par(linebreaks: "optimized")\n'
SANS_FONT = '#set text(font: "Open Sans")\n'
PAGE_NUMBERING = '#set page(numbering: "1")\n'

BLOCK_OPEN = "#block(breakable: false)[\n"
BLOCK_CLOSE = "]\n\n"
RULE = "#line(length: 100%)\n\n"
WEAK_PAGEBREAK = "#pagebreak(weak: true)\n\n"
PAGEBREAK = "#pagebreak()\n\n"

RESERVED_CHARS = frozenset("#*_@$\\`<>[]")
CHARS_PER_LINE = 80
UNBREAKABLE_LIST_ITEMS = 5
NESTED_HEADING_LINES = 2
LIST_INDENT = "  "
TASK_UNCHECKED = "☐ "
TASK_CHECKED = "☒ "


@dataclass(slots=True)
class _EmitState:
    out: list[str] = field(default_factory=list)
    # Level of a long section still waiting for its closing page break.
    pending_break_level: int | None = None

    def write(self, text: str) -> None:
        self.out.append(text)

    def strip_trailing_rule(self) -> None:
        if self.out and self.out[-1] == RULE:
            self.out.pop()

    def page_break(self, directive: str) -> None:
        self.strip_trailing_rule()
        self.write(directive)


def preamble(config: AppConfig) -> str:
    parts = [PREAMBLE]
    if config.font.sans:
        parts.append(SANS_FONT)
    if config.page.numbers:
        parts.append(PAGE_NUMBERING)
    color = config.links.color
    if config.links.underline:
        parts.append(f'#show link: it => underline(text(fill: rgb("{color}"), it))\n')
    else:
        parts.append(f'#show link: set text(fill: rgb("{color}"))\n')
    parts.append("\n")
    return "".join(parts)


def blocks_to_typst(blocks: Sequence[Block], config: AppConfig | None = None) -> str:
    """Render *blocks* as a complete Typst document."""

    config = config or AppConfig()
    state = _EmitState()
    state.write(preamble(config))

    index = 0
    while index < len(blocks):
        block = blocks[index]
        if isinstance(block, Heading):
            _emit_layout_directives(blocks, index, block, config, state)
            state.write(BLOCK_OPEN)
            _emit_heading(block, state)
            # Page breaks are not allowed inside Typst containers.
            if index + 1 < len(blocks) and not isinstance(blocks[index + 1], PageBreak):
                index += 1
                _emit_block(blocks[index], state)
            state.write(BLOCK_CLOSE)
        else:
            _emit_block(block, state)
        index += 1

    return "".join(state.out)


def _emit_layout_directives(
    blocks: Sequence[Block], index: int, heading: Heading, config: AppConfig, state: _EmitState
) -> None:
    level = heading.level
    threshold = config.layout.break_if_lines_for_heading(level)
    if threshold is not None and section_lines(blocks, index) >= threshold:
        state.page_break(WEAK_PAGEBREAK)
        state.pending_break_level = level
    elif state.pending_break_level is not None and level <= state.pending_break_level:
        state.page_break(WEAK_PAGEBREAK)
        state.pending_break_level = None
    else:
        min_space = config.layout.min_space_for_heading(level)
        if min_space:
            # An invisible unbreakable block of the requested height pulls the
            # heading to the next page when it does not fit; the negative
            # spacing gives the height back when it does.
            state.write(f"#block(height: {min_space}, breakable: false)[]\n#v(-({min_space}))\n")


def section_lines(blocks: Sequence[Block], index: int) -> int:
    """Estimate the lines taken by the section opened by ``blocks[index]``."""

    heading = blocks[index]
    if not isinstance(heading, Heading):
        raise TypeError(f"Section must start at a heading, got {heading!r}")
    lines = 0
    for block in blocks[index + 1 :]:
        if isinstance(block, Heading):
            if block.level <= heading.level:
                break
            lines += NESTED_HEADING_LINES
        elif isinstance(block, Paragraph):
            chars = sum(span_char_count(span) for span in block.content)
            lines += max(1, chars // CHARS_PER_LINE)
        elif isinstance(block, CodeBlock):
            lines += len(block.content.splitlines())
        elif isinstance(block, ListBlock):
            lines += count_list_items(block.list)
        elif isinstance(block, Table):
            lines += 1 + len(block.headers) + len(block.rows)
        elif isinstance(block, Rule):
            lines += 1
        elif isinstance(block, PageBreak):
            continue
        else:
            raise TypeError(f"Unsupported block: {block!r}")
    return lines


def anchor_label(spans: Sequence[Span]) -> str:
    """Derive the ``<label>`` used to link to a heading.

    >>> anchor_label((Text("Getting Started"),))
    'getting-started'
    """

    text = spans_text(tuple(spans)).lower()
    hyphenated = "".join("-" if char.isspace() else char for char in text)
    return "".join(char for char in hyphenated if (char.isascii() and char.isalnum()) or char == "-")


def _emit_heading(heading: Heading, state: _EmitState) -> None:
    line = "=" * heading.level + " " + spans_to_typst(heading.content)
    label = anchor_label(heading.content)
    if label:
        line += f" <{label}>"
    state.write(line + "\n\n")


def _emit_block(block: Block, state: _EmitState) -> None:
    if isinstance(block, Heading):
        _emit_heading(block, state)
    elif isinstance(block, Paragraph):
        state.write(spans_to_typst(block.content) + "\n\n")
    elif isinstance(block, CodeBlock):
        content = block.content if block.content.endswith("\n") else block.content + "\n"
        state.write(f"{BLOCK_OPEN}```{block.language or ''}\n{content}```\n{BLOCK_CLOSE}")
    elif isinstance(block, ListBlock):
        body = list_to_typst(block.list)
        if count_list_items(block.list) <= UNBREAKABLE_LIST_ITEMS:
            state.write(f"{BLOCK_OPEN}{body}{BLOCK_CLOSE}")
        else:
            state.write(body + "\n")
    elif isinstance(block, Table):
        table = table_to_typst(block)
        if table:
            state.write(f"{BLOCK_OPEN}{table}{BLOCK_CLOSE}")
    elif isinstance(block, Rule):
        state.write(RULE)
    elif isinstance(block, PageBreak):
        state.page_break(PAGEBREAK)
    else:
        raise TypeError(f"Unsupported block: {block!r}")


def list_to_typst(items: List, depth: int = 0) -> str:
    marker = "+" if items.ordered else "-"
    indent = LIST_INDENT * depth
    lines: list[str] = []
    for item in items.items:
        task = ""
        if item.checked is not None:
            task = TASK_CHECKED if item.checked else TASK_UNCHECKED
        lines.append(f"{indent}{marker} {task}{spans_to_typst(item.content)}\n")
        if item.nested is not None:
            lines.append(list_to_typst(item.nested, depth + 1))
    return "".join(lines)


def table_to_typst(table: Table) -> str:
    """Render a table grid; body rows are padded or cut to the header width."""

    columns = len(table.headers)
    if columns == 0:
        return ""
    lines = ["#table(\n", f"  columns: {columns},\n"]
    for cell in table.headers:
        lines.append(f"  [*{spans_to_typst(cell)}*],\n")
    for row in table.rows:
        cells = list(row[:columns]) + [()] * (columns - len(row))
        for cell in cells:
            lines.append(f"  [{spans_to_typst(cell)}],\n")
    lines.append(")\n")
    return "".join(lines)


def escape_text(text: str) -> str:
    return "".join("\\" + char if char in RESERVED_CHARS else char for char in text)


def _escape_url(url: str) -> str:
    return url.replace("\\", "\\\\").replace('"', '\\"')


def spans_to_typst(spans: Sequence[Span]) -> str:
    return "".join(span_to_typst(span) for span in spans)


def span_to_typst(span: Span) -> str:
    if isinstance(span, Text):
        return escape_text(span.text)
    if isinstance(span, Bold):
        return f"*{spans_to_typst(span.children)}*"
    if isinstance(span, Italic):
        return f"_{spans_to_typst(span.children)}_"
    if isinstance(span, Code):
        return "`" + span.text.replace("`", "\\`") + "`"
    if isinstance(span, Link):
        content = spans_to_typst(span.children)
        if span.url.startswith("#"):
            return f"#link(<{span.url[1:]}>)[{content}]"
        return f'#link("{_escape_url(span.url)}")[{content}]'
    if isinstance(span, LineBreak):
        return " \\\n"
    raise TypeError(f"Unsupported span: {span!r}")


__all__ = [
    "anchor_label",
    "blocks_to_typst",
    "escape_text",
    "list_to_typst",
    "preamble",
    "section_lines",
    "span_to_typst",
    "spans_to_typst",
    "table_to_typst",
]
