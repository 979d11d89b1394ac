"""Markdown to document model.

The markdown-it token stream is flattened (inline children follow their
``inline`` token) and folded through a single :class:`_ParseContext`, so the
nesting bookkeeping for emphasis, links, lists and tables lives in one
place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Callable, Iterable, Iterator
from urllib.parse import unquote

from markdown_it import MarkdownIt
from markdown_it.token import Token
from mdit_py_plugins.tasklists import tasklists_plugin

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
    ListItem,
    PageBreak,
    Paragraph,
    Rule,
    Span,
    Table,
    Text,
)


FRONTMATTER_DELIMITER = "---"
PAGEBREAK_MARKER = "---pagebreak---"


@dataclass(slots=True)
class _ItemBuilder:
    content: list[Span] = field(default_factory=list)
    nested: List | None = None
    checked: bool | None = None

    def build(self) -> ListItem:
        return ListItem(content=tuple(self.content), nested=self.nested, checked=self.checked)


@dataclass(slots=True)
class _ListBuilder:
    ordered: bool
    items: list[_ItemBuilder] = field(default_factory=list)

    @property
    def current(self) -> _ItemBuilder | None:
        return self.items[-1] if self.items else None

    def build(self) -> List:
        return List(ordered=self.ordered, items=tuple(item.build() for item in self.items))


@dataclass(slots=True)
class _ParseContext:
    blocks: list[Block] = field(default_factory=list)
    spans: list[Span] = field(default_factory=list)
    span_stack: list[list[Span]] = field(default_factory=list)
    link_urls: list[str] = field(default_factory=list)
    heading_level: int | None = None
    list_stack: list[_ListBuilder] = field(default_factory=list)
    in_table: bool = False
    in_table_head: bool = False
    table_headers: list[tuple[Span, ...]] = field(default_factory=list)
    table_rows: list[tuple[tuple[Span, ...], ...]] = field(default_factory=list)
    current_row: list[tuple[Span, ...]] = field(default_factory=list)

    def take_spans(self) -> list[Span]:
        spans, self.spans = self.spans, []
        return spans

    def open_group(self) -> None:
        self.span_stack.append(self.take_spans())

    def close_group(self, wrap: Callable[[tuple[Span, ...]], Span]) -> None:
        inner = tuple(self.take_spans())
        parent = self.span_stack.pop() if self.span_stack else []
        parent.append(wrap(inner))
        self.spans = parent


def strip_frontmatter(markdown: str) -> str:
    """Drop a leading ``---`` delimited block; unterminated blocks are kept."""

    if not markdown.startswith(FRONTMATTER_DELIMITER):
        return markdown
    end = markdown.find("\n" + FRONTMATTER_DELIMITER, len(FRONTMATTER_DELIMITER))
    if end == -1:
        return markdown
    return markdown[end + len(FRONTMATTER_DELIMITER) + 1 :].lstrip("\n")


@lru_cache(maxsize=1)
def _markdown_parser() -> MarkdownIt:
    md = MarkdownIt("commonmark", {"html": False})
    md.enable("table")
    md.use(tasklists_plugin)
    return md


def _iter_tokens(tokens: Iterable[Token]) -> Iterator[Token]:
    for token in tokens:
        yield token
        if token.type == "inline" and token.children:
            yield from token.children


def parse(markdown: str) -> list[Block]:
    """Parse *markdown* into a list of blocks. Never raises."""

    tokens = _markdown_parser().parse(strip_frontmatter(markdown))
    context = _ParseContext()
    for token in _iter_tokens(tokens):
        handler = _HANDLERS.get(token.type)
        if handler is not None:
            handler(context, token)
    return context.blocks


# Block level


def _heading_open(context: _ParseContext, token: Token) -> None:
    context.heading_level = int(token.tag[1:])
    context.spans.clear()


def _heading_close(context: _ParseContext, token: Token) -> None:
    if context.heading_level is None:
        return
    level, context.heading_level = context.heading_level, None
    context.blocks.append(Heading(level=level, content=tuple(context.take_spans())))


def _paragraph_close(context: _ParseContext, token: Token) -> None:
    content = context.take_spans()
    if not content:
        return
    if len(content) == 1 and isinstance(content[0], Text) and content[0].text.strip() == PAGEBREAK_MARKER:
        context.blocks.append(PageBreak())
        return
    if context.list_stack:
        item = context.list_stack[-1].current
        if item is not None:
            item.content.extend(content)
        return
    if context.in_table:
        return
    context.blocks.append(Paragraph(content=tuple(content)))


def _code_block(context: _ParseContext, token: Token) -> None:
    language: str | None = None
    if token.type == "fence":
        info = token.info.strip()
        language = info.split()[0] if info else None
    context.blocks.append(CodeBlock(language=language, content=token.content))


def _rule(context: _ParseContext, token: Token) -> None:
    context.blocks.append(Rule())


# Lists


def _list_open(context: _ParseContext, token: Token) -> None:
    _flush_item_spans(context)
    context.list_stack.append(_ListBuilder(ordered=token.type == "ordered_list_open"))


def _list_close(context: _ParseContext, token: Token) -> None:
    _flush_item_spans(context)
    if not context.list_stack:
        return
    finished = context.list_stack.pop().build()
    if context.list_stack:
        parent = context.list_stack[-1].current
        if parent is not None:
            parent.nested = finished
    else:
        context.blocks.append(ListBlock(list=finished))


def _item_open(context: _ParseContext, token: Token) -> None:
    if context.list_stack:
        context.list_stack[-1].items.append(_ItemBuilder())


def _item_close(context: _ParseContext, token: Token) -> None:
    _flush_item_spans(context)


def _flush_item_spans(context: _ParseContext) -> None:
    if not context.list_stack or not context.spans:
        return
    item = context.list_stack[-1].current
    if item is not None:
        item.content.extend(context.take_spans())


def _html_inline(context: _ParseContext, token: Token) -> None:
    # Only the task list plugin produces inline HTML while raw HTML is disabled.
    if "task-list-item-checkbox" not in token.content or not context.list_stack:
        return
    item = context.list_stack[-1].current
    if item is not None:
        item.checked = 'checked="checked"' in token.content


# Tables


def _table_open(context: _ParseContext, token: Token) -> None:
    context.in_table = True
    context.table_headers.clear()
    context.table_rows.clear()


def _table_close(context: _ParseContext, token: Token) -> None:
    context.in_table = False
    headers = tuple(context.table_headers)
    rows = tuple(context.table_rows)
    context.table_headers.clear()
    context.table_rows.clear()
    context.blocks.append(Table(headers=headers, rows=rows))


def _thead_open(context: _ParseContext, token: Token) -> None:
    context.in_table_head = True
    context.current_row.clear()


def _thead_close(context: _ParseContext, token: Token) -> None:
    context.in_table_head = False
    context.table_headers = list(context.current_row)
    context.current_row.clear()


def _row_open(context: _ParseContext, token: Token) -> None:
    context.current_row.clear()


def _row_close(context: _ParseContext, token: Token) -> None:
    if not context.in_table_head:
        context.table_rows.append(tuple(context.current_row))
        context.current_row.clear()


def _cell_open(context: _ParseContext, token: Token) -> None:
    context.spans.clear()


def _cell_close(context: _ParseContext, token: Token) -> None:
    context.current_row.append(tuple(context.take_spans()))


# Inline


def _text(context: _ParseContext, token: Token) -> None:
    text = token.content
    item = context.list_stack[-1].current if context.list_stack else None
    if item is not None and item.checked is not None and not item.content and not context.spans:
        # The task list plugin leaves the space that followed the checkbox.
        text = text.lstrip()
    if text:
        context.spans.append(Text(text))


def _code_inline(context: _ParseContext, token: Token) -> None:
    context.spans.append(Code(token.content))


def _group_open(context: _ParseContext, token: Token) -> None:
    context.open_group()


def _strong_close(context: _ParseContext, token: Token) -> None:
    context.close_group(lambda children: Bold(children))


def _em_close(context: _ParseContext, token: Token) -> None:
    context.close_group(lambda children: Italic(children))


def _link_open(context: _ParseContext, token: Token) -> None:
    href = str(token.attrGet("href") or "")
    if href.startswith("#"):
        # markdown-it percent-encodes hrefs; labels are matched verbatim.
        href = unquote(href)
    context.link_urls.append(href)
    context.open_group()


def _link_close(context: _ParseContext, token: Token) -> None:
    url = context.link_urls.pop() if context.link_urls else ""
    context.close_group(lambda children: Link(url=url, children=children))


def _image(context: _ParseContext, token: Token) -> None:
    if token.content:
        context.spans.append(Text(token.content))


def _softbreak(context: _ParseContext, token: Token) -> None:
    context.spans.append(Text(" "))


def _hardbreak(context: _ParseContext, token: Token) -> None:
    context.spans.append(LineBreak())


_HANDLERS: dict[str, Callable[[_ParseContext, Token], None]] = {
    "heading_open": _heading_open,
    "heading_close": _heading_close,
    "paragraph_close": _paragraph_close,
    "fence": _code_block,
    "code_block": _code_block,
    "hr": _rule,
    "bullet_list_open": _list_open,
    "ordered_list_open": _list_open,
    "bullet_list_close": _list_close,
    "ordered_list_close": _list_close,
    "list_item_open": _item_open,
    "list_item_close": _item_close,
    "html_inline": _html_inline,
    "table_open": _table_open,
    "table_close": _table_close,
    "thead_open": _thead_open,
    "thead_close": _thead_close,
    "tr_open": _row_open,
    "tr_close": _row_close,
    "th_open": _cell_open,
    "td_open": _cell_open,
    "th_close": _cell_close,
    "td_close": _cell_close,
    "text": _text,
    "code_inline": _code_inline,
    "strong_open": _group_open,
    "strong_close": _strong_close,
    "em_open": _group_open,
    "em_close": _em_close,
    "link_open": _link_open,
    "link_close": _link_close,
    "image": _image,
    "softbreak": _softbreak,
    "hardbreak": _hardbreak,
}


__all__ = ["PAGEBREAK_MARKER", "parse", "strip_frontmatter"]
