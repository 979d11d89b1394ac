"""Document model produced by the parser and consumed by the Typst emitter."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True, slots=True)
class Text:
    text: str


@dataclass(frozen=True, slots=True)
class Bold:
    children: tuple[Span, ...] = ()


@dataclass(frozen=True, slots=True)
class Italic:
    children: tuple[Span, ...] = ()


@dataclass(frozen=True, slots=True)
class Code:
    text: str


@dataclass(frozen=True, slots=True)
class Link:
    url: str
    children: tuple[Span, ...] = ()


@dataclass(frozen=True, slots=True)
class LineBreak:
    pass


Span = Union[Text, Bold, Italic, Code, Link, LineBreak]


@dataclass(frozen=True, slots=True)
class ListItem:
    """A list entry; ``checked`` is None for plain items, a bool for task items."""

    content: tuple[Span, ...] = ()
    nested: List | None = None
    checked: bool | None = None


@dataclass(frozen=True, slots=True)
class List:
    ordered: bool
    items: tuple[ListItem, ...] = ()


@dataclass(frozen=True, slots=True)
class Heading:
    level: int
    content: tuple[Span, ...] = ()

    def __post_init__(self) -> None:
        if not 1 <= self.level <= 6:
            raise ValueError(f"Heading level must be within 1..6, got {self.level}")


@dataclass(frozen=True, slots=True)
class Paragraph:
    content: tuple[Span, ...] = ()


@dataclass(frozen=True, slots=True)
class CodeBlock:
    language: str | None
    content: str


@dataclass(frozen=True, slots=True)
class ListBlock:
    list: List


@dataclass(frozen=True, slots=True)
class Table:
    """Rows are not required to match the header width."""

    headers: tuple[tuple[Span, ...], ...] = ()
    rows: tuple[tuple[tuple[Span, ...], ...], ...] = ()


@dataclass(frozen=True, slots=True)
class Rule:
    pass


@dataclass(frozen=True, slots=True)
class PageBreak:
    pass


Block = Union[Heading, Paragraph, CodeBlock, ListBlock, Table, Rule, PageBreak]


def span_text(span: Span) -> str:
    """Return the plain text of *span*; line breaks become a single space."""

    if isinstance(span, (Text, Code)):
        return span.text
    if isinstance(span, (Bold, Italic, Link)):
        return "".join(span_text(child) for child in span.children)
    if isinstance(span, LineBreak):
        return " "
    raise TypeError(f"Unsupported span: {span!r}")


def spans_text(spans: tuple[Span, ...]) -> str:
    return "".join(span_text(span) for span in spans)


def span_char_count(span: Span) -> int:
    if isinstance(span, (Text, Code)):
        return len(span.text)
    if isinstance(span, (Bold, Italic, Link)):
        return sum(span_char_count(child) for child in span.children)
    if isinstance(span, LineBreak):
        return 1
    raise TypeError(f"Unsupported span: {span!r}")


def count_list_items(items: List) -> int:
    """Count items including every nested list, regardless of depth."""

    count = len(items.items)
    for item in items.items:
        if item.nested is not None:
            count += count_list_items(item.nested)
    return count


__all__ = [
    "Block",
    "Bold",
    "Code",
    "CodeBlock",
    "Heading",
    "Italic",
    "LineBreak",
    "Link",
    "List",
    "ListBlock",
    "ListItem",
    "PageBreak",
    "Paragraph",
    "Rule",
    "Span",
    "Table",
    "Text",
    "count_list_items",
    "span_char_count",
    "span_text",
    "spans_text",
]
