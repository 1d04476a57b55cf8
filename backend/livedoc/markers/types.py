"""Structures produced by the marker and inline-data parsers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class Marker:
    """One located in-place directive.

    ``start_index``/``end_index`` are offsets into the document body (frontmatter
    excluded) spanning the whole region including both delimiter lines.
    ``existing_content`` is the text strictly between the two delimiters.
    """

    template_name: str
    params: dict[str, str]
    existing_content: str
    start_index: int
    end_index: int
    start_marker_line: str
    end_marker_line: str
    start_line: int = 0
    end_line: int = 0

    @property
    def is_inline(self) -> bool:
        return self.params.get("inline") == "true"


@dataclass(slots=True)
class InlineDataDeclaration:
    """One ``@<namespace>-data:<dotted.name>`` block."""

    name: str
    format: str
    raw_content: str
    start_line: int
    end_line: int
    byte_size: int

    @property
    def root_name(self) -> str:
        return self.name.split(".", 1)[0]


@dataclass(slots=True)
class ParsedFrontmatter:
    """Frontmatter split from a document body."""

    data: dict[str, Any] = field(default_factory=dict)
    body: str = ""
    raw: str = ""

    @property
    def line_offset(self) -> int:
        return self.raw.count("\n")


__all__ = ["Marker", "InlineDataDeclaration", "ParsedFrontmatter"]
