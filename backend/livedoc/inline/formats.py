"""Decoding of inline-data content by declared format."""

from __future__ import annotations

import re
from typing import Any, Sequence

import orjson
import yaml

DEFAULT_STRIP_PATTERNS: tuple[str, ...] = (
    r"^```\w*\s*\n?",
    r"\n?```\s*$",
)

_TABLE_SEPARATOR_RE = re.compile(r"^\|[-:| ]+\|$")


def strip_patterns(content: str, patterns: Sequence[str]) -> str:
    """Trim, remove the first match of each pattern in order, trim again."""
    result = content.strip()
    for pattern in patterns:
        result = re.sub(pattern, "", result, count=1)
    return result.strip()


def parse_inline_content(
    content: str,
    fmt: str,
    strip_code_fences: bool = True,
    patterns: Sequence[str] | None = None,
) -> Any:
    """Decode ``content`` per ``fmt``; unknown formats fall through to text."""
    processed = content
    if strip_code_fences:
        processed = strip_patterns(processed, patterns if patterns is not None else DEFAULT_STRIP_PATTERNS)
    trimmed = processed.strip()

    if fmt == "yaml":
        data = yaml.safe_load(trimmed)
        return {} if data is None else data
    if fmt == "json":
        return orjson.loads(trimmed) if trimmed else {}
    if fmt == "csv":
        return parse_csv(trimmed)
    if fmt == "table":
        return parse_markdown_table(trimmed)
    return trimmed


def parse_csv(content: str) -> list[dict[str, str]]:
    """First non-blank line is the header; values are zipped against it."""
    lines = [line for line in content.split("\n") if line.strip()]
    if not lines:
        return []
    headers = [header.strip() for header in lines[0].split(",")]
    rows: list[dict[str, str]] = []
    for line in lines[1:]:
        values = [value.strip() for value in line.split(",")]
        rows.append({header: values[idx] if idx < len(values) else "" for idx, header in enumerate(headers)})
    return rows


def parse_markdown_table(content: str) -> list[dict[str, str]]:
    lines = [
        line.strip()
        for line in content.split("\n")
        if line.strip() and not _TABLE_SEPARATOR_RE.match(line.strip())
    ]
    if not lines:
        return []
    headers = [cell.strip() for cell in lines[0].split("|") if cell.strip()]
    rows: list[dict[str, str]] = []
    for line in lines[1:]:
        cells = [cell.strip() for cell in line.split("|")]
        # boundary pipes leave an empty first and last cell
        if line.startswith("|"):
            cells = cells[1:-1]
        rows.append({header: cells[idx] if idx < len(cells) else "" for idx, header in enumerate(headers)})
    return rows


__all__ = [
    "DEFAULT_STRIP_PATTERNS",
    "parse_csv",
    "parse_inline_content",
    "parse_markdown_table",
    "strip_patterns",
]
