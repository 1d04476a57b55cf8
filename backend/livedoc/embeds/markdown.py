"""Markdown snippets for embed authors."""

from __future__ import annotations

from typing import Any, Sequence

Cell = str | int | float | bool | None


def escape_cell(value: Any) -> str:
    """Escape pipes and newlines so a value fits in one table cell."""
    if value is None:
        return ""
    return str(value).replace("|", "\\|").replace("\n", "<br>")


class MarkdownHelper:
    """Stateless Markdown builders handed to every render call."""

    def table(self, headers: Sequence[str], rows: Sequence[Sequence[Cell]]) -> str:
        if not headers:
            return ""
        lines = [
            "| " + " | ".join(escape_cell(h) for h in headers) + " |",
            "| " + " | ".join("---" for _ in headers) + " |",
        ]
        for row in rows:
            cells = [escape_cell(row[idx] if idx < len(row) else None) for idx in range(len(headers))]
            lines.append("| " + " | ".join(cells) + " |")
        return "\n".join(lines)

    def list(self, items: Sequence[str], ordered: bool = False) -> str:
        return "\n".join(
            f"{idx + 1}. {item}" if ordered else f"- {item}" for idx, item in enumerate(items)
        )

    def code_block(self, code: str, language: str = "") -> str:
        return f"```{language}\n{code}\n```"

    def link(self, text: str, url: str) -> str:
        return f"[{text}]({url})"

    def heading(self, text: str, level: int = 1) -> str:
        return f"{'#' * min(max(level, 1), 6)} {text}"

    def bold(self, text: str) -> str:
        return f"**{text}**"

    def italic(self, text: str) -> str:
        return f"*{text}*"

    def checkbox(self, checked: bool) -> str:
        return "✔" if checked else ""


__all__ = ["MarkdownHelper", "escape_cell"]
