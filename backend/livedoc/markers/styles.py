"""Comment-style registry."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping

from livedoc.core.config import CommentStyle
from livedoc.core.errors import UnknownStyleError

DEFAULT_COMMENT_STYLES: dict[str, CommentStyle] = {
    "html": CommentStyle(start="<!--", end="-->"),
    "block": CommentStyle(start="/*", end="*/"),
    "line": CommentStyle(start="//", end=""),
    "hash": CommentStyle(start="#", end=""),
    "sql": CommentStyle(start="--", end=""),
}

_EXTENSION_STYLES = {
    "md": "html",
    "html": "html",
    "htm": "html",
    "xml": "html",
    "js": "block",
    "ts": "block",
    "jsx": "block",
    "tsx": "block",
    "css": "block",
    "java": "block",
    "c": "block",
    "cpp": "block",
    "h": "block",
    "hpp": "block",
    "go": "line",
    "py": "hash",
    "rb": "hash",
    "sh": "hash",
    "bash": "hash",
    "yaml": "hash",
    "yml": "hash",
    "sql": "sql",
}


def resolve_comment_style(
    style_name: str,
    custom_styles: Mapping[str, CommentStyle] | None = None,
) -> CommentStyle:
    """Look up ``style_name`` among the defaults overlaid with ``custom_styles``."""
    styles = {**DEFAULT_COMMENT_STYLES, **(custom_styles or {})}
    style = styles.get(style_name)
    if style is None:
        raise UnknownStyleError(style_name)
    return style


def guess_comment_style(path: str | Path) -> str:
    """Default style name for a file based on its extension."""
    ext = Path(path).suffix.lstrip(".").lower()
    return _EXTENSION_STYLES.get(ext, "html")


__all__ = ["DEFAULT_COMMENT_STYLES", "resolve_comment_style", "guess_comment_style"]
