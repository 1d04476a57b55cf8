"""Text processing helpers."""

from __future__ import annotations

import re

_CAMEL_BOUNDARY_RE = re.compile(r"([A-Z])")


def camel_to_snake(name: str) -> str:
    """``tableColumns`` -> ``table_columns``."""
    return _CAMEL_BOUNDARY_RE.sub(r"_\1", name).lower().removeprefix("_")


def line_number_at(text: str, index: int) -> int:
    """1-based line number of ``index`` within ``text``."""
    return text.count("\n", 0, index) + 1
