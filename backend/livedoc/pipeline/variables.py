"""``${...}`` substitution in marker attributes."""

from __future__ import annotations

import re
from typing import Any, Mapping

from livedoc.inline.datasource import InlineDatasource
from livedoc.inline.paths import parse_dot_path, resolve_dot_path

VARIABLE_RE = re.compile(r"\$\{(\w+(?:\.\w+|\[\d+\])*)\}")


def _stringify(value: Any) -> str:
    return "" if value is None else str(value)


def resolve_variable(
    path: str,
    frontmatter: Mapping[str, Any],
    inline_datasources: Mapping[str, InlineDatasource] | None = None,
) -> str:
    """Resolve one variable path; unresolvable paths yield an empty string.

    A path whose first segment names an inline datasource is resolved against
    that datasource's data, anything else against the frontmatter.
    """
    segments = parse_dot_path(path)
    if not segments:
        return ""
    inline = (inline_datasources or {}).get(str(segments[0]))
    if inline is not None:
        rest = path[len(str(segments[0])) :].lstrip(".")
        if not rest:
            return _stringify(inline.data)
        return _stringify(resolve_dot_path(inline.data, rest))
    return _stringify(resolve_dot_path(dict(frontmatter), path))


def resolve_variables(
    params: Mapping[str, str],
    frontmatter: Mapping[str, Any],
    inline_datasources: Mapping[str, InlineDatasource] | None = None,
) -> dict[str, str]:
    """Return a copy of ``params`` with every ``${path}`` substituted."""
    return {
        key: VARIABLE_RE.sub(
            lambda match: resolve_variable(match.group(1), frontmatter, inline_datasources),
            value,
        )
        for key, value in params.items()
    }


__all__ = ["VARIABLE_RE", "resolve_variable", "resolve_variables"]
