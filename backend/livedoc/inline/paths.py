"""Dot-path helpers: ``author.repos[0].name`` -> ``["author", "repos", 0, "name"]``."""

from __future__ import annotations

import re
from typing import Any

_INDEX_RE = re.compile(r"\[(\d+)\]")

PathSegment = str | int


def parse_dot_path(path: str) -> list[PathSegment]:
    segments: list[PathSegment] = []
    for part in _INDEX_RE.sub(r".\1", path).split("."):
        if not part:
            continue
        segments.append(int(part) if part.isdigit() else part)
    return segments


def get_root_name(path: str) -> str:
    """``project.author.name`` -> ``project``."""
    return path.split(".", 1)[0]


def resolve_dot_path(obj: Any, path: str) -> Any:
    """Walk ``path`` through nested dicts/lists; ``None`` when any step is missing."""
    current = obj
    for segment in parse_dot_path(path):
        if isinstance(current, dict):
            current = current.get(segment if isinstance(segment, str) else str(segment))
        elif isinstance(current, list) and isinstance(segment, int):
            current = current[segment] if segment < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


def set_dot_path(obj: dict[str, Any] | list[Any], path: str, value: Any) -> None:
    """Assign ``value`` at ``path``, creating intermediate containers on demand.

    A missing (or scalar) intermediate becomes a list when the following segment
    is numeric and a dict otherwise. Later assignments to the same path replace
    earlier ones.
    """
    segments = parse_dot_path(path)
    if not segments:
        return
    current: Any = obj
    for segment, next_segment in zip(segments, segments[1:]):
        existing = _get_child(current, segment)
        if not isinstance(existing, (dict, list)):
            existing = [] if isinstance(next_segment, int) else {}
            _set_child(current, segment, existing, path)
        current = existing
    _set_child(current, segments[-1], value, path)


def _get_child(container: Any, segment: PathSegment) -> Any:
    if isinstance(container, dict):
        return container.get(segment if isinstance(segment, str) else str(segment))
    if isinstance(segment, int) and segment < len(container):
        return container[segment]
    return None


def _set_child(container: Any, segment: PathSegment, value: Any, path: str) -> None:
    if isinstance(container, dict):
        container[segment if isinstance(segment, str) else str(segment)] = value
        return
    if not isinstance(segment, int):
        raise ValueError(f"Cannot set key {segment!r} on a list while assigning {path!r}")
    if segment >= len(container):
        container.extend([None] * (segment + 1 - len(container)))
    container[segment] = value


__all__ = ["parse_dot_path", "get_root_name", "resolve_dot_path", "set_dot_path"]
