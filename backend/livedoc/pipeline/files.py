"""Target file discovery."""

from __future__ import annotations

import fnmatch
import glob
import os
from pathlib import Path
from typing import Iterable, Iterator

from livedoc.core.config import Settings, TargetConfig


def expand_patterns(pattern: str) -> list[str]:
    """Expand one ``{a,b}`` brace group: ``**/*.{md,txt}`` -> ``**/*.md``, ``**/*.txt``."""
    if "{" in pattern and "}" in pattern:
        prefix = pattern[: pattern.index("{")]
        suffix = pattern[pattern.index("}") + 1 :]
        options = pattern[pattern.index("{") + 1 : pattern.index("}")].split(",")
        return [f"{prefix}{option.strip()}{suffix}" for option in options]
    return [pattern]


def _normalize(pattern: str) -> str:
    return pattern[2:] if pattern.startswith("./") else pattern


def is_excluded(path: Path, root_dir: Path, exclude: Iterable[str]) -> bool:
    candidates = [path.as_posix()]
    try:
        candidates.append(path.relative_to(root_dir).as_posix())
    except ValueError:
        pass
    for raw in exclude:
        for pattern in expand_patterns(_normalize(raw)):
            if any(fnmatch.fnmatch(candidate, pattern) for candidate in candidates):
                return True
    return False


def iter_target_files(target: TargetConfig, settings: Settings) -> Iterator[Path]:
    """Absolute paths of files matching ``target``, minus its exclusions, sorted."""
    root_dir = settings.root_dir
    found: set[Path] = set()
    for pattern in expand_patterns(_normalize(target.pattern)):
        if os.path.isabs(pattern):
            matches = glob.glob(pattern, recursive=True)
        else:
            matches = [os.path.join(root_dir, match) for match in glob.glob(pattern, root_dir=root_dir, recursive=True)]
        for match in matches:
            path = Path(os.path.normpath(match))
            if path.is_file() and not is_excluded(path, root_dir, target.exclude):
                found.add(path)
    yield from sorted(found)


def matches_target(path: Path, target: TargetConfig, settings: Settings) -> bool:
    return path in set(iter_target_files(target, settings))


__all__ = ["expand_patterns", "is_excluded", "iter_target_files", "matches_target"]
