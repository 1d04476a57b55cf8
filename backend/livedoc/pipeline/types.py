"""Result structures for build passes."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(slots=True)
class ProcessResult:
    """Outcome for a single document."""

    path: Path
    success: bool = True
    markers_updated: int = 0
    changed: bool = False
    error: BaseException | None = None

    @property
    def error_message(self) -> str | None:
        return str(self.error) if self.error is not None else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": str(self.path),
            "success": self.success,
            "markers_updated": self.markers_updated,
            "changed": self.changed,
            "error": self.error_message,
        }


@dataclass(slots=True)
class BuildStats:
    """Aggregated build statistics."""

    total_files: int = 0
    success_files: int = 0
    failed_files: int = 0
    changed_files: int = 0
    markers_updated: int = 0

    def add(self, result: ProcessResult) -> None:
        self.total_files += 1
        if result.success:
            self.success_files += 1
        else:
            self.failed_files += 1
        if result.changed:
            self.changed_files += 1
        self.markers_updated += result.markers_updated

    def to_dict(self) -> dict[str, int]:
        return {
            "total_files": self.total_files,
            "success_files": self.success_files,
            "failed_files": self.failed_files,
            "changed_files": self.changed_files,
            "markers_updated": self.markers_updated,
        }


@dataclass(slots=True)
class BuildResult:
    stats: BuildStats = field(default_factory=BuildStats)
    results: list[ProcessResult] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.stats.failed_files == 0

    @property
    def failures(self) -> list[ProcessResult]:
        return [result for result in self.results if not result.success]

    def to_dict(self) -> dict[str, object]:
        return {
            "stats": self.stats.to_dict(),
            "duration_ms": self.duration_ms,
            "results": [result.to_dict() for result in self.results],
        }


__all__ = ["BuildResult", "BuildStats", "ProcessResult"]
