"""File-backed datasources: CSV, JSON, YAML and glob listings."""

from __future__ import annotations

import csv
import glob
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import orjson
import yaml

from livedoc.core.errors import DatasourceError
from livedoc.datasources.base import Record, RecordsDatasource


class CsvDatasource(RecordsDatasource):
    type = "csv"

    def __init__(self, path: Path, encoding: str = "utf-8") -> None:
        super().__init__()
        self.path = path
        self.encoding = encoding

    def _load(self) -> list[Record]:
        with self.path.open("r", encoding=self.encoding, newline="") as fh:
            reader = csv.DictReader(fh, skipinitialspace=True)
            records: list[Record] = []
            for row in reader:
                if not any((value or "").strip() for value in row.values()):
                    continue
                records.append({key.strip(): (value or "").strip() for key, value in row.items() if key is not None})
        return records


def _as_records(parsed: Any, path: Path) -> list[Record]:
    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, dict):
        return [parsed]
    raise DatasourceError(f"{path} must contain an array or object")


class JsonDatasource(RecordsDatasource):
    type = "json"

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = path

    def _load(self) -> list[Record]:
        try:
            parsed = orjson.loads(self.path.read_bytes())
        except orjson.JSONDecodeError as exc:
            raise DatasourceError(f"Invalid JSON in {self.path}: {exc}") from exc
        return _as_records(parsed, self.path)


class YamlDatasource(RecordsDatasource):
    type = "yaml"

    def __init__(self, path: Path, encoding: str = "utf-8") -> None:
        super().__init__()
        self.path = path
        self.encoding = encoding

    def _load(self) -> list[Record]:
        try:
            parsed = yaml.safe_load(self.path.read_text(encoding=self.encoding))
        except yaml.YAMLError as exc:
            raise DatasourceError(f"Invalid YAML in {self.path}: {exc}") from exc
        return _as_records(parsed, self.path)


class GlobDatasource(RecordsDatasource):
    """One record per file matching ``pattern``."""

    type = "glob"

    def __init__(self, pattern: str, root_dir: Path) -> None:
        super().__init__()
        self.pattern = pattern
        self.root_dir = root_dir

    def _load(self) -> list[Record]:
        records: list[Record] = []
        for match in sorted(glob.glob(self.pattern, root_dir=self.root_dir, recursive=True)):
            file_path = self.root_dir / match
            if not file_path.is_file():
                continue
            try:
                stat = file_path.stat()
            except OSError:
                continue
            records.append(
                {
                    "path": Path(match).as_posix(),
                    "name": file_path.name,
                    "basename": file_path.stem,
                    "ext": file_path.suffix.lstrip("."),
                    "dir": Path(match).parent.as_posix(),
                    "size": stat.st_size,
                    "mtime": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
                }
            )
        return records


__all__ = ["CsvDatasource", "GlobDatasource", "JsonDatasource", "YamlDatasource"]
