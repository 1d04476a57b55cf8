"""SQLite datasource."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Sequence

from livedoc.core.errors import DatasourceError
from livedoc.datasources.base import Record
from livedoc.db.sqlite import SQLiteDatabase


class SqliteDatasource:
    """Read-only SQL access; ``get_all`` runs the configured query."""

    type = "sqlite"

    def __init__(self, path: Path, query: str | None = None) -> None:
        self.path = path
        self.query_string = query
        self.db = SQLiteDatabase(path, read_only=True)

    async def query(self, sql: str, params: Sequence[Any] | None = None) -> list[Record]:
        try:
            return self.db.query(sql, params)
        except sqlite3.Error as exc:
            raise DatasourceError(f"SQLite query failed: {exc}") from exc

    async def get_all(self) -> list[Record]:
        if not self.query_string:
            raise DatasourceError("No query defined for this datasource. Use query() instead.")
        return await self.query(self.query_string)

    async def close(self) -> None:
        self.db.close()


__all__ = ["SqliteDatasource"]
