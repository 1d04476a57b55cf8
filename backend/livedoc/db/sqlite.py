"""sqlite3 access used by the sqlite datasource."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Iterable, Sequence

Row = dict[str, Any]


class SQLiteDatabase:
    """Lazily opened connection that hands rows back as plain dicts.

    Read-only handles go through a ``mode=ro`` URI, so a missing file is an
    error rather than a fresh empty database, and ``query_only`` blocks writes.
    Access is serialized by the build loop, which may close the handle from a
    different thread than the one that opened it.
    """

    def __init__(self, db_path: Path, read_only: bool = True) -> None:
        self.db_path = db_path.expanduser()
        self.read_only = read_only
        self._connection: sqlite3.Connection | None = None

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    def connect(self) -> sqlite3.Connection:
        if self._connection is None:
            self._connection = self._open()
        return self._connection

    def _open(self) -> sqlite3.Connection:
        if self.read_only:
            uri = f"{self.db_path.resolve().as_uri()}?mode=ro"
            connection = sqlite3.connect(uri, uri=True, check_same_thread=False)
            connection.execute("PRAGMA query_only=ON;")
        else:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            connection = sqlite3.connect(self.db_path, check_same_thread=False)
            connection.execute("PRAGMA foreign_keys=ON;")
        connection.row_factory = sqlite3.Row
        return connection

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def __enter__(self) -> "SQLiteDatabase":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._connection is not None and not self.read_only:
            if exc_type is None:
                self._connection.commit()
            else:
                self._connection.rollback()
        self.close()

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> sqlite3.Cursor:
        return self.connect().execute(sql, list(params or []))

    def executemany(self, sql: str, rows: Iterable[Sequence[Any]]) -> sqlite3.Cursor:
        return self.connect().executemany(sql, rows)

    def executescript(self, script: str) -> None:
        self.connect().executescript(script)

    def query(self, sql: str, params: Sequence[Any] | None = None) -> list[Row]:
        return [dict(row) for row in self.execute(sql, params).fetchall()]


__all__ = ["Row", "SQLiteDatabase"]
