"""Datasource contract shared by external adapters and inline datasources."""

from __future__ import annotations

import re
from typing import Any, Protocol, Sequence, runtime_checkable

Record = dict[str, Any]

_WHERE_EQ_RE = re.compile(r"WHERE\s+(\w+)\s*=\s*\?", re.IGNORECASE)


@runtime_checkable
class Datasource(Protocol):
    """Uniform three-method contract regardless of backing store."""

    type: str

    async def query(self, sql: str, params: Sequence[Any] | None = None) -> list[Record]: ...

    async def get_all(self) -> list[Record]: ...

    async def close(self) -> None: ...


class RecordsDatasource:
    """Base for adapters that load every record up front and filter in memory.

    Only ``... WHERE column = ?`` with the first positional parameter is
    understood; any other query returns all records.
    """

    type = "records"

    def __init__(self) -> None:
        self._records: list[Record] | None = None

    def _load(self) -> list[Record]:  # pragma: no cover - interface
        raise NotImplementedError

    def _records_cached(self) -> list[Record]:
        if self._records is None:
            self._records = self._load()
        return self._records

    async def query(self, sql: str, params: Sequence[Any] | None = None) -> list[Record]:
        records = self._records_cached()
        match = _WHERE_EQ_RE.search(sql)
        if match and params:
            column, value = match.group(1), params[0]
            return [row for row in records if row.get(column) == value or str(row.get(column)) == str(value)]
        return records

    async def get_all(self) -> list[Record]:
        return self._records_cached()

    async def close(self) -> None:
        self._records = None


__all__ = ["Datasource", "Record", "RecordsDatasource"]
