"""Document-local datasources declared with ``@<namespace>-data`` markers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Sequence

import orjson
import yaml

from livedoc.core.config import InlineDatasourceConfig
from livedoc.core.errors import InlineDatasourceError
from livedoc.datasources.base import Record
from livedoc.inline.formats import DEFAULT_STRIP_PATTERNS, parse_inline_content
from livedoc.inline.paths import get_root_name, resolve_dot_path, set_dot_path
from livedoc.markers.types import InlineDataDeclaration


@dataclass(slots=True)
class DefinitionLocation:
    """Where one property of an inline datasource was declared."""

    property_path: str
    start_line: int
    end_line: int
    format: str

    @property
    def content_start_line(self) -> int:
        return self.start_line + 1

    @property
    def content_end_line(self) -> int:
        return self.end_line - 1


@dataclass(slots=True)
class DefinitionMeta:
    """Location record with paths resolved for a particular target document."""

    property_path: str
    absolute_path: str
    relative_path: str
    start_line: int
    end_line: int
    content_start_line: int
    content_end_line: int
    format: str


def _sort_locations(locations: Iterable[DefinitionLocation]) -> list[DefinitionLocation]:
    # One record per property path; the last declaration in document order wins.
    by_path: dict[str, DefinitionLocation] = {}
    for loc in locations:
        by_path[loc.property_path] = loc
    return sorted(by_path.values(), key=lambda loc: (loc.property_path != "", loc.property_path))


class InlineDatasource:
    """Queryable value for one inline root name."""

    type = "inline"

    def __init__(
        self,
        root_name: str,
        data: Any,
        format: str,
        document_path: str,
        start_line: int = 0,
        end_line: int = 0,
        byte_size: int = 0,
        locations: Iterable[DefinitionLocation] = (),
    ) -> None:
        self.root_name = root_name
        self.data = data
        self.format = format
        self.document_path = document_path
        self.start_line = start_line
        self.end_line = end_line
        self.byte_size = byte_size
        self._locations = _sort_locations(locations)

    @property
    def locations(self) -> tuple[DefinitionLocation, ...]:
        return tuple(self._locations)

    async def query(self, sql: str = "", params: Sequence[Any] | None = None) -> list[Record]:
        return await self.get_all()

    async def get_all(self) -> list[Record]:
        if isinstance(self.data, list):
            return self.data
        return [self.data]

    async def close(self) -> None:
        return None

    def get_raw_data(self) -> Any:
        return self.data

    def get(self, dot_path: str) -> Any:
        return resolve_dot_path(self.data, dot_path)

    def is_object_type(self) -> bool:
        return isinstance(self.data, dict)

    def merge(self, dot_path: str, value: Any) -> None:
        if not self.is_object_type():
            raise InlineDatasourceError(f"Cannot merge into non-object inline datasource {self.root_name!r}")
        set_dot_path(self.data, dot_path, value)

    def get_meta(self, property_path: str = "", target_doc_path: str | Path | None = None) -> DefinitionMeta | None:
        for loc in self._locations:
            if loc.property_path == property_path:
                return self._build_meta(loc, target_doc_path)
        return None

    def get_all_meta(self, target_doc_path: str | Path | None = None) -> list[DefinitionMeta]:
        return [self._build_meta(loc, target_doc_path) for loc in self._locations]

    def _build_meta(self, loc: DefinitionLocation, target_doc_path: str | Path | None) -> DefinitionMeta:
        relative_path = self.document_path
        if target_doc_path is not None:
            target_dir = os.path.dirname(os.fspath(target_doc_path))
            relative_path = os.path.relpath(self.document_path, target_dir or os.curdir).replace("\\", "/")
            if not relative_path.startswith((".", "/")):
                relative_path = f"./{relative_path}"
        return DefinitionMeta(
            property_path=loc.property_path,
            absolute_path=self.document_path,
            relative_path=relative_path,
            start_line=loc.start_line,
            end_line=loc.end_line,
            content_start_line=loc.content_start_line,
            content_end_line=loc.content_end_line,
            format=loc.format,
        )

    def __repr__(self) -> str:
        return f"InlineDatasource(root_name={self.root_name!r}, format={self.format!r})"


def validate_declaration(declaration: InlineDataDeclaration, config: InlineDatasourceConfig) -> None:
    if declaration.byte_size > config.max_bytes:
        raise InlineDatasourceError(
            f'Inline datasource "{declaration.name}" exceeds max size '
            f"({declaration.byte_size} > {config.max_bytes} bytes)"
        )
    if declaration.format not in config.allowed_formats:
        raise InlineDatasourceError(
            f'Inline datasource "{declaration.name}" uses disallowed format "{declaration.format}"'
        )


def _decode(declaration: InlineDataDeclaration, config: InlineDatasourceConfig) -> Any:
    try:
        return parse_inline_content(
            declaration.raw_content,
            declaration.format,
            strip_code_fences=config.strip_code_fences,
            patterns=config.strip_patterns if config.strip_patterns is not None else DEFAULT_STRIP_PATTERNS,
        )
    except (yaml.YAMLError, orjson.JSONDecodeError) as exc:
        raise InlineDatasourceError(
            f'Inline datasource "{declaration.name}" (line {declaration.start_line}) '
            f"has invalid {declaration.format} content: {exc}"
        ) from exc


def build_inline_datasources(
    declarations: Sequence[InlineDataDeclaration],
    document_path: str,
    config: InlineDatasourceConfig | None = None,
) -> dict[str, InlineDatasource]:
    """Group declarations by root name and merge each group into one datasource.

    Every declaration is validated before anything is decoded, so one oversized
    or disallowed declaration fails the whole document.
    """
    config = config or InlineDatasourceConfig()
    by_root: dict[str, list[InlineDataDeclaration]] = {}
    for declaration in declarations:
        validate_declaration(declaration, config)
        by_root.setdefault(get_root_name(declaration.name), []).append(declaration)

    datasources: dict[str, InlineDatasource] = {}
    for root_name, items in by_root.items():
        data: Any = {}
        fmt = "yaml"
        start_line = end_line = byte_size = 0
        locations: list[DefinitionLocation] = []

        root_items = [item for item in items if item.name == root_name]
        if root_items:
            root_item = root_items[-1]
            data = _decode(root_item, config)
            fmt = root_item.format
            start_line, end_line, byte_size = root_item.start_line, root_item.end_line, root_item.byte_size
            locations.append(DefinitionLocation("", root_item.start_line, root_item.end_line, root_item.format))

        prefix = f"{root_name}."
        for item in items:
            if not item.name.startswith(prefix):
                continue
            sub_path = item.name[len(prefix) :]
            value = _decode(item, config)
            if not isinstance(data, (dict, list)):
                data = {}
            try:
                set_dot_path(data, sub_path, value)
            except ValueError as exc:
                raise InlineDatasourceError(f'Inline datasource "{item.name}": {exc}') from exc
            locations.append(DefinitionLocation(sub_path, item.start_line, item.end_line, item.format))
            if start_line == 0 or item.start_line < start_line:
                start_line = item.start_line
            end_line = max(end_line, item.end_line)
            byte_size += item.byte_size

        datasources[root_name] = InlineDatasource(
            root_name,
            data,
            fmt,
            document_path,
            start_line=start_line,
            end_line=end_line,
            byte_size=byte_size,
            locations=locations,
        )
    return datasources


__all__ = [
    "DefinitionLocation",
    "DefinitionMeta",
    "InlineDatasource",
    "build_inline_datasources",
    "validate_declaration",
]
