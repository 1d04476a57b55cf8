"""External datasources and their factory."""

from __future__ import annotations

from typing import Mapping

from livedoc.core.config import DatasourceConfig, Settings
from livedoc.core.errors import ConfigError
from livedoc.datasources.base import Datasource, Record, RecordsDatasource
from livedoc.datasources.files import CsvDatasource, GlobDatasource, JsonDatasource, YamlDatasource
from livedoc.datasources.sqlite import SqliteDatasource


def create_datasource(name: str, config: DatasourceConfig, settings: Settings) -> Datasource:
    """Build the adapter for one configured datasource."""
    if config.type == "glob":
        if not config.pattern:
            raise ConfigError(f'Glob datasource "{name}" requires "pattern" configuration')
        return GlobDatasource(config.pattern, settings.root_dir)

    if not config.path:
        raise ConfigError(f'{config.type} datasource "{name}" requires "path" configuration')
    path = settings.resolve_path(config.path)
    if config.type == "sqlite":
        return SqliteDatasource(path, query=config.query)
    if config.type == "csv":
        return CsvDatasource(path, encoding=config.encoding)
    if config.type == "json":
        return JsonDatasource(path)
    if config.type == "yaml":
        return YamlDatasource(path, encoding=config.encoding)
    raise ConfigError(f"Unknown datasource type: {config.type}")


def initialize_datasources(settings: Settings) -> dict[str, Datasource]:
    return {name: create_datasource(name, config, settings) for name, config in settings.datasources.items()}


async def close_datasources(datasources: Mapping[str, Datasource]) -> None:
    for datasource in datasources.values():
        await datasource.close()


__all__ = [
    "CsvDatasource",
    "Datasource",
    "GlobDatasource",
    "JsonDatasource",
    "Record",
    "RecordsDatasource",
    "SqliteDatasource",
    "YamlDatasource",
    "close_datasources",
    "create_datasource",
    "initialize_datasources",
]
