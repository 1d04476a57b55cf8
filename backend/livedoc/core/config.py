"""Configuration handling for livedoc."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Mapping

import orjson
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from livedoc.core.errors import ConfigError

ENV_PREFIX = "LIVEDOC_"
DEFAULT_CONFIG_PATH = Path("livedoc.config.yaml")

DEFAULT_INLINE_FORMATS = ["yaml", "json", "csv", "table", "text"]

ConflictPolicy = Literal["warn", "error", "prefer_external"]
DatasourceType = Literal["sqlite", "csv", "json", "yaml", "glob"]


class CommentStyle(BaseModel):
    """Start/end delimiter pair; an empty end means the marker ends at end-of-line."""

    start: str
    end: str = ""

    model_config = ConfigDict(frozen=True)


class TargetConfig(BaseModel):
    pattern: str
    comment_style: str = "html"
    exclude: list[str] = Field(default_factory=list)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DatasourceConfig(BaseModel):
    type: DatasourceType
    path: str | None = None
    pattern: str | None = None
    query: str | None = None
    encoding: str = "utf-8"

    model_config = {"extra": "ignore"}


class OutputConfig(BaseModel):
    encoding: str = "utf-8"
    line_ending: Literal["lf", "crlf"] = "lf"

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class InlineDatasourceConfig(BaseModel):
    """Tuning for document-local datasources."""

    enabled: bool = True
    max_bytes: int = 10240
    allowed_formats: list[str] = Field(default_factory=lambda: list(DEFAULT_INLINE_FORMATS))
    conflict_policy: ConflictPolicy = "warn"
    strip_code_fences: bool = True
    strip_patterns: list[str] | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class Settings(BaseModel):
    """Runtime configuration loaded from a YAML/JSON file and environment variables."""

    version: str = "1.0"
    namespace: str = "livedoc"
    root_dir: Path = Field(default_factory=Path.cwd)
    targets: list[TargetConfig] = Field(default_factory=list)
    comment_styles: dict[str, CommentStyle] = Field(default_factory=dict)
    datasources: dict[str, DatasourceConfig] = Field(default_factory=dict)
    embeds_dir: str = "./embeds"
    output: OutputConfig = Field(default_factory=OutputConfig)
    inline_datasource: InlineDatasourceConfig = Field(default_factory=InlineDatasourceConfig)
    debounce_ms: int = 200

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @field_validator("root_dir", mode="before")
    @classmethod
    def _expand_root_dir(cls, value: Any) -> Path:
        if isinstance(value, Path):
            return value.expanduser().resolve()
        if isinstance(value, str):
            return Path(value).expanduser().resolve()
        raise TypeError("root_dir must be a path or string")

    def resolve_path(self, value: str | os.PathLike[str]) -> Path:
        """Resolve a config-relative path against ``root_dir``."""
        path = Path(value).expanduser()
        if not path.is_absolute():
            path = self.root_dir / path
        return Path(os.path.normpath(path))

    @property
    def embeds_path(self) -> Path:
        return self.resolve_path(self.embeds_dir)

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        """Load YAML (or JSON) config and overlay env vars; fall back to defaults."""
        config_path = cls._resolve_config_path(path)
        data: dict[str, Any] = {}
        if config_path is not None:
            if not config_path.exists():
                raise ConfigError(f"Config file not found: {config_path}")
            data.update(_read_config_file(config_path))
            data.setdefault("root_dir", str(config_path.resolve().parent))
        data.update(_load_env_overrides())
        try:
            return cls(**data)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc

    @staticmethod
    def _resolve_config_path(path: Path | None) -> Path | None:
        if path is not None:
            return path.expanduser()
        env_path = os.environ.get(f"{ENV_PREFIX}CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        return DEFAULT_CONFIG_PATH if DEFAULT_CONFIG_PATH.exists() else None


def _read_config_file(config_path: Path) -> dict[str, Any]:
    try:
        raw_text = config_path.read_text(encoding="utf-8")
        if config_path.suffix.lower() == ".json":
            raw = orjson.loads(raw_text)
        else:
            raw = yaml.safe_load(raw_text)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise ConfigError(f"Could not read config {config_path}: {exc}") from exc
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ConfigError(f"Config {config_path} must contain a mapping")
    return dict(raw)


def _load_env_overrides() -> dict[str, Any]:
    """Map environment variables with LIVEDOC_ prefix onto scalar Settings fields."""
    scalar_fields = {"version", "namespace", "root_dir", "embeds_dir", "debounce_ms"}
    overrides: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in scalar_fields:
            overrides[field_name] = value
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor for the CLI."""
    return Settings.from_yaml()


__all__ = [
    "CommentStyle",
    "ConflictPolicy",
    "DatasourceConfig",
    "InlineDatasourceConfig",
    "OutputConfig",
    "Settings",
    "TargetConfig",
    "get_settings",
]
