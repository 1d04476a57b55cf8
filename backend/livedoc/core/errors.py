"""Error taxonomy for livedoc."""

from __future__ import annotations


class LivedocError(Exception):
    """Base class for all livedoc errors."""


class ConfigError(LivedocError):
    """Invalid or unreadable configuration; fatal to the whole run."""


class UnknownStyleError(ConfigError):
    """A target references a comment style that is not defined."""

    def __init__(self, style_name: str) -> None:
        super().__init__(f"Unknown comment style: {style_name}")
        self.style_name = style_name


class InlineDatasourceError(LivedocError):
    """An inline-data declaration could not be accepted; fatal to its document."""


class DatasourceConflictError(InlineDatasourceError):
    """Inline datasource name collides with an external one under the error policy."""


class DatasourceError(LivedocError):
    """A datasource could not be loaded or queried."""


class EmbedLoadError(LivedocError):
    """The embeds package could not be imported."""


__all__ = [
    "LivedocError",
    "ConfigError",
    "UnknownStyleError",
    "InlineDatasourceError",
    "DatasourceConflictError",
    "DatasourceError",
    "EmbedLoadError",
]
