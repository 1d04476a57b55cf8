"""Render capabilities ("embeds") and the registry that owns them."""

from __future__ import annotations

import importlib
import importlib.util
import inspect
import sys
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable

from livedoc.core.errors import EmbedLoadError
from livedoc.core.logging import get_logger
from livedoc.embeds.markdown import MarkdownHelper
from livedoc.utils.ids import fresh_module_name

logger = get_logger(__name__)

EMBED_FILE_SUFFIX = ".py"


@dataclass(slots=True)
class EmbedContext:
    """Everything a render call may look at."""

    params: dict[str, str]
    frontmatter: dict[str, Any]
    datasources: Mapping[str, Any]
    markdown: MarkdownHelper
    file_path: str
    existing_content: str = ""


@dataclass(slots=True)
class EmbedResult:
    """Replacement text for one marker; ``None`` keeps the existing content."""

    content: str | None


RenderFn = Callable[[EmbedContext], "Awaitable[Any] | Any"]


@dataclass(slots=True)
class EmbedDefinition:
    render_fn: RenderFn
    depends_on: list[str] = field(default_factory=list)
    name: str | None = None

    async def render(self, ctx: EmbedContext) -> EmbedResult:
        result = self.render_fn(ctx)
        if inspect.isawaitable(result):
            result = await result
        return _coerce_result(result)


def _coerce_result(result: Any) -> EmbedResult:
    if isinstance(result, EmbedResult):
        return result
    if result is None or isinstance(result, str):
        return EmbedResult(content=result)
    if isinstance(result, Mapping):
        return EmbedResult(content=result.get("content"))
    raise TypeError(f"Embed returned unsupported result type {type(result).__name__}")


def define_embed(
    render: RenderFn | None = None,
    *,
    depends_on: list[str] | tuple[str, ...] | None = None,
    name: str | None = None,
) -> Any:
    """Wrap a render function as an :class:`EmbedDefinition`.

    Usable bare (``@define_embed``) or with options
    (``@define_embed(depends_on=["metadata_db"])``).
    """

    def wrap(fn: RenderFn) -> EmbedDefinition:
        return EmbedDefinition(
            render_fn=fn,
            depends_on=list(depends_on or []),
            name=name or getattr(fn, "__name__", None),
        )

    if render is not None:
        return wrap(render)
    return wrap


class EmbedRegistry(Mapping[str, EmbedDefinition]):
    """Name -> embed mapping.

    Registries are never mutated after construction; reloading builds a new one.
    """

    def __init__(self, embeds: Mapping[str, EmbedDefinition] | None = None) -> None:
        self._embeds: dict[str, EmbedDefinition] = dict(embeds or {})

    def __getitem__(self, name: str) -> EmbedDefinition:
        return self._embeds[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._embeds)

    def __len__(self) -> int:
        return len(self._embeds)

    @classmethod
    def load(cls, embeds_dir: Path) -> "EmbedRegistry":
        """Import the embeds package at ``embeds_dir`` under a fresh module name."""
        index = embeds_dir / "__init__.py"
        if not index.is_file():
            logger.warning("No embeds found in %s (expected __init__.py)", embeds_dir)
            return cls()

        importlib.invalidate_caches()
        module_name = fresh_module_name()
        spec = importlib.util.spec_from_file_location(
            module_name, index, submodule_search_locations=[str(embeds_dir)]
        )
        if spec is None or spec.loader is None:
            raise EmbedLoadError(f"Cannot import embeds package at {embeds_dir}")
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as exc:
            raise EmbedLoadError(f"Could not load embeds from {embeds_dir}: {exc}") from exc
        finally:
            for loaded in [key for key in sys.modules if key == module_name or key.startswith(f"{module_name}.")]:
                del sys.modules[loaded]

        registry = cls(_collect_embeds(module))
        logger.debug("Loaded %d embed(s) from %s", len(registry), embeds_dir)
        return registry


def _collect_embeds(module: Any) -> dict[str, EmbedDefinition]:
    declared = getattr(module, "embeds", None)
    if isinstance(declared, Mapping):
        return {str(key): value for key, value in declared.items() if isinstance(value, EmbedDefinition)}
    return {
        attr: value
        for attr, value in vars(module).items()
        if isinstance(value, EmbedDefinition) and not attr.startswith("_")
    }


__all__ = [
    "EMBED_FILE_SUFFIX",
    "EmbedContext",
    "EmbedDefinition",
    "EmbedRegistry",
    "EmbedResult",
    "define_embed",
]
