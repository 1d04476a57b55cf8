"""Watch mode: debounced filesystem events driving incremental rebuilds."""

from __future__ import annotations

import asyncio
import os
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEvent, PatternMatchingEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from livedoc.core.config import Settings
from livedoc.core.errors import EmbedLoadError
from livedoc.core.logging import get_logger
from livedoc.datasources import close_datasources, initialize_datasources
from livedoc.datasources.base import Datasource
from livedoc.embeds.registry import EMBED_FILE_SUFFIX, EmbedRegistry
from livedoc.pipeline.dependency import DependencyGraph
from livedoc.pipeline.files import matches_target
from livedoc.pipeline.processor import build
from livedoc.pipeline.types import BuildResult

logger = get_logger(__name__)

IGNORED_DIRS = frozenset({".git", "node_modules", "__pycache__"})

FileEventCallback = Callable[[Path], None]
BatchHandler = Callable[[list[Path]], None]


class DebouncedQueue:
    """Collapse bursts of change events into one batch per quiet period.

    Paths are keyed by absolute path so repeated events for one file collapse.
    Each push extends the single pending deadline. One worker thread drains
    batches, so a batch arriving mid-rebuild waits for the next cycle.
    """

    def __init__(self, handler: BatchHandler, delay_ms: int = 200) -> None:
        self._handler = handler
        self._delay = max(delay_ms, 0) / 1000
        self._pending: dict[str, Path] = {}
        self._deadline: float | None = None
        self._cond = threading.Condition()
        self._thread: threading.Thread | None = None
        self._stopped = False

    @property
    def pending(self) -> list[Path]:
        with self._cond:
            return list(self._pending.values())

    def push(self, path: Path) -> None:
        key = os.path.abspath(path)
        with self._cond:
            self._pending[key] = Path(key)
            self._deadline = time.monotonic() + self._delay
            self._cond.notify_all()

    def start(self) -> None:
        with self._cond:
            if self._thread is not None:
                return
            self._stopped = False
            self._thread = threading.Thread(target=self._run, name="livedoc-debounce", daemon=True)
            self._thread.start()

    def stop(self) -> None:
        """Stop the worker, letting an in-flight batch run to completion."""
        with self._cond:
            self._stopped = True
            self._cond.notify_all()
            thread = self._thread
            self._thread = None
        if thread is not None:
            thread.join()

    def flush(self) -> list[Path]:
        """Dispatch whatever is pending right now, on the calling thread."""
        batch = self._take()
        if batch:
            self._dispatch(batch)
        return batch

    def _take(self) -> list[Path]:
        with self._cond:
            batch = list(self._pending.values())
            self._pending.clear()
            self._deadline = None
            return batch

    def _run(self) -> None:
        while True:
            with self._cond:
                while not self._stopped and not self._pending:
                    self._cond.wait()
                if self._stopped:
                    return
                while not self._stopped and self._deadline is not None:
                    remaining = self._deadline - time.monotonic()
                    if remaining <= 0:
                        break
                    self._cond.wait(remaining)
                if self._stopped:
                    return
            batch = self._take()
            if batch:
                self._dispatch(batch)

    def _dispatch(self, batch: list[Path]) -> None:
        try:
            self._handler(batch)
        except Exception:
            logger.exception("Rebuild failed for %d changed path(s)", len(batch))


class ChangeEventHandler(PatternMatchingEventHandler):
    """Forward file events (minus VCS/dependency/cache dirs) to a callback."""

    def __init__(self, callback: FileEventCallback) -> None:
        super().__init__(patterns=["*"], ignore_directories=True, case_sensitive=False)
        self.callback = callback

    def _emit(self, raw_path: str | bytes) -> None:
        path = Path(os.fsdecode(raw_path))
        if IGNORED_DIRS.intersection(path.parts):
            return
        self.callback(path)

    def on_created(self, event: FileSystemEvent) -> None:  # pragma: no cover - requires filesystem
        self._emit(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:  # pragma: no cover - requires filesystem
        self._emit(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:  # pragma: no cover - requires filesystem
        self._emit(event.dest_path)

    def on_deleted(self, event: FileSystemEvent) -> None:  # pragma: no cover - requires filesystem
        self._emit(event.src_path)


@dataclass
class WatchedDir:
    path: Path
    recursive: bool


def plan_watch_dirs(settings: Settings, watch_paths: list[str]) -> list[WatchedDir]:
    """Root dir recursively, plus parents of watch paths that live outside it."""
    root = settings.root_dir
    planned = [WatchedDir(root, recursive=True)]
    for raw in watch_paths:
        path = Path(raw)
        if path == root or root in path.parents:
            continue
        directory = path if path.is_dir() else path.parent
        if any(existing.path == directory for existing in planned):
            continue
        planned.append(WatchedDir(directory, recursive=path.is_dir()))
    return planned


class Watcher:
    """Thin wrapper around a watchdog observer."""

    def __init__(self, callback: FileEventCallback) -> None:
        self._observer: BaseObserver = Observer()
        self._handler = ChangeEventHandler(callback)
        self._lock = threading.Lock()
        self._started = False

    def add_dir(self, path: Path, recursive: bool = True) -> None:
        if not path.is_dir():
            logger.warning("Not watching missing directory %s", path)
            return
        with self._lock:
            self._observer.schedule(self._handler, str(path), recursive=recursive)

    def start(self) -> None:
        with self._lock:
            if self._started:
                return
            self._observer.start()
            self._started = True

    def stop(self) -> None:
        with self._lock:
            if not self._started:
                return
            self._observer.stop()
            self._observer.join(timeout=5)
            self._started = False


class WatchSession:
    """Owns the embed registry, datasources and dependency graph between rebuilds."""

    def __init__(self, settings: Settings, embeds: EmbedRegistry, debug_deps: bool = False) -> None:
        self.settings = settings
        self.embeds = embeds
        self.debug_deps = debug_deps
        self.datasources: dict[str, Datasource] = initialize_datasources(settings)
        self.graph = DependencyGraph(settings, embeds)
        self.queue = DebouncedQueue(self.handle_batch, settings.debounce_ms)
        self._watcher: Watcher | None = None

    def rebuild_graph(self) -> None:
        self.graph = DependencyGraph(self.settings, self.embeds)
        self.graph.build()
        if self.debug_deps:
            logger.info("%s", self.graph.dump())

    def _reload_embeds_if_needed(self, changed: list[Path]) -> None:
        embeds_dir = self.settings.embeds_path
        touched = [
            path for path in changed if path.suffix == EMBED_FILE_SUFFIX and embeds_dir in path.parents
        ]
        if not touched:
            return
        logger.info("Embed file changed, reloading embeds from %s", embeds_dir)
        try:
            self.embeds = EmbedRegistry.load(embeds_dir)
        except EmbedLoadError as exc:
            logger.error("Keeping previous embeds: %s", exc)
            return
        self.rebuild_graph()

    def affected_documents(self, changed: list[Path]) -> list[str]:
        embeds_index = self.settings.embeds_path / "__init__.py"
        affected: set[str] = set()
        for path in changed:
            if path == embeds_index:
                affected.update(self.graph.get_documents_using_embeds())
            affected.update(self.graph.get_affected_documents(path))
        if affected:
            return sorted(affected)
        fallback = {
            str(path)
            for path in changed
            for target in self.settings.targets
            if path.is_file() and matches_target(path, target, self.settings)
        }
        return sorted(fallback)

    def handle_batch(self, changed: list[Path]) -> BuildResult | None:
        """Reload, rebuild affected documents, and refresh the graph; runs to completion."""
        for path in changed:
            logger.info("Changed: %s", path)
        self._reload_embeds_if_needed(changed)

        documents = self.affected_documents(changed)
        if not documents:
            logger.debug("No documents affected by %d change(s)", len(changed))
            return None

        logger.info("Rebuilding %d affected document(s)", len(documents))
        asyncio.run(close_datasources(self.datasources))
        self.datasources = initialize_datasources(self.settings)
        result = asyncio.run(build(self.settings, self.embeds, self.datasources, specific_files=documents))
        logger.info(
            "Rebuilt %d document(s): %d updated, %d failed",
            result.stats.total_files,
            result.stats.changed_files,
            result.stats.failed_files,
        )
        for failure in result.failures:
            logger.error("%s: %s", failure.path, failure.error_message)

        self.rebuild_graph()
        return result

    def start(self) -> None:
        self.rebuild_graph()
        watcher = Watcher(self.queue.push)
        for planned in plan_watch_dirs(self.settings, self.graph.get_watch_paths()):
            watcher.add_dir(planned.path, recursive=planned.recursive)
        self.queue.start()
        watcher.start()
        self._watcher = watcher

    def stop(self) -> None:
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None
        self.queue.stop()
        asyncio.run(close_datasources(self.datasources))


__all__ = ["ChangeEventHandler", "DebouncedQueue", "WatchSession", "Watcher", "plan_watch_dirs"]
