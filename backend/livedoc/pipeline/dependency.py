"""Document / embed / datasource dependency graph for incremental rebuilds.

Edges point from consumer to provider (document -> embed -> datasource).
Every edge is recorded on both endpoints so upstream consumers can be found by
walking ``depended_by``.
"""

from __future__ import annotations

import os
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Mapping

from livedoc.core.config import CommentStyle, Settings
from livedoc.core.logging import get_logger
from livedoc.core.metrics import GRAPH_NODES
from livedoc.embeds.registry import EMBED_FILE_SUFFIX, EmbedDefinition
from livedoc.markers.parser import parse_markers, split_frontmatter
from livedoc.markers.styles import resolve_comment_style
from livedoc.pipeline.files import iter_target_files
from livedoc.utils.text import camel_to_snake

logger = get_logger(__name__)

NodeType = Literal["document", "embed", "datasource"]

EMBED_KEY_PREFIX = "embed:"


def embed_key(name: str) -> str:
    return f"{EMBED_KEY_PREFIX}{name}"


@dataclass
class DependencyNode:
    type: NodeType
    path: str
    depends_on: set[str] = field(default_factory=set)
    depended_by: set[str] = field(default_factory=set)


class DependencyGraph:
    """Static analysis of marker usage; rebuilt from scratch, queried read-only."""

    def __init__(self, settings: Settings, embeds: Mapping[str, EmbedDefinition]) -> None:
        self.settings = settings
        self.embeds = embeds
        self.embeds_dir = settings.embeds_path
        self._nodes: dict[str, DependencyNode] = {}

    @property
    def nodes(self) -> Mapping[str, DependencyNode]:
        return self._nodes

    def _normalize(self, path: str | Path) -> str:
        return str(self.settings.resolve_path(path))

    def get_or_create_node(self, node_type: NodeType, key: str) -> DependencyNode:
        node = self._nodes.get(key)
        if node is None:
            node = DependencyNode(type=node_type, path=key)
            self._nodes[key] = node
        return node

    def add_dependency(self, from_key: str, to_key: str) -> None:
        """Record ``from -> to`` on both endpoints; unknown keys are ignored."""
        from_node = self._nodes.get(from_key)
        to_node = self._nodes.get(to_key)
        if from_node is None or to_node is None:
            return
        from_node.depends_on.add(to_node.path)
        to_node.depended_by.add(from_node.path)

    def analyze_document(self, path: Path, comment_style: CommentStyle) -> None:
        """Add one document and the embeds/datasources its markers reach."""
        doc_key = self._normalize(path)
        self.get_or_create_node("document", doc_key)
        try:
            content = Path(doc_key).read_text(encoding=self.settings.output.encoding)
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Skipping unreadable document %s: %s", doc_key, exc)
            return

        body = split_frontmatter(content).body
        embed_names = {marker.template_name for marker in parse_markers(body, comment_style, self.settings.namespace)}
        for embed_name in sorted(embed_names):
            embed = self.embeds.get(embed_name)
            if embed is None:
                continue
            embed_node = self.get_or_create_node("embed", embed_key(embed_name))
            self.add_dependency(doc_key, embed_node.path)

            for ds_name in embed.depends_on:
                ds_config = self.settings.datasources.get(ds_name)
                if ds_config is None or not ds_config.path:
                    continue
                ds_node = self.get_or_create_node("datasource", self._normalize(ds_config.path))
                self.add_dependency(embed_node.path, ds_node.path)

    def build(self) -> None:
        """Clear and repopulate from every target pattern."""
        self._nodes.clear()
        for target in self.settings.targets:
            comment_style = resolve_comment_style(target.comment_style, self.settings.comment_styles)
            for path in iter_target_files(target, self.settings):
                self.analyze_document(path, comment_style)
        GRAPH_NODES.set(len(self._nodes))
        logger.debug("Dependency graph built with %d node(s)", len(self._nodes))

    def _find_start_node(self, changed_path: str | Path) -> DependencyNode | None:
        normalized = self._normalize(changed_path)
        node = self._nodes.get(normalized)
        if node is not None:
            return node

        for candidate in self._nodes.values():
            if candidate.type == "datasource" and candidate.path == normalized:
                return candidate

        if normalized.endswith(EMBED_FILE_SUFFIX):
            stem = Path(normalized).stem
            if stem and stem != "__init__":
                node = self._nodes.get(embed_key(stem)) or self._nodes.get(embed_key(camel_to_snake(stem)))
                if node is not None:
                    return node
        return None

    def get_affected_documents(self, changed_path: str | Path) -> list[str]:
        """Absolute paths of documents that transitively depend on ``changed_path``."""
        start = self._find_start_node(changed_path)
        if start is None:
            return []

        affected: set[str] = set()
        visited: set[str] = set()
        queue: deque[DependencyNode] = deque([start])
        while queue:
            current = queue.popleft()
            if current.path in visited:
                continue
            visited.add(current.path)
            if current.type == "document":
                affected.add(current.path)
            for consumer in current.depended_by:
                node = self._nodes.get(consumer)
                if node is not None and consumer not in visited:
                    queue.append(node)
        return sorted(affected)

    def get_documents_using_embeds(self) -> list[str]:
        """Documents that reference at least one registered embed."""
        return sorted(
            node.path
            for node in self._nodes.values()
            if node.type == "document" and any(dep.startswith(EMBED_KEY_PREFIX) for dep in node.depends_on)
        )

    def get_watch_paths(self) -> list[str]:
        """Datasource files plus the embeds directory."""
        paths = [
            self._normalize(config.path)
            for config in self.settings.datasources.values()
            if config.path
        ]
        paths.append(str(self.embeds_dir))
        return paths

    def dump(self) -> str:
        """Human-readable listing of every node and its edges."""
        lines = [f"Dependency Graph: {len(self._nodes)} node(s)"]
        for key, node in self._nodes.items():
            lines.append(f"\n[{node.type}] {_display(key)}")
            if node.depends_on:
                lines.append("  depends on:")
                lines.extend(f"    - {_display(dep)}" for dep in sorted(node.depends_on))
            if node.depended_by:
                lines.append("  depended by:")
                lines.extend(f"    - {_display(dep)}" for dep in sorted(node.depended_by))
        return "\n".join(lines)


def _display(key: str) -> str:
    if key.startswith(EMBED_KEY_PREFIX):
        return key
    try:
        return os.path.relpath(key)
    except ValueError:
        return key


__all__ = ["DependencyGraph", "DependencyNode", "embed_key"]
