"""Rewrite engine: regenerate marker regions in place."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Iterable, Mapping

from livedoc.core.config import CommentStyle, Settings
from livedoc.core.errors import DatasourceConflictError
from livedoc.core.logging import document_context, get_logger
from livedoc.core.metrics import BUILD_DURATION, DOCUMENTS_PROCESSED, MARKERS_UPDATED
from livedoc.datasources.base import Datasource
from livedoc.embeds.markdown import MarkdownHelper
from livedoc.embeds.registry import EmbedContext, EmbedDefinition
from livedoc.inline.datasource import InlineDatasource, build_inline_datasources
from livedoc.markers.parser import parse_inline_data_markers, parse_markers, split_frontmatter
from livedoc.markers.styles import resolve_comment_style
from livedoc.markers.types import Marker
from livedoc.pipeline.files import iter_target_files
from livedoc.pipeline.types import BuildResult, ProcessResult
from livedoc.pipeline.variables import resolve_variables

logger = get_logger(__name__)


def render_region(marker: Marker, content: str) -> str:
    """Delimiters plus ``content``; newline-wrapped unless the marker is inline."""
    if marker.is_inline:
        return f"{marker.start_marker_line}{content}{marker.end_marker_line}"
    return f"{marker.start_marker_line}\n{content}\n{marker.end_marker_line}"


def apply_line_ending(text: str, line_ending: str) -> str:
    return text.replace("\n", "\r\n") if line_ending == "crlf" else text


class BuildPipeline:
    """Coordinate parsing, variable resolution, rendering and write-back."""

    def __init__(
        self,
        settings: Settings,
        embeds: Mapping[str, EmbedDefinition],
        datasources: Mapping[str, Datasource] | None = None,
    ) -> None:
        self.settings = settings
        self.embeds = embeds
        self.datasources: dict[str, Datasource] = dict(datasources or {})
        self.markdown = MarkdownHelper()

    async def build(
        self,
        dry_run: bool = False,
        specific_files: Iterable[str | Path] | None = None,
    ) -> BuildResult:
        """Process every target document, one at a time, in enumeration order."""
        started = time.perf_counter()
        result = BuildResult()
        requested = None
        if specific_files is not None:
            requested = {self.settings.resolve_path(path) for path in specific_files}
        seen: set[Path] = set()

        for target in self.settings.targets:
            comment_style = resolve_comment_style(target.comment_style, self.settings.comment_styles)
            for path in iter_target_files(target, self.settings):
                if path in seen or (requested is not None and path not in requested):
                    continue
                seen.add(path)
                logger.debug("Processing %s", path)
                try:
                    content = path.read_text(encoding=self.settings.output.encoding)
                except (OSError, UnicodeDecodeError) as exc:
                    logger.error("Failed to read %s: %s", path, exc, extra=document_context(path))
                    outcome = ProcessResult(path=path, success=False, error=exc)
                else:
                    outcome = await self.process_file(path, content, comment_style, dry_run=dry_run)
                result.results.append(outcome)
                result.stats.add(outcome)
                DOCUMENTS_PROCESSED.labels(status="success" if outcome.success else "failed").inc()
                MARKERS_UPDATED.inc(outcome.markers_updated)
                if outcome.markers_updated:
                    logger.debug(
                        "Updated %d marker(s) in %s%s",
                        outcome.markers_updated,
                        path,
                        " (changed)" if outcome.changed else " (no changes)",
                    )

        elapsed = time.perf_counter() - started
        BUILD_DURATION.observe(elapsed)
        result.duration_ms = int(elapsed * 1000)
        return result

    async def process_file(
        self,
        path: Path,
        content: str,
        comment_style: CommentStyle,
        dry_run: bool = False,
    ) -> ProcessResult:
        """Rewrite one document; any failure is recorded on the result, never raised."""
        result = ProcessResult(path=path)
        inline_datasources: dict[str, InlineDatasource] = {}
        namespace = self.settings.namespace
        inline_config = self.settings.inline_datasource
        try:
            frontmatter = split_frontmatter(content)

            declarations = []
            if inline_config.enabled:
                declarations = parse_inline_data_markers(frontmatter.body, comment_style, namespace)
                for declaration in declarations:
                    declaration.start_line += frontmatter.line_offset
                    declaration.end_line += frontmatter.line_offset
                inline_datasources = build_inline_datasources(declarations, str(path), inline_config)
            datasources = self._merge_datasources(inline_datasources, path)

            markers = parse_markers(frontmatter.body, comment_style, namespace)
            if not markers and not declarations:
                return result

            body = frontmatter.body
            for marker in sorted(markers, key=lambda m: m.start_index, reverse=True):
                embed = self.embeds.get(marker.template_name)
                if embed is None:
                    line = marker.start_line + frontmatter.line_offset
                    logger.warning(
                        'Unknown embed "%s" in %s (line %d)',
                        marker.template_name,
                        path,
                        line,
                        extra=document_context(path, line),
                    )
                    continue

                ctx = EmbedContext(
                    params=resolve_variables(marker.params, frontmatter.data, inline_datasources),
                    frontmatter=frontmatter.data,
                    datasources=datasources,
                    markdown=self.markdown,
                    file_path=str(path),
                    existing_content=marker.existing_content,
                )
                rendered = await embed.render(ctx)
                if rendered.content is None:
                    continue
                body = body[: marker.start_index] + render_region(marker, rendered.content) + body[marker.end_index :]
                result.markers_updated += 1

            final = frontmatter.raw + body
            if final != content:
                result.changed = True
                if not dry_run:
                    self._write(path, final)
        except Exception as exc:
            logger.error("Failed to process %s: %s", path, exc, extra=document_context(path))
            result.success = False
            result.error = exc
        finally:
            for datasource in inline_datasources.values():
                await datasource.close()
        return result

    def _merge_datasources(
        self,
        inline_datasources: Mapping[str, InlineDatasource],
        path: Path,
    ) -> dict[str, Datasource]:
        merged: dict[str, Datasource] = dict(self.datasources)
        policy = self.settings.inline_datasource.conflict_policy
        for name, datasource in inline_datasources.items():
            if name in merged:
                if policy == "error":
                    raise DatasourceConflictError(
                        f'Inline datasource "{name}" conflicts with external datasource (conflict_policy: error)'
                    )
                if policy == "prefer_external":
                    continue
                logger.warning('Inline datasource "%s" overrides external datasource in %s', name, path)
            merged[name] = datasource
        return merged

    def _write(self, path: Path, text: str) -> None:
        output = self.settings.output
        path.write_text(apply_line_ending(text, output.line_ending), encoding=output.encoding, newline="")


async def build(
    settings: Settings,
    embeds: Mapping[str, EmbedDefinition],
    datasources: Mapping[str, Datasource] | None = None,
    dry_run: bool = False,
    specific_files: Iterable[str | Path] | None = None,
) -> BuildResult:
    """Run one build pass over every configured target."""
    pipeline = BuildPipeline(settings, embeds, datasources)
    return await pipeline.build(dry_run=dry_run, specific_files=specific_files)


__all__ = ["BuildPipeline", "apply_line_ending", "build", "render_region"]
