"""CLI entrypoint for livedoc."""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import List, NoReturn, Optional

import orjson
import typer

from livedoc.core.config import Settings, get_settings
from livedoc.core.errors import ConfigError, EmbedLoadError
from livedoc.core.logging import configure_logging
from livedoc.core.metrics import metrics_text
from livedoc.datasources import close_datasources, initialize_datasources
from livedoc.embeds.registry import EmbedRegistry
from livedoc.pipeline.dependency import DependencyGraph
from livedoc.pipeline.processor import build as run_build
from livedoc.pipeline.types import BuildResult
from livedoc.pipeline.watch import WatchSession

app = typer.Typer(name="livedoc", help="Keep marker regions in your docs in sync with their data")


def _load_settings(config: Optional[Path]) -> Settings:
    if config is not None:
        return Settings.from_yaml(config)
    return get_settings()


def _fail(message: str) -> NoReturn:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code=1)


async def _build_once(settings: Settings, embeds: EmbedRegistry, dry_run: bool, files: Optional[List[str]]) -> BuildResult:
    datasources = initialize_datasources(settings)
    try:
        return await run_build(settings, embeds, datasources, dry_run=dry_run, specific_files=files)
    finally:
        await close_datasources(datasources)


def _print_summary(result: BuildResult, dry_run: bool) -> None:
    stats = result.stats
    typer.echo(f"Files processed: {stats.total_files}")
    typer.echo(f"Markers updated: {stats.markers_updated}")
    typer.echo(f"Files changed:   {stats.changed_files}")
    typer.echo(f"Success:         {stats.success_files}")
    typer.echo(f"Failed:          {stats.failed_files}")
    typer.echo(f"Duration:        {result.duration_ms}ms")
    for failure in result.failures:
        typer.echo(f"  {failure.path}: {failure.error_message}", err=True)
    if dry_run:
        typer.echo("Dry run: no files were written")


@app.command("build")
def build_command(
    files: Optional[List[Path]] = typer.Argument(None, help="Only rebuild these files"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to livedoc config"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Render everything but write nothing"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    metrics: bool = typer.Option(False, "--metrics", help="Print Prometheus metrics after the build"),
    as_json: bool = typer.Option(False, "--json", help="Print the build result as JSON"),
) -> None:
    """Regenerate every marker region in the configured targets."""
    configure_logging("DEBUG" if verbose else "INFO", use_json=False)
    try:
        settings = _load_settings(config)
        embeds = EmbedRegistry.load(settings.embeds_path)
        requested = [str(path.expanduser().resolve()) for path in files] if files else None
        result = asyncio.run(_build_once(settings, embeds, dry_run, requested))
    except (ConfigError, EmbedLoadError) as exc:
        _fail(str(exc))

    if as_json:
        typer.echo(orjson.dumps(result.to_dict(), option=orjson.OPT_INDENT_2).decode("utf-8"))
    else:
        _print_summary(result, dry_run)
    if metrics:
        typer.echo(metrics_text())
    if not result.ok:
        raise typer.Exit(code=1)


@app.command()
def watch(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to livedoc config"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    debug_deps: bool = typer.Option(False, "--debug-deps", help="Print the dependency graph after each rebuild"),
) -> None:
    """Build once, then rebuild affected documents whenever their inputs change."""
    configure_logging("DEBUG" if verbose else "INFO", use_json=False)
    try:
        settings = _load_settings(config)
        embeds = EmbedRegistry.load(settings.embeds_path)
        result = asyncio.run(_build_once(settings, embeds, dry_run=False, files=None))
        session = WatchSession(settings, embeds, debug_deps=debug_deps)
        session.start()
    except (ConfigError, EmbedLoadError) as exc:
        _fail(str(exc))

    _print_summary(result, dry_run=False)
    typer.echo(f"Watching {settings.root_dir} (Ctrl+C to stop)")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        typer.echo("Stopping watcher")
    finally:
        session.stop()


@app.command()
def graph(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to livedoc config"),
) -> None:
    """Print the document/embed/datasource dependency graph."""
    configure_logging("WARNING", use_json=False)
    try:
        settings = _load_settings(config)
        dependency_graph = DependencyGraph(settings, EmbedRegistry.load(settings.embeds_path))
        dependency_graph.build()
    except (ConfigError, EmbedLoadError) as exc:
        _fail(str(exc))
    typer.echo(dependency_graph.dump())


if __name__ == "__main__":
    app()
