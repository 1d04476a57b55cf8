"""Prometheus metrics instrumentation."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

REGISTRY = CollectorRegistry()

DOCUMENTS_PROCESSED = Counter(
    "livedoc_documents_total",
    "Documents processed by the rewrite engine",
    labelnames=("status",),
    registry=REGISTRY,
)

MARKERS_UPDATED = Counter(
    "livedoc_markers_updated_total",
    "Marker regions replaced with rendered content",
    registry=REGISTRY,
)

BUILD_DURATION = Histogram(
    "livedoc_build_duration_seconds",
    "Duration of a build pass",
    registry=REGISTRY,
)

GRAPH_NODES = Gauge(
    "livedoc_graph_nodes",
    "Number of nodes in the dependency graph",
    registry=REGISTRY,
)


def metrics_text() -> str:
    """Return the Prometheus exposition text for livedoc metrics."""
    return generate_latest(REGISTRY).decode("utf-8")


__all__ = [
    "REGISTRY",
    "DOCUMENTS_PROCESSED",
    "MARKERS_UPDATED",
    "BUILD_DURATION",
    "GRAPH_NODES",
    "metrics_text",
]
