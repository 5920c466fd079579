"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

REQUEST_COUNT = Counter(
    "palace_requests_total",
    "Total HTTP requests",
    labelnames=("endpoint", "method", "status"),
    registry=REGISTRY,
)

REQUEST_LATENCY = Histogram(
    "palace_request_latency_seconds",
    "Latency of HTTP requests",
    labelnames=("endpoint", "method"),
    registry=REGISTRY,
)

SCAN_DURATION = Histogram(
    "palace_scan_duration_seconds",
    "Full scan duration",
    registry=REGISTRY,
)

INDEX_FILES = Gauge(
    "palace_index_files",
    "Number of files stored in the index",
    registry=REGISTRY,
)

INDEX_CHUNKS = Gauge(
    "palace_index_chunks",
    "Number of chunks stored in the index",
    registry=REGISTRY,
)

STALE_ENTRIES = Gauge(
    "palace_stale_entries",
    "Stale entries reported by the last verification",
    labelnames=("scope",),
    registry=REGISTRY,
)

SEARCH_QUERIES = Counter(
    "palace_search_queries_total",
    "Search queries by classification",
    labelnames=("kind",),
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "SCAN_DURATION",
    "INDEX_FILES",
    "INDEX_CHUNKS",
    "STALE_ENTRIES",
    "SEARCH_QUERIES",
    "metrics_response",
]
