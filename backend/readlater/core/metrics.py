"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

REQUEST_COUNT = Counter(
    "readlater_requests_total",
    "Total HTTP requests",
    labelnames=("endpoint", "method", "status"),
    registry=REGISTRY,
)

REQUEST_LATENCY = Histogram(
    "readlater_request_latency_seconds",
    "Latency of HTTP requests",
    labelnames=("endpoint", "method"),
    registry=REGISTRY,
)

SYNC_WRITES = Counter(
    "readlater_sync_writes_total",
    "Store writes dispatched by the reconciler",
    labelnames=("operation", "outcome"),
    registry=REGISTRY,
)

SYNC_DURATION = Histogram(
    "readlater_sync_duration_seconds",
    "Wall time of a full sync run",
    registry=REGISTRY,
)

ANCHOR_RESOLUTIONS = Counter(
    "readlater_anchor_resolutions_total",
    "Highlight anchor resolutions",
    labelnames=("outcome",),
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
    "SYNC_WRITES",
    "SYNC_DURATION",
    "ANCHOR_RESOLUTIONS",
    "metrics_response",
]
