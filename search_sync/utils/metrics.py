"""
Metrics utilities for the Search Sync service.

This module defines the Prometheus metrics that make publisher and connection
health observable, and the endpoint that exposes them for scraping.
"""

import structlog
from fastapi import FastAPI
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
)
from starlette.responses import Response

logger = structlog.get_logger(__name__)

# Custom registry, separate from the prometheus_client global one
registry = CollectorRegistry()

SYSTEM_INFO = Gauge(
    "search_sync_system_info",
    "Information about the Search Sync service",
    ["version", "environment"],
    registry=registry,
)

# Stream metrics
STREAM_ENTRIES_PUBLISHED = Counter(
    "search_sync_entries_published_total",
    "Total number of entries appended to the stream",
    ["stream", "entity_type", "action"],
    registry=registry,
)
STREAM_ENTRIES_FAILED = Counter(
    "search_sync_entries_failed_total",
    "Total number of entries that failed to append and were dropped",
    ["stream", "entity_type", "action"],
    registry=registry,
)
NOTIFICATIONS_SKIPPED = Counter(
    "search_sync_notifications_skipped_total",
    "Total number of change notifications that produced no entries",
    ["reason"],
    registry=registry,
)

# Redis connection metrics
REDIS_CONNECT_ATTEMPTS = Counter(
    "search_sync_redis_connect_attempts_total",
    "Total number of Redis connection attempts",
    ["outcome"],
    registry=registry,
)
REDIS_CONNECTION_STATE = Gauge(
    "search_sync_redis_connection_state",
    "Current Redis connection state (1 for the active state)",
    ["state"],
    registry=registry,
)

# API metrics
HTTP_REQUESTS = Counter(
    "search_sync_http_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status"],
    registry=registry,
)


def record_connection_state(current: str, states: list[str]) -> None:
    """
    Set the connection state gauge so that only the current state reads 1.

    Args:
        current: The state just entered
        states: Every possible state value
    """
    for state in states:
        REDIS_CONNECTION_STATE.labels(state=state).set(1 if state == current else 0)


def setup_metrics_endpoint(app: FastAPI, version: str, environment: str) -> None:
    """
    Set up the metrics endpoint for Prometheus scraping.

    Args:
        app: FastAPI application
        version: Service version
        environment: Deployment environment
    """

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        """Expose Prometheus metrics."""
        return Response(
            content=generate_latest(registry),
            media_type=CONTENT_TYPE_LATEST,
        )

    SYSTEM_INFO.labels(version=version, environment=environment).set(1)

    logger.info("Metrics endpoint configured at /metrics")
