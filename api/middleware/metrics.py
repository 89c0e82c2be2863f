"""
Prometheus metrics middleware for the relay API.

Exposes /metrics endpoint with request counters, latency histograms,
and relay business metrics.
"""

import logging
import time

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

try:
    from prometheus_client import (
        Counter, Histogram, Gauge,
        generate_latest, CONTENT_TYPE_LATEST,
    )

    # Request metrics
    REQUEST_COUNT = Counter(
        "relay_http_requests_total",
        "Total HTTP requests",
        ["method", "endpoint", "status_code"],
    )
    REQUEST_LATENCY = Histogram(
        "relay_http_request_duration_seconds",
        "HTTP request latency",
        ["method", "endpoint"],
        buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    )
    ACTIVE_REQUESTS = Gauge(
        "relay_http_active_requests",
        "Currently active HTTP requests",
    )

    # Business metrics
    ADMISSION_COUNT = Counter(
        "relay_admission_decisions_total",
        "Topic admission decisions",
        ["rule"],
    )
    ROUTE_COUNT = Counter(
        "relay_message_routes_total",
        "How inbound messages were answered",
        ["route"],
    )
    UNDELIVERED_COUNT = Counter(
        "relay_undelivered_replies_total",
        "Replies the messaging provider rejected",
    )
    LLM_LATENCY = Histogram(
        "relay_llm_duration_seconds",
        "LLM completion latency",
        buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
    )
    ACTIVE_SESSIONS = Gauge(
        "relay_active_sessions",
        "Live conversation sessions",
    )
    EVICTED_SESSIONS = Counter(
        "relay_evicted_sessions_total",
        "Idle sessions evicted by sweeps",
    )

    PROMETHEUS_AVAILABLE = True

except ImportError:
    PROMETHEUS_AVAILABLE = False
    logger.warning("prometheus-client not installed, metrics disabled")


def record_admission(rule: str):
    """Record a topic admission decision."""
    if PROMETHEUS_AVAILABLE:
        ADMISSION_COUNT.labels(rule=rule).inc()


def record_route(route: str, delivered: bool = True):
    """Record how a message was answered."""
    if PROMETHEUS_AVAILABLE:
        ROUTE_COUNT.labels(route=route).inc()
        if not delivered:
            UNDELIVERED_COUNT.inc()


def record_llm_latency(seconds: float):
    """Record LLM completion latency."""
    if PROMETHEUS_AVAILABLE:
        LLM_LATENCY.observe(seconds)


def record_active_sessions(count: int):
    """Record the live session count."""
    if PROMETHEUS_AVAILABLE:
        ACTIVE_SESSIONS.set(count)


def record_evicted_sessions(count: int):
    """Record sessions removed by a sweep."""
    if PROMETHEUS_AVAILABLE and count:
        EVICTED_SESSIONS.inc(count)


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Middleware that records HTTP request metrics.

    Requests are labelled by route template, so per-user admin paths share
    one series.
    """

    async def dispatch(self, request: Request, call_next):
        if not PROMETHEUS_AVAILABLE:
            return await call_next(request)

        ACTIVE_REQUESTS.inc()
        start = time.time()
        try:
            response = await call_next(request)
        finally:
            ACTIVE_REQUESTS.dec()

        endpoint = _route_template(request)
        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()
        REQUEST_LATENCY.labels(method=request.method, endpoint=endpoint).observe(time.time() - start)
        return response


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


async def metrics_endpoint(request: Request) -> Response:
    """Prometheus metrics endpoint."""
    if not PROMETHEUS_AVAILABLE:
        return Response(content="prometheus-client not installed", status_code=503)
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
