"""
Prometheus metrics for the storefront service.

Tracks HTTP traffic, page views, upstream API calls, domain availability checks
and store creation attempts.
"""

from fastapi import Response
from prometheus_client import (CONTENT_TYPE_LATEST, Counter, Gauge, Histogram,
                               generate_latest)

# Request metrics
http_requests_total = Counter(
    "storefront_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "storefront_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.075, 0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0),
)

# Page view metrics
storefront_page_views_total = Counter(
    "storefront_page_views_total", "Total page views", ["page"]
)

# Upstream API metrics
storefront_upstream_requests_total = Counter(
    "storefront_upstream_requests_total",
    "Total requests to upstream APIs",
    ["service", "operation", "status"],
)

storefront_upstream_request_duration_seconds = Histogram(
    "storefront_upstream_request_duration_seconds",
    "Upstream request duration in seconds",
    ["service", "operation"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

storefront_upstream_errors_total = Counter(
    "storefront_upstream_errors_total",
    "Total upstream request errors",
    ["service", "error_type"],
)

# Store form metrics
storefront_domain_checks_total = Counter(
    "storefront_domain_checks_total",
    "Completed domain availability checks",
    ["outcome"],
)

storefront_stale_domain_checks_total = Counter(
    "storefront_stale_domain_checks_total",
    "Domain check results discarded because a newer lookup superseded them",
)

storefront_store_creations_total = Counter(
    "storefront_store_creations_total",
    "Store creation attempts",
    ["status"],
)

storefront_active_form_sessions = Gauge(
    "storefront_active_form_sessions", "Number of open store form sessions"
)


def track_request_metrics(
    method: str, endpoint: str, status_code: int, duration: float
):
    """Track HTTP request metrics."""
    http_requests_total.labels(
        method=method, endpoint=endpoint, status=status_code
    ).inc()
    http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
        duration
    )


def track_page_view(page: str):
    """Track page view metrics."""
    storefront_page_views_total.labels(page=page).inc()


def track_upstream_request(
    service: str, operation: str, status_code: int, duration: float
):
    """Track upstream request metrics."""
    storefront_upstream_requests_total.labels(
        service=service, operation=operation, status=status_code
    ).inc()
    storefront_upstream_request_duration_seconds.labels(
        service=service, operation=operation
    ).observe(duration)


def track_upstream_error(service: str, error_type: str):
    """Track upstream errors."""
    storefront_upstream_errors_total.labels(service=service, error_type=error_type).inc()


def track_domain_check(outcome: str):
    """Track a domain check that was applied to the form."""
    storefront_domain_checks_total.labels(outcome=outcome).inc()


def track_stale_domain_check():
    storefront_stale_domain_checks_total.inc()


def track_store_creation(success: bool):
    """Track store creation attempts."""
    status = "success" if success else "failure"
    storefront_store_creations_total.labels(status=status).inc()


def form_session_opened():
    storefront_active_form_sessions.inc()


def form_session_closed():
    storefront_active_form_sessions.dec()


async def metrics_endpoint():
    """
    Prometheus metrics endpoint.

    Returns:
        Response with Prometheus metrics in text format
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
