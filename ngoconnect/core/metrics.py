"""Prometheus metrics helpers."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

HTTP_REQUESTS_TOTAL = Counter(
    "ngoconnect_http_requests_total",
    "Total number of HTTP requests.",
    ["method", "route", "status"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "ngoconnect_http_request_duration_seconds",
    "HTTP request duration in seconds.",
    ["method", "route", "status"],
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
    ),
)

REGISTRATION_REVIEWS_TOTAL = Counter(
    "ngoconnect_registration_reviews_total",
    "Registration review decisions.",
    ["outcome"],
)

DONATION_ASSIGNMENTS_TOTAL = Counter(
    "ngoconnect_donation_assignments_total",
    "Donation assignment attempts by outcome.",
    ["outcome"],
)

NOTIFICATION_FAILURES_TOTAL = Counter(
    "ngoconnect_notification_failures_total",
    "Notifications that could not be delivered.",
    ["category"],
)

FULFILLMENT_INTEGRITY_WARNINGS_TOTAL = Counter(
    "ngoconnect_fulfillment_integrity_warnings_total",
    "Assigned donations excluded from fulfillment because their request does not match.",
)


def observe_http_request(
    *,
    method: str,
    route: str,
    status_code: int,
    duration_ms: float,
) -> None:
    status = str(status_code)
    HTTP_REQUESTS_TOTAL.labels(method=method, route=route, status=status).inc()
    HTTP_REQUEST_DURATION_SECONDS.labels(
        method=method, route=route, status=status
    ).observe(duration_ms / 1000.0)
