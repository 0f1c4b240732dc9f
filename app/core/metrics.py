"""Prometheus metric inventory.

Every metric the service exports is declared here; modules import the
one they own and increment it at the point of action.  HTTP metrics are
fed by MetricsMiddleware, the rest by the domain services.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Progress & certification
# ---------------------------------------------------------------------------

PROGRESS_AGGREGATION_FAILURES = Counter(
    "progress_aggregation_failures_total",
    "Progress computations that failed and returned a zeroed snapshot",
)

CERTIFICATES_ISSUED = Counter(
    "certificates_issued_total",
    "Certificate issuance calls by outcome",
    ["outcome"],  # created|existing|race
)

ENROLLMENT_TRANSITIONS = Counter(
    "enrollment_transitions_total",
    "Enrollment status transitions",
    ["from_status", "to_status"],
)

# ---------------------------------------------------------------------------
# Collaborator surfaces
# ---------------------------------------------------------------------------

ROLE_CACHE_OPERATIONS = Counter(
    "role_cache_operations_total",
    "Role cache lookups and invalidations",
    ["result"],  # hit|miss|invalidate
)

PAYMENT_WEBHOOK_EVENTS = Counter(
    "payment_webhook_events_total",
    "Payment webhook deliveries by event type and outcome",
    ["event_type", "outcome"],  # processed|ignored|rejected
)
