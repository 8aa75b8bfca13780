"""Prometheus metric inventory.

All metrics are defined here; the modules that own the behavior import
and increment them.  Counters only go up, so tests assert on deltas.
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
# Workflow metrics
# ---------------------------------------------------------------------------

COURSE_TRANSITIONS = Counter(
    "course_transitions_total",
    "Committed course moderation transitions",
    ["from_status", "to_status"],
)

ENROLLMENTS_CREATED = Counter(
    "enrollments_created_total",
    "Enrollments created, by entry path",
    ["path"],  # direct|payment|manual
)

ENROLLMENT_RESOLUTIONS = Counter(
    "enrollment_resolutions_total",
    "Admin resolutions of pending enrollments",
    ["outcome"],  # active|rejected
)

WORKFLOW_ROLLBACKS = Counter(
    "workflow_rollbacks_total",
    "Units of work rolled back",
    ["reason"],  # domain|unexpected
)

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Catalog cache get operations by result",
    ["operation"],  # hit|miss
)
