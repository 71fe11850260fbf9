"""
Metrics definitions for Citizen Alerts.

This module defines Prometheus metrics for monitoring
the alert filtering and proximity pipeline.
"""

from prometheus_client import Counter, Histogram, Gauge

# 카운터 메트릭
alerts_received = Counter(
    "alerts_received_total",
    "Number of raw alert records fetched from the backend",
    ["source"]
)

alerts_rejected = Counter(
    "alerts_rejected_total",
    "Number of alert records that failed normalization"
)

alerts_unknown_type = Counter(
    "alerts_unknown_type_total",
    "Alert records whose type was not recognised and was mapped to other"
)

fetch_failures = Counter(
    "alert_fetch_failures_total",
    "Backend alert fetches that failed after retries"
)

evaluations = Counter(
    "evaluations_total",
    "Number of filter/proximity evaluations",
    ["trigger"]
)

proximity_events = Counter(
    "proximity_events_total",
    "ProximityEntered events emitted",
    ["severity", "type"]
)

location_updates = Counter(
    "location_updates_total",
    "Position updates accepted by the location tracker"
)

publish_retries = Counter(
    "publish_retries_total",
    "Notification publish retries",
    ["topic"]
)

# 히스토그램 메트릭
evaluation_seconds = Histogram(
    "evaluation_duration_seconds",
    "Time spent filtering alerts and detecting proximity entries",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0]
)

# 게이지 메트릭
store_size = Gauge(
    "alert_store_size",
    "Number of alerts in the current store snapshot"
)

visible_alerts = Gauge(
    "visible_alerts",
    "Number of alerts in the latest visible set"
)

tracked_alerts = Gauge(
    "proximity_tracked_alerts",
    "Number of alert ids with proximity state"
)

queue_depth = Gauge(
    "internal_queue_depth",
    "Current depth of the evaluation queue"
)

outbox_size = Gauge(
    "outbox_size",
    "Current number of notifications waiting in the outbox"
)

uptime_seconds = Gauge(
    "uptime_seconds",
    "Service uptime in seconds"
)
