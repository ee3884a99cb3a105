"""
Prometheus metrics for Beds24 sync runs, API calls, and token handling.

Metrics are exposed via the /metrics endpoint for scraping by Prometheus.

Example:
    >>> from sync_beds24.metrics import sync_duration, records_synced
    >>> with sync_duration.labels(sync_type="bookings").time():
    ...     processed = sync_bookings(hotel_id)
    ...     records_synced.labels(hotel_id=hotel_id, entity_type="reservations").inc(processed)
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# =============================================================================
# Sync Metrics
# =============================================================================

sync_runs = Counter(
    "beds24_sync_runs_total",
    "Total number of per-property sync runs",
    ["hotel_id", "sync_type", "status"],
)
"""
Counter for per-property sync runs.

Labels:
    hotel_id: Internal hotel/property ID
    sync_type: bookings, calendar or bootstrap
    status: success, failure or skipped
"""

sync_duration = Histogram(
    "beds24_sync_duration_seconds",
    "Duration of per-property sync runs in seconds",
    ["sync_type"],
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, float("inf")),
)

records_synced = Counter(
    "beds24_records_synced_total",
    "Total number of records written to the record store",
    ["hotel_id", "entity_type"],
)
"""
Counter for records written.

Labels:
    hotel_id: Internal hotel/property ID
    entity_type: reservations, calendar_days or room_types
"""

# =============================================================================
# API Metrics
# =============================================================================

api_requests = Counter(
    "beds24_api_requests_total",
    "Total Beds24 API requests made",
    ["endpoint", "status_code"],
)
"""
Counter for API requests to Beds24.

Labels:
    endpoint: API endpoint path (e.g., "bookings", "inventory/rooms/calendar")
    status_code: HTTP status code, or "error" when no response was received
"""

api_latency = Histogram(
    "beds24_api_latency_seconds",
    "Beds24 API request latency in seconds",
    ["endpoint"],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, float("inf")),
)

# =============================================================================
# Token Metrics
# =============================================================================

token_cache_hits = Counter(
    "beds24_token_cache_hits_total",
    "Total number of access token cache hits",
    ["tier"],
)
"""Counter for token cache hits. tier is "memory" or "persisted"."""

token_cache_misses = Counter(
    "beds24_token_cache_misses_total",
    "Total number of access token lookups that required a refresh grant",
)

token_refreshes = Counter(
    "beds24_token_refreshes_total",
    "Total number of refresh-token grant calls",
    ["direction", "status"],
)

connections_in_error = Gauge(
    "beds24_connections_in_error",
    "Number of connections marked as error by the last keep-alive sweep",
)

# =============================================================================
# Audit Metrics
# =============================================================================

audit_write_failures = Counter(
    "beds24_audit_write_failures_total",
    "Audit log entries that could not be persisted",
)
