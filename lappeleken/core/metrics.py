"""
Prometheus metrics for the settlement service.

Metrics exposed:
- Settled / recorded game events
- Live events discarded by ingestion (duplicate, unresolved, unknown type)
- football-data.org success / failure counters
- Active live poll jobs
"""
from prometheus_client import Counter, Gauge

game_events_recorded_total = Counter(
    "game_events_recorded_total",
    "Total game events recorded",
    ["event_type", "source"]
)

game_events_undone_total = Counter(
    "game_events_undone_total",
    "Total game events undone"
)

live_events_discarded_total = Counter(
    "live_events_discarded_total",
    "Live match events discarded during ingestion",
    ["reason"]
)

football_data_requests_success_total = Counter(
    "football_data_requests_success_total",
    "Total successful football-data.org requests"
)

football_data_requests_failure_total = Counter(
    "football_data_requests_failure_total",
    "Total failed football-data.org requests",
    ["error_type"]
)

live_poll_jobs_active = Gauge(
    "live_poll_jobs_active",
    "Number of live match poll jobs currently scheduled"
)

live_poll_failures_total = Counter(
    "live_poll_failures_total",
    "Total failed live match polls",
    ["error_type"]
)
