"""Monitoring configuration for WordLab."""
from prometheus_client import Counter, Histogram, start_http_server

# Session metrics
sessions_started = Counter(
    "wordlab_sessions_started_total",
    "Total number of review sessions started",
    ["scope"],
)

sessions_completed = Counter(
    "wordlab_sessions_completed_total",
    "Total number of review sessions that ran through their whole queue",
)

session_duration = Histogram(
    "wordlab_session_duration_seconds",
    "Wall-clock duration of review sessions in seconds",
    buckets=[60, 300, 600, 1800, 3600],  # 1min, 5min, 10min, 30min, 1hour
)

# Card metrics
cards_rated = Counter(
    "wordlab_cards_rated_total",
    "Total number of cards rated",
    ["rating"],
)

cards_undone = Counter(
    "wordlab_cards_undone_total",
    "Total number of ratings reverted with undo",
)

deleted_cards = Counter(
    "wordlab_deleted_cards_total",
    "Cards deleted while on screen, by how the user resolved them",
    ["resolution"],
)

# Store metrics
store_write_failures = Counter(
    "wordlab_store_write_failures_total",
    "Total number of failed store writes",
    ["operation"],
)

# Time tracking metrics
study_seconds_flushed = Counter(
    "wordlab_study_seconds_flushed_total",
    "Active study seconds persisted to the daily counters",
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
