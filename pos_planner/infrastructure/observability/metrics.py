"""Prometheus metrics for monitoring submissions, schedules and settlement performance"""

from prometheus_client import Counter, Histogram

# Submission metrics
submission_counter = Counter(
    "pos_submission_total",
    "Checkout submissions by outcome",
    ["outcome", "sale_structure"],  # succeeded | failed | blocked
)

schedule_generated_counter = Counter(
    "pos_schedule_generated_total",
    "Installment schedules generated",
    ["frequency"],
)

# Settlement metrics
settlement_latency_histogram = Histogram(
    "settlement_latency_seconds",
    "Settlement Service response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

settlement_failure_counter = Counter(
    "settlement_failures_total",
    "Failed Settlement Service calls",
)

# Directory metrics
directory_fetch_failures_counter = Counter(
    "directory_fetch_failures_total",
    "Failed customer directory / catalog lookups",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_submission(outcome: str, sale_structure: str) -> None:
    """Record submission outcome for monitoring settlement success rates"""
    submission_counter.labels(outcome=outcome, sale_structure=sale_structure).inc()
