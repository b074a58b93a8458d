"""Prometheus metrics for dues generation, overdue sweeps, payments and notifier delivery"""

from prometheus_client import Counter, Histogram

from dues_service.domain.models import ReconciliationReport

# Dues lifecycle metrics
dues_generated_counter = Counter(
    "dues_generated_total",
    "Member dues created by reconciliation",
)

dues_generation_failures_counter = Counter(
    "dues_generation_failures_total",
    "Members whose due could not be created",
)

dues_overdue_counter = Counter(
    "dues_marked_overdue_total",
    "Pending dues moved to overdue by the read-time sweep",
)

dues_payment_counter = Counter(
    "dues_payments_total",
    "Dues marked as paid",
    ["method"],
)

# Notifier metrics
notifier_latency_histogram = Histogram(
    "notifier_latency_seconds",
    "Dues notifier webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

notifier_failure_counter = Counter(
    "notifier_failures_total",
    "Failed notifier webhook deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_reconciliation(report: ReconciliationReport) -> None:
    """Record how many dues one reconciliation pass created or failed to create"""
    if report.generated:
        dues_generated_counter.inc(len(report.generated))
    if report.failures:
        dues_generation_failures_counter.inc(len(report.failures))


def record_sweep(updated_count: int) -> None:
    if updated_count:
        dues_overdue_counter.inc(updated_count)


def record_payment(payment_method: str | None) -> None:
    dues_payment_counter.labels(method=payment_method or "manual").inc()
