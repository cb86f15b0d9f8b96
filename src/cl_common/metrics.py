"""Prometheus metrics for the card service and queue worker.

All collectors live on a private REGISTRY so tests and the /metrics endpoint
see only this service's series.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    generate_latest,
)

REGISTRY = CollectorRegistry()

# Error log writes that failed (the original error is still re-raised)
error_record_failures_total = Counter(
    name="card_error_record_failures_total",
    documentation="ErrorRecord writes that failed, by failing operation",
    labelnames=["operation"],
    registry=REGISTRY,
)

worker_messages_total = Counter(
    name="card_worker_messages_total",
    documentation="Queue messages handled by the worker",
    labelnames=["queue", "outcome"],  # outcome: ok, dead_lettered, requeued, dropped
    registry=REGISTRY,
)


def operation_label(context: str | None) -> str:
    """'PurchaseAsync: merchant=a, amount=1' -> 'PurchaseAsync'."""
    if not context:
        return "unknown"
    return context.split(":", 1)[0].strip() or "unknown"


def generate_metrics() -> bytes:
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    return CONTENT_TYPE_LATEST
