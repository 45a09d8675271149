"""Prometheus metrics for platform API calls"""

from prometheus_client import Counter, Histogram

api_request_counter = Counter(
    "mambu_api_requests_total",
    "Platform API calls attempted",
    ["method", "operation", "outcome"],  # success | api_error | transport_error | decode_error
)

api_request_latency_histogram = Histogram(
    "mambu_api_request_duration_seconds",
    "Platform API round-trip time",
    ["method", "operation"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

collection_items_counter = Counter(
    "mambu_collection_replace_items_total",
    "Sub-collection items resent by replace calls",
    ["collection", "intent"],  # keep | create
)


def record_api_call(method: str, operation: str, outcome: str, duration_seconds: float) -> None:
    """Record one platform call"""
    api_request_counter.labels(method=method, operation=operation, outcome=outcome).inc()
    api_request_latency_histogram.labels(method=method, operation=operation).observe(duration_seconds)


def record_collection_replace(collection: str, kept: int, created: int) -> None:
    collection_items_counter.labels(collection=collection, intent="keep").inc(kept)
    collection_items_counter.labels(collection=collection, intent="create").inc(created)
