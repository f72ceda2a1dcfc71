"""Prometheus metrics for the Auth Service. Module level so they register once per process."""

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "auth_requests_total",
    "Total requests processed by Auth Service",
    ["method", "endpoint", "status_code"]
)
REQUEST_LATENCY = Histogram(
    "auth_request_latency_seconds",
    "Request latency in seconds for Auth Service",
    ["endpoint"]
)
# operation: register | login | verify; outcome: success or the error class name
OPERATION_COUNT = Counter(
    "auth_operations_total",
    "Auth operations by outcome",
    ["operation", "outcome"]
)
