"""
Prometheus metrics for the registry service.

Tracks allocations, registrations, authorization faults and request performance.
"""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# Request metrics
http_requests_total = Counter(
    "optiid_http_requests_total", "Total HTTP requests", ["method", "endpoint", "status"]
)

http_request_duration_seconds = Histogram(
    "optiid_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# Allocation metrics
allocations_total = Counter("optiid_allocations_total", "Allocate requests", ["status"])

probe_attempts_total = Counter(
    "optiid_probe_attempts_total", "Availability probes performed while allocating"
)

# Registry metrics
registrations_total = Counter(
    "optiid_registrations_total", "Registration attempts", ["kind", "status"]
)

authorization_faults_total = Counter(
    "optiid_authorization_faults_total", "Rejected authorizations", ["code"]
)

transfers_total = Counter("optiid_transfers_total", "Domain transfers", ["status"])


def track_request_metrics(method: str, endpoint: str, status_code: int, duration: float) -> None:
    """
    Track HTTP request metrics.

    Args:
        method: HTTP method
        endpoint: Route path
        status_code: Response status code
        duration: Request duration in seconds
    """
    http_requests_total.labels(method=method, endpoint=endpoint, status=str(status_code)).inc()
    http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)


async def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Returns:
        Response with Prometheus metrics in text format
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
