"""Prometheus metric definitions shared across the service."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["service", "route", "method"],
)
provider_calls_total = Counter(
    "provider_calls_total",
    "Payments provider calls by operation and outcome",
    ["operation", "outcome"],
)
provider_latency_seconds = Histogram(
    "provider_latency_seconds",
    "Payments provider call latency seconds",
    ["operation"],
)
charges_total = Counter(
    "charges_total",
    "Offering payment attempts by routing path and outcome",
    ["routing", "outcome"],
)
onboarding_completed_total = Counter(
    "onboarding_completed_total",
    "Vendors whose provider onboarding was confirmed complete",
)
payment_links_total = Counter("payment_links_total", "Payment links created", ["source"])


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
