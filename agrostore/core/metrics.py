"""
Prometheus metrics for the marketplace service.

Tracks HTTP traffic, payments, orders, listing limits and plan changes.
"""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# Request metrics
http_requests_total = Counter(
    "agrostore_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "agrostore_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.075, 0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0),
)

# Marketplace metrics
payment_outcomes_total = Counter(
    "agrostore_payment_outcomes_total",
    "Payment authorization outcomes",
    ["outcome"],
)

orders_created_total = Counter(
    "agrostore_orders_created_total",
    "Orders created after successful payment",
    ["delivery_option"],
)

order_transitions_total = Counter(
    "agrostore_order_transitions_total",
    "Order status transitions applied",
    ["status"],
)

listing_limit_rejections_total = Counter(
    "agrostore_listing_limit_rejections_total",
    "Product creations rejected by the plan listing limit",
    ["plan"],
)

subscription_changes_total = Counter(
    "agrostore_subscription_changes_total",
    "Subscription plan changes",
    ["plan"],
)


def track_request_metrics(method: str, endpoint: str, status_code: int, duration: float):
    """Track HTTP request metrics."""
    http_requests_total.labels(method=method, endpoint=endpoint, status=status_code).inc()
    http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)


async def metrics_endpoint() -> Response:
    """Render all registered metrics in Prometheus text format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
