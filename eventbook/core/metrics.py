"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total reservation attempts',
    ['status']  # success, capacity, conflict, invalid, not_found
)

booking_cancellations = Counter(
    'booking_cancellations_total',
    'Bookings cancelled',
    ['seats_restored']  # yes, no
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Reservation service latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Event metrics
event_mutations = Counter(
    'event_mutations_total',
    'Event writes',
    ['operation']  # create, update, delete
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set/invalidate, hit/miss/error
)


def metrics_endpoint() -> Response:
    """Render the default registry in the Prometheus text format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(status: str):
    """Record reservation attempt. Status: success, capacity, conflict, invalid, not_found"""
    booking_attempts.labels(status=status).inc()


def record_cancellation(seats_restored: bool):
    booking_cancellations.labels(seats_restored="yes" if seats_restored else "no").inc()


def record_event_mutation(operation: str):
    event_mutations.labels(operation=operation).inc()


def record_cache_operation(operation: str, result: str):
    """Record cache operation. Result: hit, miss, error, ok"""
    cache_operations.labels(operation=operation, result=result).inc()
