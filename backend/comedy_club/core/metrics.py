"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

availability_checks = Counter(
    'availability_checks_total',
    'Seat availability evaluations',
    ['result']  # available, unavailable, error
)

booking_attempts = Counter(
    'booking_attempts_total',
    'Seat-consuming booking writes',
    ['status']  # reserved, confirmed, unavailable, error
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Checkout request latency',
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)

booking_retries = Counter(
    'booking_retry_attempts_total',
    'Optimistic lock conflicts on booking_settings'
)

payment_initiations = Counter(
    'payment_initiations_total',
    'Payment session requests sent to the processor',
    ['result']  # success, failed
)

reconciliations = Counter(
    'payment_reconciliations_total',
    'Payment outcomes turned into booking rows',
    ['outcome']  # confirmed, failed, duplicate, expired, error
)

reservations_expired = Counter(
    'reservations_expired_total',
    'Pending bookings cancelled after their booking deadline'
)

cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_availability(available: bool, error: bool = False):
    if error:
        result = "error"
    else:
        result = "available" if available else "unavailable"
    availability_checks.labels(result=result).inc()


def record_booking_attempt(status: str):
    """Status: reserved, confirmed, unavailable, error"""
    booking_attempts.labels(status=status).inc()


def record_payment_initiation(success: bool):
    payment_initiations.labels(result="success" if success else "failed").inc()


def record_reconciliation(outcome: str):
    """Outcome: confirmed, failed, duplicate, expired, error"""
    reconciliations.labels(outcome=outcome).inc()


def record_cache_operation(operation: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
