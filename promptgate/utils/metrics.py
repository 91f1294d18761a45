"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
access_checks_total = Counter(
    "access_checks_total",
    "Total access status checks",
    ["outcome"],  # granted, denied, error
)

code_redemptions_total = Counter(
    "code_redemptions_total",
    "Total access code redemption attempts",
    ["outcome"],  # accepted, rejected, error
)

access_grants_total = Counter(
    "access_grants_total",
    "Total payment-triggered access grants",
    ["outcome"],  # granted, failed
)

access_revocations_total = Counter(
    "access_revocations_total",
    "Total access revocations (logout)",
)

payment_verifications_total = Counter(
    "payment_verifications_total",
    "Total payment verification attempts",
    ["kind", "outcome"],  # kind: payment, subscription; outcome: success, failure, cached
)

inference_requests_total = Counter(
    "inference_requests_total",
    "Total inference API requests",
    ["provider", "status"],
)

circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open)",
    ["name"],
)

# Histograms
payment_verification_duration_seconds = Histogram(
    "payment_verification_duration_seconds",
    "Payment authority round-trip duration",
    ["kind"],
    buckets=[0.1, 0.5, 1, 2, 5, 10, 30],
)

inference_request_duration_seconds = Histogram(
    "inference_request_duration_seconds",
    "Inference API request duration",
    ["provider"],
    buckets=[1, 5, 10, 30, 60, 120],
)


# Metrics endpoint router
router = APIRouter()


@router.get("/metrics")
def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint for scraping."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
