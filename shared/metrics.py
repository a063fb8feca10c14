"""Prometheus metrics for pipeline observability.

Counters and histograms at each pipeline stage and for the derived reports.
Exposed via /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, make_asgi_app

# Pipeline counters
ingestion_samples_total = Counter(
    "ingestion_samples_total",
    "Total samples seen by the ingestion pipeline",
    ["kind", "status"],  # status: accepted, skipped
)

ingestion_records_total = Counter(
    "ingestion_records_total",
    "Total canonical day records produced by the ingestion pipeline",
    ["status"],  # status: upserted, empty_batch
)

unclassified_metrics_total = Counter(
    "unclassified_metrics_total",
    "Metric series whose name did not map to a canonical kind",
)

# Derived report counters
readiness_computed_total = Counter(
    "readiness_computed_total",
    "Readiness results computed",
    ["status"],
)

weekly_reports_total = Counter(
    "weekly_reports_total",
    "Weekly reports generated",
    ["status"],
)

# API counters
api_requests_total = Counter(
    "api_requests_total",
    "Total API requests",
    ["endpoint", "method", "status_code"],
)

# Histograms
pipeline_duration_seconds = Histogram(
    "pipeline_duration_seconds",
    "Duration of the full ingestion pipeline",
)

api_response_duration_seconds = Histogram(
    "api_response_duration_seconds",
    "Duration of API responses",
    ["endpoint"],
)


def create_metrics_app():
    """Create ASGI app for /metrics endpoint."""
    return make_asgi_app()
