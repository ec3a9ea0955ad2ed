"""Prometheus metrics for the translation pipeline."""

from prometheus_client import Counter, Gauge, Histogram

translation_requests_total = Counter(
    "translation_requests_total",
    "Translation requests by content type and outcome",
    ["type", "outcome"],
)

translation_texts_total = Counter(
    "translation_texts_total",
    "Texts received by translation requests, before deduplication",
    ["type"],
)

translation_duplicates_removed_total = Counter(
    "translation_duplicates_removed_total",
    "Duplicate texts removed before translation",
)

translation_sensitive_data_total = Counter(
    "translation_sensitive_data_total",
    "Texts that had sensitive data scrubbed before translation",
)

translation_cache_lookups_total = Counter(
    "translation_cache_lookups_total",
    "Cache consult outcomes per text",
    ["result"],
)

translation_failures_total = Counter(
    "translation_failures_total",
    "Texts that degraded to passthrough after a provider failure",
    ["type"],
)

translation_pipeline_duration_seconds = Histogram(
    "translation_pipeline_duration_seconds",
    "Duration of complete pipeline runs",
    ["type"],
    buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30, 60),
)

translation_stage_duration_seconds = Histogram(
    "translation_stage_duration_seconds",
    "Duration of individual pipeline stages",
    ["stage"],
    buckets=(0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1, 5, 30),
)

translation_provider_calls_total = Counter(
    "translation_provider_calls_total",
    "Provider calls by outcome (success, failure, timeout, rejected)",
    ["outcome"],
)

translation_provider_retries_total = Counter(
    "translation_provider_retries_total",
    "Provider call retries scheduled after a transient failure",
)

circuit_breaker_state = Gauge(
    "translation_circuit_breaker_state",
    "Provider circuit breaker state (0=closed, 1=half-open, 2=open)",
    ["breaker"],
)

circuit_breaker_transitions_total = Counter(
    "translation_circuit_breaker_transitions_total",
    "Provider circuit breaker state transitions",
    ["breaker", "from_state", "to_state"],
)
