"""Prometheus metrics for kubediag."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# Front-end request metrics
requests_total = Counter(
    "kubediag_requests_total",
    "Total diagnostics operations invoked",
    ["operation", "outcome"],
)

operation_duration_seconds = Histogram(
    "kubediag_operation_duration_seconds",
    "Diagnostics operation duration in seconds",
    ["operation"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

# Aggregate scan metrics
diagnoses_skipped_total = Counter(
    "kubediag_diagnoses_skipped_total",
    "Per-pod diagnoses skipped during aggregate scans",
    ["operation"],
)

# Provider metrics
provider_errors_total = Counter(
    "kubediag_provider_errors_total",
    "Cluster state provider call failures",
    ["call"],
)
