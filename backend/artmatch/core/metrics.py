"""Prometheus metrics for similarity scoring."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# Comparisons that produced a result, by strategy and classification label
similarity_comparisons_total = Counter(
    "similarity_comparisons_total",
    "Total number of candidate comparisons scored",
    ["strategy", "classification"],
)

# Comparisons that could not be scored (invalid input)
similarity_comparison_failures_total = Counter(
    "similarity_comparison_failures_total",
    "Total number of candidate comparisons rejected before scoring",
    ["strategy", "reason"],
)

# Candidate tag payloads that could not be parsed (signal degraded to zero)
similarity_tag_parse_failures_total = Counter(
    "similarity_tag_parse_failures_total",
    "Total number of candidate tag payloads that failed to parse",
    ["strategy"],
)

similarity_score = Histogram(
    "similarity_score",
    "Distribution of overall similarity scores",
    ["strategy"],
    buckets=(0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.65, 0.7, 0.8, 0.9, 1.0, 1.5),
)


def record_comparison(strategy: str, classification: str, score: float) -> None:
    """Record a scored comparison.

    Args:
        strategy: Strategy name (e.g., "default", "bulk_import")
        classification: Threshold label assigned to the result
        score: Overall score of the result
    """
    similarity_comparisons_total.labels(strategy=strategy, classification=classification).inc()
    similarity_score.labels(strategy=strategy).observe(score)


def record_comparison_failure(strategy: str, reason: str) -> None:
    """Record a comparison that was rejected before scoring."""
    similarity_comparison_failures_total.labels(strategy=strategy, reason=reason).inc()


def record_tag_parse_failure(strategy: str) -> None:
    """Record a candidate tag payload that could not be parsed."""
    similarity_tag_parse_failures_total.labels(strategy=strategy).inc()
