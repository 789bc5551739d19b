"""Tests for similarity metrics."""

from __future__ import annotations

import math

import pytest
from prometheus_client import REGISTRY

from artmatch.core.geo import Coordinates
from artmatch.core.similarity.bulk_import import BulkImportSimilarityStrategy
from artmatch.core.similarity.config import DEFAULT_BULK_IMPORT_CONFIG, DEFAULT_SIMILARITY_CONFIG
from artmatch.core.similarity.default import DefaultSimilarityStrategy
from artmatch.core.similarity.errors import InvalidInputError
from artmatch.core.similarity.models import BulkImportQuery, CandidateArtwork, SimilarityQuery

ORIGIN = Coordinates(lat=49.2827, lon=-123.1207)


def sample(name: str, **labels: str) -> float:
    """Current value of a metric sample (0 when it has not been recorded yet)."""
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_comparison_counted_by_classification() -> None:
    """Test a scored comparison increments the counter for its label."""
    strategy = DefaultSimilarityStrategy(DEFAULT_SIMILARITY_CONFIG)
    labels = {"strategy": "default", "classification": "high"}
    before = sample("similarity_comparisons_total", **labels)
    observed_before = sample("similarity_score_count", strategy="default")

    strategy.calculate_similarity(
        SimilarityQuery(coordinates=ORIGIN),
        CandidateArtwork(id="art-1", coordinates=ORIGIN),
    )

    assert sample("similarity_comparisons_total", **labels) == before + 1
    assert sample("similarity_score_count", strategy="default") == observed_before + 1


def test_invalid_input_counted() -> None:
    """Test rejected comparisons increment the failure counter."""
    strategy = BulkImportSimilarityStrategy(DEFAULT_BULK_IMPORT_CONFIG)
    labels = {"strategy": "bulk_import", "reason": "invalid_input"}
    before = sample("similarity_comparison_failures_total", **labels)

    with pytest.raises(InvalidInputError):
        strategy.calculate_similarity(
            BulkImportQuery(coordinates=ORIGIN),
            CandidateArtwork(id="art-1", coordinates=Coordinates(lat=math.nan, lon=0.0)),
        )

    assert sample("similarity_comparison_failures_total", **labels) == before + 1


def test_tag_parse_failure_counted() -> None:
    """Test unparsable candidate tags increment the parse failure counter."""
    strategy = DefaultSimilarityStrategy(DEFAULT_SIMILARITY_CONFIG)
    before = sample("similarity_tag_parse_failures_total", strategy="default")

    strategy.calculate_similarity(
        SimilarityQuery(coordinates=ORIGIN, tags=["bronze"]),
        CandidateArtwork(id="art-1", coordinates=ORIGIN, tags="{broken"),
    )

    assert sample("similarity_tag_parse_failures_total", strategy="default") == before + 1


def test_candidate_tags_not_parsed_without_query_tags() -> None:
    """Test candidate tags are left unparsed when the query has no tags."""
    strategy = DefaultSimilarityStrategy(DEFAULT_SIMILARITY_CONFIG)
    before = sample("similarity_tag_parse_failures_total", strategy="default")

    result = strategy.calculate_similarity(
        SimilarityQuery(coordinates=ORIGIN),
        CandidateArtwork(id="art-1", coordinates=ORIGIN, tags="not json"),
    )

    assert sample("similarity_tag_parse_failures_total", strategy="default") == before
    assert result.metadata.tags == []
