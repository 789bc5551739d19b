"""Tests for the batch scoring service and strategy factories."""

from __future__ import annotations

import math

import pytest

from artmatch.core.geo import EARTH_RADIUS_METERS, Coordinates
from artmatch.core.similarity.config import DEFAULT_BULK_IMPORT_CONFIG, DEFAULT_SIMILARITY_CONFIG
from artmatch.core.similarity.default import DefaultSimilarityStrategy
from artmatch.core.similarity.errors import SimilarityCalculationError
from artmatch.core.similarity.factory import (
    create_bulk_import_similarity_strategy,
    create_dev_similarity_strategy,
    create_similarity_service,
)
from artmatch.core.similarity.models import BulkImportQuery, CandidateArtwork, SimilarityQuery
from artmatch.core.similarity.service import SimilarityService

ORIGIN = Coordinates(lat=49.2827, lon=-123.1207)


def north_of(origin: Coordinates, meters: float) -> Coordinates:
    """Coordinates the given number of meters due north of origin."""
    return Coordinates(lat=origin.lat + math.degrees(meters / EARTH_RADIUS_METERS), lon=origin.lon)


@pytest.fixture
def query() -> SimilarityQuery:
    """General query at the origin."""
    return SimilarityQuery(coordinates=ORIGIN, title="Red Horse", tags=["bronze"])


@pytest.fixture
def candidates() -> list[CandidateArtwork]:
    """Candidates classified high, warn and none by the default config."""
    return [
        # 525m away, title and tags unrelated: none
        CandidateArtwork(
            id="far",
            coordinates=north_of(ORIGIN, 525),
            title="Blue Whale",
            tags='["paint"]',
        ),
        # Same spot, identical title and tags: high
        CandidateArtwork(
            id="same",
            coordinates=ORIGIN,
            title="Red Horse",
            tags='["bronze"]',
        ),
        # 480m away, identical title, no tags: warn
        CandidateArtwork(id="near", coordinates=north_of(ORIGIN, 480), title="Red Horse"),
    ]


@pytest.fixture
def service() -> SimilarityService:
    """Service around the default strategy."""
    return SimilarityService(DefaultSimilarityStrategy(DEFAULT_SIMILARITY_CONFIG))


class TestScoreCandidates:
    """Test batch scoring."""

    def test_results_are_sorted(self, service, query, candidates):
        """Test results come back highest score first."""
        batch = service.score_candidates(query, candidates)

        assert [r.artwork_id for r in batch.results] == ["same", "near", "far"]
        assert [r.threshold for r in batch.results] == ["high", "warn", "none"]
        assert batch.failures == []

    def test_invalid_candidate_is_recorded(self, service, query, candidates):
        """Test one invalid candidate does not abort the batch."""
        broken = CandidateArtwork(id="broken", coordinates=Coordinates(lat=math.nan, lon=0.0))

        batch = service.score_candidates(query, [broken, *candidates])

        assert len(batch.results) == 3
        assert batch.failed_ids == ["broken"]
        failure = batch.failures[0]
        assert isinstance(failure, SimilarityCalculationError)
        assert failure.code == "SIMILARITY_CALCULATION_FAILED"
        assert failure.context["cause_code"] == "SIMILARITY_INPUT_INVALID"
        assert failure.context["field"] == "candidate.coordinates.lat"
        assert failure.to_dict()["cause"]["name"] == "InvalidInputError"

    def test_malformed_tags_do_not_fail(self, service, query):
        """Test unparsable tags degrade the signal instead of failing the candidate."""
        candidate = CandidateArtwork(id="art-1", coordinates=ORIGIN, tags="not json")

        batch = service.score_candidates(query, [candidate])

        assert batch.failures == []
        assert batch.results[0].signal("tags") is None

    def test_undecodable_tags_do_not_fail(self, service, query, candidates):
        """Test tag payloads the JSON decoder rejects degrade instead of failing the batch."""
        oversized = CandidateArtwork(id="oversized", coordinates=ORIGIN, tags="1" * 5000)
        nested = CandidateArtwork(
            id="nested",
            coordinates=ORIGIN,
            tags="[" * 100000 + "]" * 100000,
        )

        batch = service.score_candidates(query, [oversized, nested, *candidates])

        assert batch.failures == []
        assert len(batch.results) == 5
        scored = {r.artwork_id: r for r in batch.results}
        assert scored["oversized"].signal("tags") is None
        assert scored["nested"].signal("tags") is None

    def test_unexpected_error_is_recorded(self, query, candidates):
        """Test an unexpected exception for one candidate does not abort the batch."""

        class FlakyStrategy(DefaultSimilarityStrategy):
            def calculate_similarity(self, query, candidate):
                if candidate.id == "bad":
                    raise RuntimeError("scoring backend exploded")
                return super().calculate_similarity(query, candidate)

        service = SimilarityService(FlakyStrategy(DEFAULT_SIMILARITY_CONFIG))
        bad = CandidateArtwork(id="bad", coordinates=ORIGIN)

        batch = service.score_candidates(query, [bad, *candidates])

        assert [r.artwork_id for r in batch.results] == ["same", "near", "far"]
        assert batch.failed_ids == ["bad"]
        failure = batch.failures[0]
        assert failure.context["cause_code"] == "UNKNOWN_ERROR"
        assert failure.context["cause_type"] == "RuntimeError"
        assert isinstance(failure.__cause__, RuntimeError)

    def test_max_candidates(self, query, candidates):
        """Test only the first max_candidates candidates are compared."""
        service = SimilarityService(
            DefaultSimilarityStrategy(DEFAULT_SIMILARITY_CONFIG),
            max_candidates=2,
        )

        results = service.calculate_similarity_scores(query, candidates)

        assert [r.artwork_id for r in results] == ["same", "far"]

    def test_negative_max_candidates(self):
        """Test a negative limit is rejected."""
        with pytest.raises(ValueError):
            SimilarityService(DefaultSimilarityStrategy(DEFAULT_SIMILARITY_CONFIG), max_candidates=-1)

    def test_signal_metadata_stripped_by_default(self, service, query, candidates):
        """Test per-signal metadata is dropped unless requested."""
        results = service.calculate_similarity_scores(query, candidates)

        assert all(signal.metadata == {} for r in results for signal in r.signals)
        assert results[0].metadata.title == "Red Horse"

    def test_signal_metadata_kept_on_request(self, query, candidates):
        """Test per-signal metadata is kept with include_metadata."""
        service = SimilarityService(
            DefaultSimilarityStrategy(DEFAULT_SIMILARITY_CONFIG),
            include_metadata=True,
        )

        results = service.calculate_similarity_scores(query, candidates)

        distance = results[0].signal("distance")
        assert distance is not None
        assert "distance_meters" in distance.metadata


class TestFilters:
    """Test high and warning match helpers."""

    def test_high_matches(self, service, query, candidates):
        """Test only high matches are returned."""
        matches = service.find_high_similarity_matches(query, candidates)
        assert [r.artwork_id for r in matches] == ["same"]

    def test_warning_matches(self, service, query, candidates):
        """Test warn and high matches are returned."""
        matches = service.find_warning_matches(query, candidates)
        assert [r.artwork_id for r in matches] == ["same", "near"]


class TestFactories:
    """Test strategy and service factories."""

    def test_dev_strategy(self):
        """Test the dev strategy uses the lenient thresholds."""
        strategy = create_dev_similarity_strategy()
        assert strategy.config.thresholds.warn == 0.5
        assert strategy.config.thresholds.high == 0.7

    def test_bulk_import_service(self):
        """Test a service wrapping the bulk-import strategy."""
        strategy = create_bulk_import_similarity_strategy(DEFAULT_BULK_IMPORT_CONFIG)
        service = create_similarity_service(strategy, include_metadata=True)
        query = BulkImportQuery(coordinates=ORIGIN, title="Red Horse", artist="Jane Doe")
        candidate = CandidateArtwork(
            id="art-1",
            coordinates=ORIGIN,
            title="Red Horse",
            tags={"artist": "Jane Doe"},
        )

        matches = service.find_high_similarity_matches(query, [candidate])

        assert [r.artwork_id for r in matches] == ["art-1"]
        assert matches[0].overall_score == pytest.approx(0.8)
        assert service.max_candidates is None
