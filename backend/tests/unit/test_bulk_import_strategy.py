"""Tests for the bulk-import (point budget) similarity strategy."""

from __future__ import annotations

import math
from dataclasses import replace

import pytest

from artmatch.core.geo import EARTH_RADIUS_METERS, Coordinates
from artmatch.core.similarity.bulk_import import BulkImportSimilarityStrategy
from artmatch.core.similarity.config import DEFAULT_BULK_IMPORT_CONFIG
from artmatch.core.similarity.errors import InvalidInputError, SimilarityConfigurationError
from artmatch.core.similarity.models import BulkImportQuery, CandidateArtwork

ORIGIN = Coordinates(lat=49.2827, lon=-123.1207)


def north_of(origin: Coordinates, meters: float) -> Coordinates:
    """Coordinates the given number of meters due north of origin."""
    return Coordinates(lat=origin.lat + math.degrees(meters / EARTH_RADIUS_METERS), lon=origin.lon)


@pytest.fixture
def strategy() -> BulkImportSimilarityStrategy:
    """Bulk-import strategy with the default point budgets."""
    return BulkImportSimilarityStrategy(DEFAULT_BULK_IMPORT_CONFIG)


@pytest.fixture
def red_horse_query() -> BulkImportQuery:
    """Import record for the Red Horse sculpture."""
    return BulkImportQuery(coordinates=ORIGIN, title="Red Horse", artist="Jane Doe")


def red_horse_candidate(meters: float = 10.0, tags: object = None) -> CandidateArtwork:
    """Archived Red Horse, credited to two artists, the given distance away."""
    return CandidateArtwork(
        id="art-42",
        coordinates=north_of(ORIGIN, meters),
        title="Red Horse",
        tags=tags if tags is not None else '{"artist": "Jane Doe, John Smith"}',
    )


class TestCalculateSimilarity:
    """Test point-budget scoring."""

    def test_red_horse_ten_meters_away(self, strategy, red_horse_query):
        """Test title, artist and 10m location add up to 0.64, below the threshold."""
        result = strategy.calculate_similarity(red_horse_query, red_horse_candidate())

        breakdown = result.score_breakdown
        assert breakdown.title == pytest.approx(0.25)
        assert breakdown.artist == pytest.approx(0.15)
        assert breakdown.location == pytest.approx(0.24, abs=1e-6)
        assert breakdown.tags == 0.0
        assert result.overall_score == pytest.approx(0.64, abs=1e-6)
        assert result.is_duplicate is False
        assert result.threshold == "none"
        assert result.duplicate_threshold == 0.7

    def test_same_location_is_duplicate(self, strategy, red_horse_query):
        """Test an exact location match pushes the total over the threshold."""
        result = strategy.calculate_similarity(red_horse_query, red_horse_candidate(meters=0.0))

        assert result.overall_score == pytest.approx(0.8)
        assert result.is_duplicate is True
        assert result.threshold == "high"
        assert result.existing_artwork_id == "art-42"
        assert result.existing_artwork_url == "https://art.abluestar.com/artwork/art-42"

    def test_caller_threshold(self, strategy, red_horse_query):
        """Test a caller-supplied threshold replaces the default."""
        result = strategy.calculate_similarity(red_horse_query, red_horse_candidate(), threshold=0.6)

        assert result.is_duplicate is True
        assert result.duplicate_threshold == 0.6

    @pytest.mark.parametrize("threshold", [math.nan, math.inf, "0.7"])
    def test_invalid_threshold(self, strategy, red_horse_query, threshold):
        """Test non-finite or non-numeric thresholds are rejected."""
        with pytest.raises(InvalidInputError) as exc_info:
            strategy.calculate_similarity(red_horse_query, red_horse_candidate(), threshold=threshold)
        assert exc_info.value.field == "threshold"

    def test_malformed_tags_zero_tag_and_artist_points(self, strategy, red_horse_query):
        """Test unparsable tags never throw and give no tag or artist points."""
        query = red_horse_query.model_copy(update={"tags": {"material": "steel"}})
        result = strategy.calculate_similarity(query, red_horse_candidate(tags="not json"))

        assert result.score_breakdown.tags == 0.0
        assert result.score_breakdown.artist == 0.0
        assert result.signal("artist") is None
        assert result.overall_score == pytest.approx(0.25 + 0.24, abs=1e-6)

    @pytest.mark.parametrize("raw_tags", ["1" * 5000, "[" * 100000 + "]" * 100000])
    def test_undecodable_tags_zero_tag_and_artist_points(self, strategy, red_horse_query, raw_tags):
        """Test oversized or deeply nested tag payloads are treated as malformed."""
        query = red_horse_query.model_copy(update={"tags": {"material": "steel"}})
        result = strategy.calculate_similarity(query, red_horse_candidate(tags=raw_tags))

        assert result.score_breakdown.tags == 0.0
        assert result.score_breakdown.artist == 0.0
        assert result.overall_score == pytest.approx(0.25 + 0.24, abs=1e-6)

    def test_location_beyond_radius(self, strategy, red_horse_query):
        """Test location points bottom out at zero past the radius."""
        result = strategy.calculate_similarity(red_horse_query, red_horse_candidate(meters=40.0))

        location = result.signal("distance")
        assert location is not None
        assert location.raw_score == 0.0
        assert result.score_breakdown.location == 0.0

    def test_tag_points(self, strategy, red_horse_query):
        """Test each matching query tag earns the per-tag budget."""
        query = red_horse_query.model_copy(
            update={"tags": {"artist": "Jane Doe", "material": "bronze", "lit": "yes"}}
        )
        candidate = red_horse_candidate(tags='{"artist": "Jane Doe, John Smith", "material": "Bronze"}')

        result = strategy.calculate_similarity(query, candidate)

        tags = result.signal("tags")
        assert tags is not None
        assert tags.metadata["match_count"] == 2
        assert tags.raw_score == pytest.approx(2 / 3)
        assert result.score_breakdown.tags == pytest.approx(0.08)
        assert result.overall_score == pytest.approx(0.72, abs=1e-6)
        assert result.is_duplicate is True

    def test_tag_points_are_uncapped(self, strategy):
        """Test many matching tags can push the total past 1."""
        query_tags = {f"label{i}": f"value{i}" for i in range(30)}
        query = BulkImportQuery(coordinates=ORIGIN, tags=query_tags)
        candidate = CandidateArtwork(id="art-1", coordinates=ORIGIN, tags=query_tags)

        result = strategy.calculate_similarity(query, candidate)

        assert result.score_breakdown.tags == pytest.approx(30 * 0.04)
        assert result.overall_score > 1.0

    def test_artist_from_created_by(self, strategy, red_horse_query):
        """Test the artist credit is read from created_by when artist is absent."""
        candidate = red_horse_candidate(tags='{"tags": {"created_by": "J. Doe & Jane Doe"}}')

        result = strategy.calculate_similarity(red_horse_query, candidate)

        artist = result.signal("artist")
        assert artist is not None
        assert artist.raw_score == 1.0
        assert artist.metadata["matched_candidate_name"] == "Jane Doe"

    def test_missing_title_earns_nothing(self, strategy):
        """Test an absent title contributes zero instead of being renormalized."""
        query = BulkImportQuery(coordinates=ORIGIN)
        candidate = CandidateArtwork(id="art-1", coordinates=ORIGIN, title="Red Horse")

        result = strategy.calculate_similarity(query, candidate)

        assert result.signal("title") is None
        assert result.overall_score == pytest.approx(0.4)

    def test_metadata_snapshot(self, strategy, red_horse_query):
        """Test the candidate snapshot in the result metadata."""
        result = strategy.calculate_similarity(red_horse_query, red_horse_candidate())

        assert result.metadata.title == "Red Horse"
        assert result.metadata.tags == ["artist=Jane Doe, John Smith"]
        assert result.metadata.distance == pytest.approx(10.0, abs=1e-6)

    def test_idempotent(self, strategy, red_horse_query):
        """Test identical inputs produce identical results."""
        candidate = red_horse_candidate()
        first = strategy.calculate_similarity(red_horse_query, candidate)
        second = strategy.calculate_similarity(red_horse_query, candidate)
        assert first.model_dump() == second.model_dump()

    def test_invalid_coordinates(self, strategy, red_horse_query):
        """Test non-finite candidate coordinates are rejected."""
        candidate = CandidateArtwork(id="art-1", coordinates=Coordinates(lat=math.nan, lon=0.0))
        with pytest.raises(InvalidInputError):
            strategy.calculate_similarity(red_horse_query, candidate)

    def test_base_url_from_config(self, red_horse_query):
        """Test the artwork URL uses the configured base URL."""
        config = replace(DEFAULT_BULK_IMPORT_CONFIG, base_url="https://example.org/")
        strategy = BulkImportSimilarityStrategy(config)

        result = strategy.calculate_similarity(red_horse_query, red_horse_candidate())

        assert result.existing_artwork_url == "https://example.org/artwork/art-42"

    def test_invalid_config_fails_at_construction(self):
        """Test a non-positive radius is rejected up front."""
        config = replace(DEFAULT_BULK_IMPORT_CONFIG, location_radius_meters=0.0)
        with pytest.raises(SimilarityConfigurationError):
            BulkImportSimilarityStrategy(config)


class TestFindBestDuplicate:
    """Test picking the best match across candidates."""

    def test_best_candidate_wins(self, strategy, red_horse_query):
        """Test the highest-scoring candidate is reported, skipping invalid ones."""
        far = CandidateArtwork(id="far", coordinates=north_of(ORIGIN, 500), title="Blue Whale")
        exact = red_horse_candidate(meters=0.0)
        broken = CandidateArtwork(id="broken", coordinates=Coordinates(lat=math.inf, lon=0.0))

        check = strategy.find_best_duplicate(red_horse_query, [far, broken, exact])

        assert check.is_duplicate is True
        assert check.candidates_checked == 3
        assert check.existing_id == "art-42"
        assert check.confidence_score == pytest.approx(0.8)
        assert check.score_breakdown is not None
        assert check.score_breakdown.location == pytest.approx(0.4)
        assert check.failed_candidate_ids == ["broken"]

    def test_best_match_below_threshold(self, strategy, red_horse_query):
        """Test a best match under the threshold is reported but not a duplicate."""
        check = strategy.find_best_duplicate(red_horse_query, [red_horse_candidate()])

        assert check.is_duplicate is False
        assert check.existing_id is None
        assert check.confidence_score == pytest.approx(0.64, abs=1e-6)
        assert check.best_match is not None
        assert check.best_match.artwork_id == "art-42"

    def test_unexpected_error_skips_candidate(self, strategy, red_horse_query, monkeypatch):
        """Test an unexpected exception for one candidate does not abort the check."""
        calculate = strategy.calculate_similarity

        def flaky_calculate(query, candidate, threshold=None):
            if candidate.id == "bad":
                raise RuntimeError("scoring backend exploded")
            return calculate(query, candidate, threshold)

        monkeypatch.setattr(strategy, "calculate_similarity", flaky_calculate)
        bad = CandidateArtwork(id="bad", coordinates=ORIGIN, title="Red Horse")

        check = strategy.find_best_duplicate(red_horse_query, [bad, red_horse_candidate(meters=0.0)])

        assert check.candidates_checked == 2
        assert check.failed_candidate_ids == ["bad"]
        assert check.existing_id == "art-42"
        assert check.is_duplicate is True

    def test_no_candidates(self, strategy, red_horse_query):
        """Test an empty candidate set."""
        check = strategy.find_best_duplicate(red_horse_query, [])

        assert check.is_duplicate is False
        assert check.candidates_checked == 0
        assert check.confidence_score is None

    def test_invalid_threshold_raises(self, strategy, red_horse_query):
        """Test a bad threshold fails the whole check rather than every candidate."""
        with pytest.raises(InvalidInputError):
            strategy.find_best_duplicate(red_horse_query, [red_horse_candidate()], threshold=math.nan)
