"""General similarity strategy - renormalized weighted composite.

Used for interactive "possible duplicate" warnings. Each available signal is
normalized to [0, 1] and weighted; the sum is divided by the weights of the
signals that were actually computed, so a candidate with no title or tags is
scored on what it has instead of being penalized for what it lacks.
"""

from __future__ import annotations

from artmatch.core.geo import Coordinates, haversine_distance
from artmatch.core.metrics import record_comparison

from .base import SimilarityStrategy
from .config import SimilarityConfig, get_similarity_config, validate_similarity_config
from .models import (
    CandidateArtwork,
    SimilarityMetadata,
    SimilarityQuery,
    SimilarityResult,
    SimilaritySignal,
    ThresholdLabel,
)
from .tags import tag_overlap
from .text import jaro_winkler_similarity, normalize_title


class DefaultSimilarityStrategy(SimilarityStrategy):
    """Weighted composite of distance, title and tag signals.

    Usage:
        strategy = DefaultSimilarityStrategy()
        result = strategy.calculate_similarity(query, candidate)
        if result.threshold == "high":
            ...  # ask the submitter to confirm
    """

    name = "default"
    version = "1.1.0"

    def __init__(self, config: SimilarityConfig | None = None) -> None:
        """Initialize strategy.

        Args:
            config: Similarity configuration (if None, loads from environment)

        Raises:
            SimilarityConfigurationError: If the configuration is invalid
        """
        super().__init__()
        self.config = config if config is not None else get_similarity_config()
        validate_similarity_config(self.config)

    def calculate_similarity(
        self,
        query: SimilarityQuery,
        candidate: CandidateArtwork,
    ) -> SimilarityResult:
        """Score a candidate against the query.

        The distance signal is always computed. The title signal is computed
        when both records have a title; the tag signal when both have tags
        and the candidate's tags parse to a non-empty set.

        Raises:
            InvalidInputError: If coordinates are not finite or the candidate
                id is blank
        """
        self._validate_inputs(query.coordinates, candidate)

        signals = [self.calculate_distance_signal(query.coordinates, candidate.coordinates)]

        if query.title and candidate.title:
            signals.append(self.calculate_title_signal(query.title, candidate.title))

        candidate_tag_values: list[str] = []
        if query.tags:
            parsed_tags, _ = self._parse_candidate_tags(candidate)
            candidate_tag_values = parsed_tags.values()
        if query.tags and candidate_tag_values:
            signals.append(self.calculate_tag_signal(query.tags, candidate_tag_values))

        overall_score = self.calculate_overall_score(signals)
        threshold = self.classify(overall_score)

        distance = candidate.distance_meters
        if distance is None:
            distance = signals[0].metadata["distance_meters"]

        result = SimilarityResult(
            artwork_id=candidate.id,
            overall_score=overall_score,
            signals=signals,
            threshold=threshold,
            metadata=SimilarityMetadata(
                distance=distance,
                title=candidate.title or None,
                tags=candidate_tag_values,
            ),
        )

        record_comparison(self.name, threshold, overall_score)
        self.logger.debug(
            "Scored candidate",
            artwork_id=candidate.id,
            score=round(overall_score, 4),
            threshold=threshold,
            signals=[signal.type for signal in signals],
        )
        return result

    def calculate_distance_signal(
        self,
        query_coordinates: Coordinates,
        candidate_coordinates: Coordinates,
    ) -> SimilaritySignal:
        """Distance signal: 1 within the optimal distance, decaying linearly to 0 at max."""
        distance = haversine_distance(query_coordinates, candidate_coordinates)
        optimal = self.config.distance.optimal_distance_meters
        maximum = self.config.distance.max_distance_meters

        if distance <= optimal:
            raw_score = 1.0
        elif distance <= maximum:
            raw_score = 1.0 - (distance - optimal) / (maximum - optimal)
        else:
            raw_score = 0.0

        weight = self.config.weights.distance
        return SimilaritySignal(
            type="distance",
            raw_score=raw_score,
            weight=weight,
            weighted_score=raw_score * weight,
            metadata={"distance_meters": distance},
        )

    def calculate_title_signal(self, query_title: str, candidate_title: str) -> SimilaritySignal:
        """Title signal: Jaro-Winkler over stop-word-filtered titles.

        Titles shorter than the configured minimum after normalization score
        0 and are flagged with reason "title_too_short".
        """
        title_config = self.config.title
        weight = self.config.weights.title
        normalized_query = normalize_title(query_title, title_config.stop_words)
        normalized_candidate = normalize_title(candidate_title, title_config.stop_words)

        if (
            len(normalized_query) < title_config.min_title_length
            or len(normalized_candidate) < title_config.min_title_length
        ):
            return SimilaritySignal(
                type="title",
                raw_score=0.0,
                weight=weight,
                weighted_score=0.0,
                metadata={
                    "reason": "title_too_short",
                    "query_normalized": normalized_query,
                    "candidate_normalized": normalized_candidate,
                },
            )

        raw_score = jaro_winkler_similarity(normalized_query, normalized_candidate)
        return SimilaritySignal(
            type="title",
            raw_score=raw_score,
            weight=weight,
            weighted_score=raw_score * weight,
            metadata={
                "query_normalized": normalized_query,
                "candidate_normalized": normalized_candidate,
            },
        )

    def calculate_tag_signal(
        self,
        query_tags: list[str],
        candidate_tags: list[str],
    ) -> SimilaritySignal:
        """Tag signal: Jaccard overlap of lower-cased tag sets."""
        overlap = tag_overlap(query_tags, candidate_tags)
        weight = self.config.weights.tags
        return SimilaritySignal(
            type="tags",
            raw_score=overlap.score,
            weight=weight,
            weighted_score=overlap.score * weight,
            metadata={
                "query_tags": list(query_tags),
                "candidate_tags": list(candidate_tags),
                "common_tags": overlap.common,
                "intersection_size": overlap.intersection_size,
                "union_size": overlap.union_size,
            },
        )

    def calculate_overall_score(self, signals: list[SimilaritySignal]) -> float:
        """Sum of weighted scores divided by the weights actually used."""
        total_score = sum(signal.weighted_score for signal in signals)
        total_weight = sum(signal.weight for signal in signals)
        return total_score / total_weight if total_weight > 0 else 0.0

    def classify(self, score: float) -> ThresholdLabel:
        """Map a composite score to none / warn / high."""
        if score >= self.config.thresholds.high:
            return "high"
        if score >= self.config.thresholds.warn:
            return "warn"
        return "none"
