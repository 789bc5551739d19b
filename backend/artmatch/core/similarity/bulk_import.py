"""Bulk-import similarity strategy - fixed additive point budget.

Used to auto-reject duplicates during automated imports. Each signal earns
points up to its budget and the total is a plain sum; missing signals simply
earn nothing (there is no renormalization, unlike the general strategy).

Default budgets:
- Title match: up to 0.25 (edit-distance similarity)
- Artist match: up to 0.15 (best pair of names, artist read from tags)
- Location proximity: up to 0.40, decaying linearly to 0 at 25m
- Tag matches: 0.04 per matching tag, uncapped
- Duplicate threshold: 0.7 unless the caller passes one
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from artmatch.core.geo import Coordinates, haversine_distance
from artmatch.core.metrics import record_comparison

from .base import SimilarityStrategy
from .config import BulkImportConfig, get_bulk_import_config, validate_bulk_import_config
from .errors import InvalidInputError, SimilarityError
from .models import (
    BulkImportQuery,
    BulkImportScoreBreakdown,
    BulkImportSimilarityResult,
    CandidateArtwork,
    DuplicateCheckResult,
    SimilarityMetadata,
    SimilaritySignal,
)
from .tags import extract_artist, match_tags
from .text import best_artist_match, levenshtein_similarity, normalize_text


class BulkImportSimilarityStrategy(SimilarityStrategy):
    """Point-budget scorer for import-time duplicate rejection.

    Usage:
        strategy = BulkImportSimilarityStrategy()
        result = strategy.calculate_similarity(query, candidate)
        if result.is_duplicate:
            ...  # caller decides whether to skip or merge
    """

    name = "bulk_import"
    version = "2.0.0"

    def __init__(self, config: BulkImportConfig | None = None) -> None:
        """Initialize strategy.

        Args:
            config: Point budgets (if None, loads from environment)

        Raises:
            SimilarityConfigurationError: If the configuration is invalid
        """
        super().__init__()
        self.config = config if config is not None else get_bulk_import_config()
        validate_bulk_import_config(self.config)

    def calculate_similarity(
        self,
        query: BulkImportQuery,
        candidate: CandidateArtwork,
        threshold: float | None = None,
    ) -> BulkImportSimilarityResult:
        """Score an import record against one archived artwork.

        Args:
            query: Import record
            candidate: Archived artwork; its tags are expected as a label ->
                value JSON object, and its artist credit is read from the
                "artist" or "created_by" tag
            threshold: Duplicate threshold (defaults to config.default_threshold)

        Returns:
            BulkImportSimilarityResult with per-signal points and the verdict

        Raises:
            InvalidInputError: If coordinates are not finite, the candidate id
                is blank, or the threshold is not a finite number
        """
        duplicate_threshold = self._resolve_threshold(threshold)
        self._validate_inputs(query.coordinates, candidate)

        breakdown = BulkImportScoreBreakdown()
        signals: list[SimilaritySignal] = []

        if query.title and candidate.title:
            title_signal = self.calculate_title_signal(query.title, candidate.title)
            breakdown.title = title_signal.weighted_score
            signals.append(title_signal)

        parsed_tags, _ = self._parse_candidate_tags(candidate)
        candidate_labels = parsed_tags.label_map()

        candidate_artist = extract_artist(candidate_labels)
        if query.artist and candidate_artist:
            artist_signal = self.calculate_artist_signal(query.artist, candidate_artist)
            breakdown.artist = artist_signal.weighted_score
            signals.append(artist_signal)

        location_signal = self.calculate_location_signal(
            query.coordinates, candidate.coordinates
        )
        breakdown.location = location_signal.weighted_score
        signals.append(location_signal)

        if query.tags and candidate_labels:
            tag_signal = self.calculate_tag_signal(query.tags, candidate_labels)
            breakdown.tags = tag_signal.weighted_score
            signals.append(tag_signal)

        total = breakdown.total
        is_duplicate = total >= duplicate_threshold
        label = "high" if is_duplicate else "none"

        result = BulkImportSimilarityResult(
            artwork_id=candidate.id,
            overall_score=total,
            signals=signals,
            threshold=label,
            metadata=SimilarityMetadata(
                distance=location_signal.metadata["distance_meters"],
                title=candidate.title or None,
                tags=[f"{key}={value}" for key, value in candidate_labels.items()],
            ),
            score_breakdown=breakdown,
            is_duplicate=is_duplicate,
            duplicate_threshold=duplicate_threshold,
            existing_artwork_id=candidate.id,
            existing_artwork_url=self.artwork_url(candidate.id),
        )

        record_comparison(self.name, label, total)
        self.logger.debug(
            "Scored import candidate",
            artwork_id=candidate.id,
            score=round(total, 4),
            threshold=duplicate_threshold,
            is_duplicate=is_duplicate,
            breakdown=breakdown.model_dump(),
        )
        return result

    def find_best_duplicate(
        self,
        query: BulkImportQuery,
        candidates: Iterable[CandidateArtwork],
        threshold: float | None = None,
    ) -> DuplicateCheckResult:
        """Score every candidate and report the best match.

        Candidates that fail validation or raise unexpectedly are skipped
        and listed in failed_candidate_ids; they never abort the check.

        Args:
            query: Import record
            candidates: Pre-selected nearby artworks
            threshold: Duplicate threshold (defaults to config.default_threshold)

        Returns:
            DuplicateCheckResult describing the highest-scoring candidate
        """
        duplicate_threshold = self._resolve_threshold(threshold)

        best: BulkImportSimilarityResult | None = None
        checked = 0
        failed: list[str] = []

        for candidate in candidates:
            checked += 1
            try:
                result = self.calculate_similarity(query, candidate, duplicate_threshold)
            except SimilarityError as e:
                failed.append(candidate.id)
                self.logger.warning(
                    "Skipping import candidate",
                    artwork_id=candidate.id,
                    error=str(e),
                    error_code=e.code,
                )
                continue
            except Exception as e:
                failed.append(candidate.id)
                self.logger.exception(
                    "Unexpected error scoring import candidate",
                    artwork_id=candidate.id,
                    error=str(e),
                )
                continue

            if best is None or result.overall_score > best.overall_score:
                best = result

        if best is None:
            self.logger.debug("No scorable import candidates", candidates_checked=checked)
            return DuplicateCheckResult(
                is_duplicate=False,
                candidates_checked=checked,
                failed_candidate_ids=failed,
            )

        self.logger.info(
            "Duplicate check complete",
            title=query.title,
            candidates_checked=checked,
            best_match=best.artwork_id,
            best_score=round(best.overall_score, 3),
            is_duplicate=best.is_duplicate,
        )
        return DuplicateCheckResult(
            is_duplicate=best.is_duplicate,
            candidates_checked=checked,
            existing_id=best.artwork_id if best.is_duplicate else None,
            confidence_score=best.overall_score,
            score_breakdown=best.score_breakdown,
            best_match=best,
            failed_candidate_ids=failed,
        )

    def calculate_title_signal(self, query_title: str, candidate_title: str) -> SimilaritySignal:
        """Title points: edit-distance similarity times the title budget.

        Only case and punctuation are normalized; stop words are kept.
        """
        raw_score = levenshtein_similarity(query_title, candidate_title)
        weight = self.config.points_title
        return SimilaritySignal(
            type="title",
            raw_score=raw_score,
            weight=weight,
            weighted_score=raw_score * weight,
            metadata={
                "query_normalized": normalize_text(query_title),
                "candidate_normalized": normalize_text(candidate_title),
            },
        )

    def calculate_artist_signal(self, query_artist: str, candidate_artist: str) -> SimilaritySignal:
        """Artist points: best pairwise name similarity times the artist budget."""
        raw_score, query_name, candidate_name = best_artist_match(query_artist, candidate_artist)
        weight = self.config.points_artist
        return SimilaritySignal(
            type="artist",
            raw_score=raw_score,
            weight=weight,
            weighted_score=raw_score * weight,
            metadata={
                "candidate_artist": candidate_artist,
                "matched_query_name": query_name,
                "matched_candidate_name": candidate_name,
            },
        )

    def calculate_location_signal(
        self,
        query_coordinates: Coordinates,
        candidate_coordinates: Coordinates,
    ) -> SimilaritySignal:
        """Location points: max(0, budget * (1 - distance / radius))."""
        distance = haversine_distance(query_coordinates, candidate_coordinates)
        radius = self.config.location_radius_meters
        raw_score = max(0.0, 1.0 - distance / radius)
        weight = self.config.points_location
        return SimilaritySignal(
            type="distance",
            raw_score=raw_score,
            weight=weight,
            weighted_score=max(0.0, weight * (1.0 - distance / radius)),
            metadata={"distance_meters": distance, "radius_meters": radius},
        )

    def calculate_tag_signal(
        self,
        query_tags: dict[str, str],
        candidate_tags: dict[str, str],
    ) -> SimilaritySignal:
        """Tag points: number of matching query tags times the per-tag budget.

        The raw score is the fraction of query tags that matched; the weight
        grows with the number of query tags, so the contribution is not capped.
        """
        summary = match_tags(query_tags, candidate_tags)
        points_per_tag = self.config.points_per_tag
        raw_score = summary.match_count / len(query_tags)
        return SimilaritySignal(
            type="tags",
            raw_score=raw_score,
            weight=points_per_tag * len(query_tags),
            weighted_score=summary.match_count * points_per_tag,
            metadata={
                "match_count": summary.match_count,
                "matched_tags": [match._asdict() for match in summary.matches],
            },
        )

    def artwork_url(self, artwork_id: str) -> str:
        """Public URL of an archived artwork."""
        return f"{self.config.base_url.rstrip('/')}/artwork/{artwork_id}"

    def _resolve_threshold(self, threshold: float | None) -> float:
        if threshold is None:
            return self.config.default_threshold
        if isinstance(threshold, bool) or not isinstance(threshold, int | float):
            raise InvalidInputError("threshold", threshold, "must be a number")
        if not math.isfinite(threshold):
            raise InvalidInputError("threshold", threshold, "must be a finite number")
        return float(threshold)
