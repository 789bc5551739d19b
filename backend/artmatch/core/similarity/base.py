"""Base abstract class for similarity strategies."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Any

import structlog

from artmatch.core.geo import Coordinates
from artmatch.core.metrics import record_comparison_failure, record_tag_parse_failure

from .errors import InvalidInputError, TagParseError
from .models import CandidateArtwork, SimilarityResult
from .tags import EMPTY_TAGS, ParsedTags, parse_tags


class SimilarityStrategy(ABC):
    """Abstract base class for similarity strategies.

    Strategies share input validation and the tag parse step. Their scoring
    internals are independent and must stay that way: each one is tuned and
    tested on its own.
    """

    name: str = "base"
    version: str = "0.0.0"

    def __init__(self) -> None:
        """Initialize strategy logger."""
        self.logger = structlog.get_logger(f"artmatch.similarity.{self.name}")

    @abstractmethod
    def calculate_similarity(self, query: Any, candidate: CandidateArtwork) -> SimilarityResult:
        """Score one candidate against the query.

        Args:
            query: Strategy-specific query record
            candidate: Archived artwork to compare with

        Returns:
            SimilarityResult (or a strategy-specific subclass)

        Raises:
            InvalidInputError: If coordinates are not finite or the candidate
                id is blank
        """
        pass

    def _validate_inputs(self, query_coordinates: Coordinates, candidate: CandidateArtwork) -> None:
        """Reject comparisons that cannot be scored meaningfully."""
        try:
            self._check_coordinates("query.coordinates", query_coordinates)
            self._check_coordinates("candidate.coordinates", candidate.coordinates)
            if not candidate.id or not candidate.id.strip():
                raise InvalidInputError("candidate.id", candidate.id, "must be a non-empty string")
        except InvalidInputError as e:
            record_comparison_failure(self.name, "invalid_input")
            self.logger.debug("Rejected comparison input", field=e.field, error=str(e))
            raise

    @staticmethod
    def _check_coordinates(field: str, coordinates: Coordinates) -> None:
        for axis in ("lat", "lon"):
            value = getattr(coordinates, axis)
            if not math.isfinite(value):
                raise InvalidInputError(f"{field}.{axis}", value, "must be a finite number")

    def _parse_candidate_tags(self, candidate: CandidateArtwork) -> tuple[ParsedTags, bool]:
        """Parse candidate tags, degrading unparsable payloads to no tags.

        Returns:
            Tuple of (parsed tags, whether parsing failed)
        """
        try:
            return parse_tags(candidate.tags), False
        except TagParseError as e:
            record_tag_parse_failure(self.name)
            self.logger.warning(
                "Candidate tags could not be parsed, scoring without them",
                artwork_id=candidate.id,
                error=str(e),
                error_code=e.code,
            )
            return EMPTY_TAGS, True
