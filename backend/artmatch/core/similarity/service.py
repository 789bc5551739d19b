"""Batch scoring service.

Wraps a strategy to score a query against a set of candidates. One bad
candidate never aborts the batch: its error is recorded and the rest are
scored as usual.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from itertools import islice
from typing import Any

import structlog

from artmatch.core.metrics import record_comparison_failure
from artmatch.core.tracing import trace_context

from .base import SimilarityStrategy
from .errors import SimilarityCalculationError, SimilarityError
from .models import CandidateArtwork, SimilarityResult
from .ranking import filter_by_threshold, sort_by_similarity

logger = structlog.get_logger("artmatch.similarity.service")


@dataclass
class ScoringBatch:
    """Outcome of scoring one query against a set of candidates.

    Attributes:
        results: Scored candidates, highest score first
        failures: Candidates that could not be scored
    """

    results: list[SimilarityResult] = field(default_factory=list)
    failures: list[SimilarityCalculationError] = field(default_factory=list)

    @property
    def failed_ids(self) -> list[str]:
        """IDs of the candidates that could not be scored."""
        return [failure.artwork_id for failure in self.failures]


class SimilarityService:
    """Score, rank and filter candidates with a single strategy.

    Usage:
        service = SimilarityService(DefaultSimilarityStrategy(), max_candidates=50)
        warnings = service.find_warning_matches(query, candidates)
    """

    def __init__(
        self,
        strategy: SimilarityStrategy,
        max_candidates: int | None = None,
        include_metadata: bool = False,
    ) -> None:
        """Initialize service.

        Args:
            strategy: Strategy used for every comparison
            max_candidates: Compare at most this many candidates per query
                (None for no limit)
            include_metadata: Keep per-signal diagnostic metadata in results

        Raises:
            ValueError: If max_candidates is negative
        """
        if max_candidates is not None and max_candidates < 0:
            raise ValueError(f"max_candidates must be >= 0, got {max_candidates}")
        self.strategy = strategy
        self.max_candidates = max_candidates
        self.include_metadata = include_metadata

    def score_candidates(self, query: Any, candidates: Iterable[CandidateArtwork]) -> ScoringBatch:
        """Score every candidate, collecting per-candidate failures.

        Args:
            query: Query record accepted by the strategy
            candidates: Pre-selected candidates (truncated to max_candidates)

        Returns:
            ScoringBatch with sorted results and recorded failures
        """
        if self.max_candidates is not None:
            candidates = islice(candidates, self.max_candidates)

        batch = ScoringBatch()
        with trace_context():
            for candidate in candidates:
                try:
                    result = self.strategy.calculate_similarity(query, candidate)
                except SimilarityError as e:
                    failure = SimilarityCalculationError(candidate.id, e)
                    batch.failures.append(failure)
                    logger.warning(
                        "Candidate could not be scored",
                        strategy=self.strategy.name,
                        artwork_id=candidate.id,
                        error=str(e),
                        error_code=e.code,
                    )
                    continue
                except Exception as e:
                    batch.failures.append(SimilarityCalculationError(candidate.id, e))
                    record_comparison_failure(self.strategy.name, "unexpected_error")
                    logger.exception(
                        "Unexpected error scoring candidate",
                        strategy=self.strategy.name,
                        artwork_id=candidate.id,
                        error=str(e),
                    )
                    continue

                if not self.include_metadata:
                    result = _strip_signal_metadata(result)
                batch.results.append(result)

            batch.results = sort_by_similarity(batch.results)
            logger.debug(
                "Scored candidate batch",
                strategy=self.strategy.name,
                scored=len(batch.results),
                failed=len(batch.failures),
            )
        return batch

    def calculate_similarity_scores(
        self,
        query: Any,
        candidates: Iterable[CandidateArtwork],
    ) -> list[SimilarityResult]:
        """Score candidates and return the results, highest score first."""
        return self.score_candidates(query, candidates).results

    def find_high_similarity_matches(
        self,
        query: Any,
        candidates: Iterable[CandidateArtwork],
    ) -> list[SimilarityResult]:
        """Candidates classified "high", highest score first."""
        return filter_by_threshold(self.calculate_similarity_scores(query, candidates), "high")

    def find_warning_matches(
        self,
        query: Any,
        candidates: Iterable[CandidateArtwork],
    ) -> list[SimilarityResult]:
        """Candidates classified "warn" or "high", highest score first."""
        return filter_by_threshold(self.calculate_similarity_scores(query, candidates), "warn")


def _strip_signal_metadata(result: SimilarityResult) -> SimilarityResult:
    signals = [signal.model_copy(update={"metadata": {}}) for signal in result.signals]
    return result.model_copy(update={"signals": signals})
