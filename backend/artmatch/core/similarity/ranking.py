"""Ranking, filtering and display helpers for similarity results.

Functions to order scored candidates, keep those above a classification
level, and turn a result into a short human-readable explanation.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Literal, TypeVar

from .models import SimilarityResult

ResultT = TypeVar("ResultT", bound=SimilarityResult)

FilterLevel = Literal["warn", "high"]

_LEVELS_AT_OR_ABOVE: dict[str, frozenset[str]] = {
    "warn": frozenset({"warn", "high"}),
    "high": frozenset({"high"}),
}

# Raw-score cutoffs above which a signal is mentioned in explanations
TITLE_EXPLANATION_CUTOFF = 0.5
TAGS_EXPLANATION_CUTOFF = 0.3
ARTIST_EXPLANATION_CUTOFF = 0.5


def sort_by_similarity(results: Iterable[ResultT]) -> list[ResultT]:
    """Return a new list ordered by overall score, highest first.

    The sort is stable: equal scores keep their input order.
    """
    return sorted(results, key=lambda result: result.overall_score, reverse=True)


def filter_by_threshold(results: Iterable[ResultT], level: FilterLevel) -> list[ResultT]:
    """Keep results classified at or above a level.

    Args:
        results: Scored results
        level: "warn" keeps warn and high results, "high" keeps only high

    Returns:
        Matching results in input order

    Raises:
        ValueError: If level is not "warn" or "high"
    """
    allowed = _LEVELS_AT_OR_ABOVE.get(level)
    if allowed is None:
        raise ValueError(f"Unknown threshold level: {level!r}")
    return [result for result in results if result.threshold in allowed]


def get_similarity_explanation(result: SimilarityResult) -> str:
    """Human-readable summary of a result.

    Example:
        "87% similar (12m away, similar title)"
    """
    percentage = round(result.overall_score * 100)
    reasons: list[str] = []

    distance = result.metadata.distance
    if distance is None:
        distance_signal = result.signal("distance")
        if distance_signal is not None:
            distance = distance_signal.metadata.get("distance_meters")
    if distance is not None:
        reasons.append(f"{round(distance)}m away")

    title = result.signal("title")
    if title is not None and title.raw_score > TITLE_EXPLANATION_CUTOFF:
        reasons.append("similar title")

    tags = result.signal("tags")
    if tags is not None and tags.raw_score > TAGS_EXPLANATION_CUTOFF:
        reasons.append("matching tags")

    artist = result.signal("artist")
    if artist is not None and artist.raw_score > ARTIST_EXPLANATION_CUTOFF:
        reasons.append("same artist")

    if not reasons:
        return f"{percentage}% similar"
    return f"{percentage}% similar ({', '.join(reasons)})"
