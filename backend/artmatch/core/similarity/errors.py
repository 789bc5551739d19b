"""Custom exceptions for similarity scoring."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any


class SimilarityError(Exception):
    """Base exception for similarity-related errors.

    Every subclass carries a stable code and a JSON-safe context dict so
    callers can log or return errors without inspecting messages.
    """

    code: str = "SIMILARITY_ERROR"

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.context = create_error_context(context or {})
        self.timestamp = datetime.now(UTC)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        cause = self.__cause__
        return {
            "name": type(self).__name__,
            "message": str(self),
            "code": self.code,
            "timestamp": self.timestamp.isoformat().replace("+00:00", "Z"),
            "context": self.context,
            "cause": (
                {"name": type(cause).__name__, "message": str(cause)}
                if cause is not None
                else None
            ),
        }


class InvalidInputError(SimilarityError):
    """Raised when a query or candidate cannot be scored.

    This can happen when:
    - Coordinates are not finite numbers
    - The candidate id is missing or blank
    - A caller-supplied threshold is not a finite number
    """

    code = "SIMILARITY_INPUT_INVALID"

    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            f"Invalid input for {field}: {reason}",
            {"field": field, "value": value, "reason": reason},
        )
        self.field = field


class TagParseError(SimilarityError):
    """Raised when a candidate tag payload cannot be parsed.

    Strategies recover from this locally: the tag signal contributes zero
    and the rest of the comparison is scored as usual.
    """

    code = "TAG_PARSE_FAILED"

    def __init__(self, raw: str, reason: str):
        preview = raw if len(raw) <= 80 else raw[:77] + "..."
        super().__init__(
            f"Could not parse candidate tags: {reason}",
            {"raw": preview, "reason": reason},
        )


class SimilarityConfigurationError(SimilarityError):
    """Raised when a similarity configuration violates its invariants."""

    code = "SIMILARITY_CONFIG_INVALID"

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(f"Similarity configuration error: {message}", context)


class SimilarityCalculationError(SimilarityError):
    """A per-candidate failure recorded while scoring a batch.

    The cause may be any exception. Similarity errors contribute their code
    and context; other errors are recorded as UNKNOWN_ERROR with their type.
    """

    code = "SIMILARITY_CALCULATION_FAILED"

    def __init__(self, artwork_id: str, cause: Exception):
        context: dict[str, Any] = {
            "artwork_id": artwork_id,
            "cause_code": get_similarity_error_code(cause),
        }
        if isinstance(cause, SimilarityError):
            context.update(cause.context)
        else:
            context["cause_type"] = type(cause).__name__
        super().__init__(
            f"Similarity calculation failed for artwork {artwork_id}: {cause}",
            context,
        )
        self.artwork_id = artwork_id
        self.__cause__ = cause


def is_similarity_error(error: BaseException) -> bool:
    """Check if an error is a similarity-related error."""
    return isinstance(error, SimilarityError)


def get_similarity_error_code(error: BaseException) -> str:
    """Extract the error code, or a generic code for other errors."""
    if isinstance(error, SimilarityError):
        return error.code
    return "UNKNOWN_ERROR"


def create_error_context(data: dict[str, Any]) -> dict[str, Any]:
    """Create error context with safe serialization.

    Values that cannot be JSON-encoded (including NaN and infinity) are
    replaced by their string representation.
    """
    context: dict[str, Any] = {}
    for key, value in data.items():
        try:
            json.dumps(value, allow_nan=False)
            context[key] = value
        except (TypeError, ValueError):
            context[key] = str(value)
    return context
