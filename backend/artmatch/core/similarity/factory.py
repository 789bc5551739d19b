"""Factory functions for similarity strategies and services."""

from __future__ import annotations

from .base import SimilarityStrategy
from .bulk_import import BulkImportSimilarityStrategy
from .config import BulkImportConfig, SimilarityConfig, create_dev_similarity_config
from .default import DefaultSimilarityStrategy
from .service import SimilarityService


def create_default_similarity_strategy(
    config: SimilarityConfig | None = None,
) -> DefaultSimilarityStrategy:
    """Create the general strategy (environment config when none is given)."""
    return DefaultSimilarityStrategy(config)


def create_dev_similarity_strategy() -> DefaultSimilarityStrategy:
    """Create the general strategy with the lenient development thresholds."""
    return DefaultSimilarityStrategy(create_dev_similarity_config())


def create_bulk_import_similarity_strategy(
    config: BulkImportConfig | None = None,
) -> BulkImportSimilarityStrategy:
    """Create the bulk-import strategy (environment config when none is given)."""
    return BulkImportSimilarityStrategy(config)


def create_similarity_service(
    strategy: SimilarityStrategy | None = None,
    max_candidates: int | None = None,
    include_metadata: bool = False,
) -> SimilarityService:
    """Create a batch scoring service.

    Args:
        strategy: Strategy to use (defaults to the general strategy)
        max_candidates: Compare at most this many candidates per query
        include_metadata: Keep per-signal diagnostic metadata in results

    Returns:
        Configured SimilarityService
    """
    if strategy is None:
        strategy = create_default_similarity_strategy()
    return SimilarityService(
        strategy,
        max_candidates=max_candidates,
        include_metadata=include_metadata,
    )
