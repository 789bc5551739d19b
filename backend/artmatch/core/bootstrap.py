"""Bootstrap logic for engine startup."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from artmatch.core.config import Settings, get_settings
from artmatch.core.logging import setup_logging
from artmatch.core.similarity import (
    BulkImportSimilarityStrategy,
    DefaultSimilarityStrategy,
    SimilarityService,
    create_bulk_import_config,
    similarity_config_for_env,
)

logger = structlog.get_logger("artmatch.bootstrap")


@dataclass(frozen=True)
class SimilarityEngine:
    """Ready-to-use scoring components sharing one validated configuration.

    Attributes:
        settings: Application settings the engine was built from
        default_strategy: General strategy for interactive warnings
        bulk_import_strategy: Point-budget strategy for imports
        service: Batch service wrapping the general strategy
    """

    settings: Settings
    default_strategy: DefaultSimilarityStrategy
    bulk_import_strategy: BulkImportSimilarityStrategy
    service: SimilarityService


def bootstrap_engine(
    settings: Settings | None = None,
    configure_logging: bool = True,
) -> SimilarityEngine:
    """Load configuration and build the scoring engine.

    Both strategy configs are built and validated here, so a bad environment
    stops startup instead of surfacing on the first comparison.

    Args:
        settings: Application settings (if None, loads from environment)
        configure_logging: Set up structlog from the settings first

    Returns:
        SimilarityEngine

    Raises:
        SimilarityConfigurationError: If either strategy config is invalid
    """
    if settings is None:
        settings = get_settings()

    if configure_logging:
        setup_logging(debug=settings.is_debug, logs_dir=settings.log_dir)

    logger.debug("Bootstrapping similarity engine...", env=settings.env)

    try:
        similarity_config = similarity_config_for_env(settings.env)
        bulk_import_config = create_bulk_import_config()
    except Exception as e:
        logger.error(
            "Failed to load similarity configuration",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise

    default_strategy = DefaultSimilarityStrategy(similarity_config)
    bulk_import_strategy = BulkImportSimilarityStrategy(bulk_import_config)

    logger.info(
        "Similarity engine ready",
        env=settings.env,
        warn_threshold=similarity_config.thresholds.warn,
        high_threshold=similarity_config.thresholds.high,
        duplicate_threshold=bulk_import_config.default_threshold,
    )
    return SimilarityEngine(
        settings=settings,
        default_strategy=default_strategy,
        bulk_import_strategy=bulk_import_strategy,
        service=SimilarityService(default_strategy),
    )
