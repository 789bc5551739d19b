"""Similarity configuration - scoring weights, thresholds and point budgets.

Two independent configurations live here:

- SimilarityConfig drives the general (weighted composite) strategy used for
  interactive "possible duplicate" warnings.
- BulkImportConfig drives the bulk-import (additive point budget) strategy
  used to auto-reject duplicates during automated imports.

Both are read from environment variables once, validated, and then treated
as immutable. Each environment variable is parsed on its own: a missing or
unparsable value falls back to that field's default.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from functools import lru_cache
from typing import Any

import structlog
from pydantic import (
    Field,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import SimilarityConfigurationError

logger = structlog.get_logger("artmatch.similarity.config")

WEIGHT_SUM_TOLERANCE = 0.001

DEFAULT_STOP_WORDS: tuple[str, ...] = (
    "the",
    "a",
    "an",
    "and",
    "or",
    "but",
    "in",
    "on",
    "at",
    "to",
    "for",
    "of",
    "with",
    "by",
)


@dataclass(frozen=True)
class SimilarityThresholds:
    """Classification thresholds for the composite score."""

    warn: float = 0.65  # Show warning badge
    high: float = 0.80  # Require explicit confirmation


@dataclass(frozen=True)
class SimilarityWeights:
    """Per-signal weights for the composite score (must sum to 1.0)."""

    distance: float = 0.5
    title: float = 0.35
    tags: float = 0.15


@dataclass(frozen=True)
class DistanceNormalization:
    """Distance-to-score mapping for the composite strategy."""

    max_distance_meters: float = 1000.0  # Beyond this, similarity = 0
    optimal_distance_meters: float = 50.0  # At or within this, similarity = 1


@dataclass(frozen=True)
class TitleMatching:
    """Title normalization parameters for the composite strategy."""

    min_title_length: int = 3
    stop_words: tuple[str, ...] = DEFAULT_STOP_WORDS


@dataclass(frozen=True)
class SimilarityConfig:
    """Configuration for the general similarity strategy."""

    thresholds: SimilarityThresholds = field(default_factory=SimilarityThresholds)
    weights: SimilarityWeights = field(default_factory=SimilarityWeights)
    distance: DistanceNormalization = field(default_factory=DistanceNormalization)
    title: TitleMatching = field(default_factory=TitleMatching)


@dataclass(frozen=True)
class BulkImportConfig:
    """Point budgets for the bulk-import strategy.

    Budgets are additive and need not sum to 1.0. They have been revised
    before (location radius was 50m, title/artist/location were 0.2/0.2/0.3,
    each tag was worth 0.05), so they are configuration, not constants.
    Stored scores are not migrated when these change.
    """

    points_title: float = 0.25
    points_artist: float = 0.15
    points_location: float = 0.40
    points_per_tag: float = 0.04
    location_radius_meters: float = 25.0
    default_threshold: float = 0.7
    base_url: str = "https://art.abluestar.com"


# Default config instances
DEFAULT_SIMILARITY_CONFIG = SimilarityConfig()
DEFAULT_BULK_IMPORT_CONFIG = BulkImportConfig()


class _ParseOrDefaultSettings(BaseSettings):
    """Settings base where each field independently falls back to its default."""

    @field_validator("*", mode="wrap")
    @classmethod
    def _parse_or_default(
        cls,
        value: Any,
        handler: ValidatorFunctionWrapHandler,
        info: ValidationInfo,
    ) -> Any:
        try:
            return handler(value)
        except ValidationError:
            default = cls.model_fields[info.field_name].default
            logger.warning(
                "Unparsable similarity setting, using default",
                setting=info.field_name,
                value=value,
                default=default,
            )
            return default


class SimilaritySettings(_ParseOrDefaultSettings):
    """Environment-sourced values for SimilarityConfig.

    Read from SIMILARITY_THRESHOLD_WARN, SIMILARITY_WEIGHT_DISTANCE, etc.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SIMILARITY_",
        case_sensitive=False,
        extra="ignore",
        allow_inf_nan=False,
    )

    threshold_warn: float = Field(default=DEFAULT_SIMILARITY_CONFIG.thresholds.warn)
    threshold_high: float = Field(default=DEFAULT_SIMILARITY_CONFIG.thresholds.high)
    weight_distance: float = Field(default=DEFAULT_SIMILARITY_CONFIG.weights.distance)
    weight_title: float = Field(default=DEFAULT_SIMILARITY_CONFIG.weights.title)
    weight_tags: float = Field(default=DEFAULT_SIMILARITY_CONFIG.weights.tags)
    max_distance_meters: float = Field(
        default=DEFAULT_SIMILARITY_CONFIG.distance.max_distance_meters
    )
    optimal_distance_meters: float = Field(
        default=DEFAULT_SIMILARITY_CONFIG.distance.optimal_distance_meters
    )
    min_title_length: int = Field(default=DEFAULT_SIMILARITY_CONFIG.title.min_title_length)


class BulkImportSettings(_ParseOrDefaultSettings):
    """Environment-sourced values for BulkImportConfig (BULK_IMPORT_* variables)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="BULK_IMPORT_",
        case_sensitive=False,
        extra="ignore",
        allow_inf_nan=False,
    )

    points_title: float = Field(default=DEFAULT_BULK_IMPORT_CONFIG.points_title)
    points_artist: float = Field(default=DEFAULT_BULK_IMPORT_CONFIG.points_artist)
    points_location: float = Field(default=DEFAULT_BULK_IMPORT_CONFIG.points_location)
    points_per_tag: float = Field(default=DEFAULT_BULK_IMPORT_CONFIG.points_per_tag)
    location_radius_meters: float = Field(
        default=DEFAULT_BULK_IMPORT_CONFIG.location_radius_meters
    )
    default_threshold: float = Field(default=DEFAULT_BULK_IMPORT_CONFIG.default_threshold)
    base_url: str = Field(default=DEFAULT_BULK_IMPORT_CONFIG.base_url)


def _require_finite(name: str, value: float) -> None:
    if not math.isfinite(value):
        raise SimilarityConfigurationError(f"{name} must be a finite number, got {value}")


def validate_similarity_config(config: SimilarityConfig) -> None:
    """Validate a similarity configuration for consistency.

    Raises:
        SimilarityConfigurationError: If any invariant is violated
    """
    thresholds = config.thresholds
    weights = config.weights
    distance = config.distance

    for name, value in (
        ("thresholds.warn", thresholds.warn),
        ("thresholds.high", thresholds.high),
        ("weights.distance", weights.distance),
        ("weights.title", weights.title),
        ("weights.tags", weights.tags),
        ("distance.max_distance_meters", distance.max_distance_meters),
        ("distance.optimal_distance_meters", distance.optimal_distance_meters),
    ):
        _require_finite(name, value)

    if not 0 <= thresholds.warn <= 1:
        raise SimilarityConfigurationError(
            f"Invalid warn threshold: {thresholds.warn}. Must be between 0 and 1.",
            {"warn": thresholds.warn},
        )
    if not 0 <= thresholds.high <= 1:
        raise SimilarityConfigurationError(
            f"Invalid high threshold: {thresholds.high}. Must be between 0 and 1.",
            {"high": thresholds.high},
        )
    if thresholds.high <= thresholds.warn:
        raise SimilarityConfigurationError(
            f"High threshold ({thresholds.high}) must be greater than warn threshold "
            f"({thresholds.warn}).",
            {"warn": thresholds.warn, "high": thresholds.high},
        )

    if weights.distance < 0 or weights.title < 0 or weights.tags < 0:
        raise SimilarityConfigurationError(
            "All similarity weights must be non-negative",
            {"distance": weights.distance, "title": weights.title, "tags": weights.tags},
        )
    total_weight = weights.distance + weights.title + weights.tags
    if abs(total_weight - 1.0) > WEIGHT_SUM_TOLERANCE:
        raise SimilarityConfigurationError(
            f"Similarity weights must sum to 1.0, got {total_weight}",
            {"distance": weights.distance, "title": weights.title, "tags": weights.tags},
        )

    if distance.optimal_distance_meters >= distance.max_distance_meters:
        raise SimilarityConfigurationError(
            f"Optimal distance ({distance.optimal_distance_meters}m) must be less than "
            f"max distance ({distance.max_distance_meters}m)",
        )

    if config.title.min_title_length < 1:
        raise SimilarityConfigurationError(
            f"Minimum title length must be at least 1, got {config.title.min_title_length}"
        )


def validate_bulk_import_config(config: BulkImportConfig) -> None:
    """Validate a bulk-import configuration.

    Raises:
        SimilarityConfigurationError: If any invariant is violated
    """
    for name in ("points_title", "points_artist", "points_location", "points_per_tag"):
        value = getattr(config, name)
        _require_finite(name, value)
        if value < 0:
            raise SimilarityConfigurationError(f"{name} must be non-negative, got {value}")

    _require_finite("location_radius_meters", config.location_radius_meters)
    if config.location_radius_meters <= 0:
        raise SimilarityConfigurationError(
            f"location_radius_meters must be positive, got {config.location_radius_meters}"
        )

    _require_finite("default_threshold", config.default_threshold)
    if config.default_threshold < 0:
        raise SimilarityConfigurationError(
            f"default_threshold must be non-negative, got {config.default_threshold}"
        )


def create_similarity_config(settings: SimilaritySettings | None = None) -> SimilarityConfig:
    """Build and validate a SimilarityConfig from environment settings.

    Args:
        settings: Pre-loaded settings (if None, reads the environment)

    Returns:
        Validated SimilarityConfig

    Raises:
        SimilarityConfigurationError: If the resulting config is invalid
    """
    if settings is None:
        settings = SimilaritySettings()

    config = SimilarityConfig(
        thresholds=SimilarityThresholds(
            warn=settings.threshold_warn,
            high=settings.threshold_high,
        ),
        weights=SimilarityWeights(
            distance=settings.weight_distance,
            title=settings.weight_title,
            tags=settings.weight_tags,
        ),
        distance=DistanceNormalization(
            max_distance_meters=settings.max_distance_meters,
            optimal_distance_meters=settings.optimal_distance_meters,
        ),
        title=TitleMatching(min_title_length=settings.min_title_length),
    )
    validate_similarity_config(config)

    logger.debug(
        "Similarity config loaded",
        warn=config.thresholds.warn,
        high=config.thresholds.high,
        weight_distance=config.weights.distance,
        weight_title=config.weights.title,
        weight_tags=config.weights.tags,
    )
    return config


def create_bulk_import_config(settings: BulkImportSettings | None = None) -> BulkImportConfig:
    """Build and validate a BulkImportConfig from environment settings.

    Raises:
        SimilarityConfigurationError: If the resulting config is invalid
    """
    if settings is None:
        settings = BulkImportSettings()

    config = BulkImportConfig(
        points_title=settings.points_title,
        points_artist=settings.points_artist,
        points_location=settings.points_location,
        points_per_tag=settings.points_per_tag,
        location_radius_meters=settings.location_radius_meters,
        default_threshold=settings.default_threshold,
        base_url=settings.base_url,
    )
    validate_bulk_import_config(config)

    logger.debug(
        "Bulk import config loaded",
        points_title=config.points_title,
        points_artist=config.points_artist,
        points_location=config.points_location,
        points_per_tag=config.points_per_tag,
        radius_meters=config.location_radius_meters,
    )
    return config


def create_dev_similarity_config() -> SimilarityConfig:
    """Lenient configuration for development and tests (lower thresholds)."""
    return replace(
        DEFAULT_SIMILARITY_CONFIG,
        thresholds=SimilarityThresholds(warn=0.5, high=0.7),
    )


def create_prod_similarity_config() -> SimilarityConfig:
    """Strict configuration for production (higher thresholds)."""
    return replace(
        DEFAULT_SIMILARITY_CONFIG,
        thresholds=SimilarityThresholds(warn=0.7, high=0.85),
    )


def similarity_config_for_env(env: str) -> SimilarityConfig:
    """Pick the similarity config for an application environment.

    The testing environment gets the relaxed development preset; every
    other environment reads SIMILARITY_* variables.
    """
    if env == "testing":
        return create_dev_similarity_config()
    return create_similarity_config()


@lru_cache(maxsize=1)
def get_similarity_config() -> SimilarityConfig:
    """Get the process-wide similarity configuration.

    Loaded from the environment on first call and cached afterwards.
    """
    return create_similarity_config()


def reload_similarity_config() -> SimilarityConfig:
    """Reload the similarity configuration from the environment."""
    get_similarity_config.cache_clear()
    return get_similarity_config()


@lru_cache(maxsize=1)
def get_bulk_import_config() -> BulkImportConfig:
    """Get the process-wide bulk-import configuration."""
    return create_bulk_import_config()


def reload_bulk_import_config() -> BulkImportConfig:
    """Reload the bulk-import configuration from the environment."""
    get_bulk_import_config.cache_clear()
    return get_bulk_import_config()
