"""Similarity scoring for artwork duplicate detection.

This module compares a new or imported artwork against nearby archived
artworks and scores how likely each one is a duplicate. Two strategies are
provided: a renormalized weighted composite for interactive warnings and an
additive point budget for bulk imports.
"""

from .base import SimilarityStrategy
from .bulk_import import BulkImportSimilarityStrategy
from .config import (
    DEFAULT_BULK_IMPORT_CONFIG,
    DEFAULT_SIMILARITY_CONFIG,
    BulkImportConfig,
    SimilarityConfig,
    create_bulk_import_config,
    create_dev_similarity_config,
    create_prod_similarity_config,
    create_similarity_config,
    get_bulk_import_config,
    get_similarity_config,
    reload_bulk_import_config,
    reload_similarity_config,
    similarity_config_for_env,
    validate_bulk_import_config,
    validate_similarity_config,
)
from .default import DefaultSimilarityStrategy
from .errors import (
    InvalidInputError,
    SimilarityCalculationError,
    SimilarityConfigurationError,
    SimilarityError,
    TagParseError,
)
from .factory import (
    create_bulk_import_similarity_strategy,
    create_default_similarity_strategy,
    create_dev_similarity_strategy,
    create_similarity_service,
)
from .models import (
    BulkImportQuery,
    BulkImportScoreBreakdown,
    BulkImportSimilarityResult,
    CandidateArtwork,
    DuplicateCheckResult,
    SimilarityQuery,
    SimilarityResult,
    SimilaritySignal,
)
from .ranking import filter_by_threshold, get_similarity_explanation, sort_by_similarity
from .service import ScoringBatch, SimilarityService
from .tags import ParsedTags, match_tags, parse_tags, tag_overlap
from .text import (
    artist_similarity,
    jaro_winkler_similarity,
    levenshtein_distance,
    levenshtein_similarity,
)

__all__ = [
    "SimilarityStrategy",
    "DefaultSimilarityStrategy",
    "BulkImportSimilarityStrategy",
    "SimilarityConfig",
    "BulkImportConfig",
    "DEFAULT_SIMILARITY_CONFIG",
    "DEFAULT_BULK_IMPORT_CONFIG",
    "create_similarity_config",
    "create_bulk_import_config",
    "create_dev_similarity_config",
    "create_prod_similarity_config",
    "similarity_config_for_env",
    "get_similarity_config",
    "reload_similarity_config",
    "get_bulk_import_config",
    "reload_bulk_import_config",
    "validate_similarity_config",
    "validate_bulk_import_config",
    "SimilarityError",
    "InvalidInputError",
    "TagParseError",
    "SimilarityConfigurationError",
    "SimilarityCalculationError",
    "create_default_similarity_strategy",
    "create_dev_similarity_strategy",
    "create_bulk_import_similarity_strategy",
    "create_similarity_service",
    "SimilarityQuery",
    "BulkImportQuery",
    "CandidateArtwork",
    "SimilaritySignal",
    "SimilarityResult",
    "BulkImportScoreBreakdown",
    "BulkImportSimilarityResult",
    "DuplicateCheckResult",
    "sort_by_similarity",
    "filter_by_threshold",
    "get_similarity_explanation",
    "SimilarityService",
    "ScoringBatch",
    "ParsedTags",
    "parse_tags",
    "tag_overlap",
    "match_tags",
    "levenshtein_distance",
    "levenshtein_similarity",
    "jaro_winkler_similarity",
    "artist_similarity",
]
