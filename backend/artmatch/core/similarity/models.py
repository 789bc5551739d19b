"""Pydantic models for similarity queries, candidates and results."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from artmatch.core.geo import Coordinates

ThresholdLabel = Literal["none", "warn", "high"]
SignalType = Literal["distance", "title", "tags", "artist"]

# Raw candidate tag payload: JSON string, or already-parsed JSON
RawTags = str | dict[str, Any] | list[Any]


class SimilarityQuery(BaseModel):
    """The record under test for the general strategy."""

    coordinates: Coordinates = Field(..., description="Where the new artwork is")
    title: str | None = Field(default=None, description="Submitted title")
    tags: list[str] | None = Field(default=None, description="Free-form tag strings")
    radius_meters: float | None = Field(
        default=None, description="Search radius the caller used to pick candidates"
    )


class BulkImportQuery(BaseModel):
    """The record under test for the bulk-import strategy."""

    coordinates: Coordinates = Field(..., description="Where the imported artwork is")
    title: str | None = Field(default=None, description="Imported title")
    artist: str | None = Field(
        default=None, description="Artist credit, possibly several names ('A, B & C')"
    )
    tags: dict[str, str] | None = Field(default=None, description="Tag label -> value pairs")


class CandidateArtwork(BaseModel):
    """An archived artwork the query is compared against.

    Candidates are pre-selected by the caller (e.g. a bounding-box query).
    """

    id: str = Field(..., description="Artwork ID")
    coordinates: Coordinates = Field(..., description="Archived location")
    title: str | None = Field(default=None, description="Archived title")
    tags: RawTags | None = Field(
        default=None, description="Tag payload, usually the JSON string from storage"
    )
    type_name: str | None = Field(default=None, description="Artwork type, for display")
    distance_meters: float | None = Field(
        default=None, description="Distance precomputed by the caller, for display"
    )


class SimilaritySignal(BaseModel):
    """One scored similarity dimension.

    weighted_score is raw_score * weight. For the general strategy the weight
    is a fraction of 1.0; for the bulk-import strategy it is a point budget.
    """

    model_config = ConfigDict(frozen=True)

    type: SignalType
    raw_score: float = Field(..., description="Similarity before weighting, 0-1")
    weight: float = Field(..., description="Weight or point budget applied")
    weighted_score: float = Field(..., description="raw_score * weight")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Diagnostic details")


class SimilarityMetadata(BaseModel):
    """Snapshot of the candidate for display and audit."""

    distance: float | None = None
    title: str | None = None
    tags: list[str] = Field(default_factory=list)


class SimilarityResult(BaseModel):
    """Scored comparison of a query with one candidate."""

    artwork_id: str
    overall_score: float = Field(..., description="Aggregate score (meaning depends on strategy)")
    signals: list[SimilaritySignal] = Field(default_factory=list)
    threshold: ThresholdLabel = "none"
    metadata: SimilarityMetadata = Field(default_factory=SimilarityMetadata)

    def signal(self, signal_type: SignalType) -> SimilaritySignal | None:
        """Get the signal of a given type, if it was computed."""
        for signal in self.signals:
            if signal.type == signal_type:
                return signal
        return None


class BulkImportScoreBreakdown(BaseModel):
    """Point contributions of each bulk-import signal."""

    title: float = 0.0
    artist: float = 0.0
    location: float = 0.0
    tags: float = 0.0

    @property
    def total(self) -> float:
        """Unweighted sum of all contributions."""
        return self.title + self.artist + self.location + self.tags


class BulkImportSimilarityResult(SimilarityResult):
    """Bulk-import comparison result with its point breakdown and verdict."""

    score_breakdown: BulkImportScoreBreakdown = Field(default_factory=BulkImportScoreBreakdown)
    is_duplicate: bool = False
    duplicate_threshold: float = Field(..., description="Threshold the total was compared with")
    existing_artwork_id: str
    existing_artwork_url: str


class DuplicateCheckResult(BaseModel):
    """Best match of an import record across a set of candidates."""

    is_duplicate: bool
    candidates_checked: int
    existing_id: str | None = None
    confidence_score: float | None = None
    score_breakdown: BulkImportScoreBreakdown | None = None
    best_match: BulkImportSimilarityResult | None = None
    failed_candidate_ids: list[str] = Field(default_factory=list)
