"""Geographic types and great-circle distance."""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field

EARTH_RADIUS_METERS = 6_371_000.0


class Coordinates(BaseModel):
    """A latitude/longitude pair in decimal degrees.

    Range checks (lat in [-90, 90], lon in [-180, 180]) belong to the caller.
    Non-finite values are accepted here and rejected by the scoring strategies.
    """

    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., description="Latitude in decimal degrees")
    lon: float = Field(..., description="Longitude in decimal degrees")

    @property
    def is_finite(self) -> bool:
        """Check that both components are finite numbers."""
        return math.isfinite(self.lat) and math.isfinite(self.lon)


def haversine_distance(a: Coordinates, b: Coordinates) -> float:
    """Great-circle distance between two coordinates in meters.

    NaN or infinite components give NaN instead of a distance.
    Callers are expected to validate coordinates first.

    Args:
        a: First coordinate
        b: Second coordinate

    Returns:
        Distance in meters
    """
    if not (a.is_finite and b.is_finite):
        return math.nan

    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    d_lat = math.radians(b.lat - a.lat)
    d_lon = math.radians(b.lon - a.lon)

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    # Rounding can push h a hair past 1 for antipodal points
    h = min(1.0, h)
    return EARTH_RADIUS_METERS * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
