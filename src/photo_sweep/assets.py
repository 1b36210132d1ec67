"""Core value types shared by the scan pipeline and the scorer."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

import numpy as np
from numpy.typing import NDArray

# Mean Earth radius (IUGG), metres.
EARTH_RADIUS_METERS = 6_371_008.8

Embedding = NDArray[np.float32]


class MediaSubtype(str, enum.Enum):
    """Photo subtypes that influence the metadata score."""

    PANORAMA = "panorama"
    HDR = "hdr"


@dataclass(frozen=True)
class GeoLocation:
    """Latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float

    def distance_to(self, other: GeoLocation) -> float:
        """Return the great-circle distance to ``other`` in metres (haversine)."""

        lat1 = math.radians(self.latitude)
        lat2 = math.radians(other.latitude)
        d_lat = lat2 - lat1
        d_lon = math.radians(other.longitude - self.longitude)

        a = math.sin(d_lat / 2.0) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2.0) ** 2
        return 2.0 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(a)))


@dataclass(frozen=True)
class PhotoAsset:
    """Read-only reference to a library item plus its cached metadata."""

    asset_id: str
    created_at: datetime
    pixel_width: int = 0
    pixel_height: int = 0
    location: GeoLocation | None = None
    is_favorite: bool = False
    subtypes: frozenset[MediaSubtype] = field(default_factory=frozenset)
    size_bytes: int = 0

    @property
    def pixel_count(self) -> int:
        return max(0, self.pixel_width) * max(0, self.pixel_height)


CandidateGroup = list[PhotoAsset]


@dataclass(frozen=True)
class SimilarPhotoGroup:
    """A set of near-duplicate photos found within one candidate group.

    ``best_photo_id`` and ``reason`` stay unset during detection and are only
    filled in when a recommendation is explicitly requested.
    """

    photo_ids: tuple[str, ...]
    total_size: int
    best_photo_id: str | None = None
    reason: str | None = None

    def __post_init__(self) -> None:
        if len(self.photo_ids) < 2:
            raise ValueError("a similar photo group needs at least two members")

    def with_recommendation(self, best_photo_id: str, reason: str) -> SimilarPhotoGroup:
        return replace(self, best_photo_id=best_photo_id, reason=reason)

    def to_payload(self) -> dict[str, Any]:
        """Render the group as the JSON-friendly dictionary used by callers."""

        return {
            "bestPhotoIdentifier": self.best_photo_id or "",
            "reason": self.reason or "",
            "photoIdentifiers": list(self.photo_ids),
            "totalSize": int(self.total_size),
        }


__all__ = [
    "EARTH_RADIUS_METERS",
    "Embedding",
    "MediaSubtype",
    "GeoLocation",
    "PhotoAsset",
    "CandidateGroup",
    "SimilarPhotoGroup",
]
