from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True)
class BBox:
    """
    WGS84 bounding box of the visible map, in lon/lat degrees.

    Convention used throughout this repo:
    - minLon, minLat, maxLon, maxLat

    The remote search service spells the same box as
    `{minLatitude, maxLatitude, minLongitude, maxLongitude}` (see `to_wire`).
    """

    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    def __post_init__(self) -> None:
        for name in ("min_lon", "min_lat", "max_lon", "max_lat"):
            v = getattr(self, name)
            if v is None or not math.isfinite(float(v)):
                raise ValueError(f"BBox.{name} must be a finite number, got {v!r}")

    def normalized(self) -> "BBox":
        min_lon = min(self.min_lon, self.max_lon)
        max_lon = max(self.min_lon, self.max_lon)
        min_lat = min(self.min_lat, self.max_lat)
        max_lat = max(self.min_lat, self.max_lat)
        return BBox(min_lon=min_lon, min_lat=min_lat, max_lon=max_lon, max_lat=max_lat)

    def rounded_key(self, decimals: int = 4) -> tuple[float, float, float, float]:
        """
        Rounded corners for log lines.

        decimals=4 is ~11m-ish in latitude.
        """
        b = self.normalized()
        return (
            round(b.min_lon, decimals),
            round(b.min_lat, decimals),
            round(b.max_lon, decimals),
            round(b.max_lat, decimals),
        )

    def contains_point(self, lon: float, lat: float) -> bool:
        b = self.normalized()
        return b.min_lon <= lon <= b.max_lon and b.min_lat <= lat <= b.max_lat

    def to_wire(self) -> dict[str, float]:
        b = self.normalized()
        return {
            "minLatitude": float(b.min_lat),
            "maxLatitude": float(b.max_lat),
            "minLongitude": float(b.min_lon),
            "maxLongitude": float(b.max_lon),
        }

    @classmethod
    def from_wire(cls, raw: Mapping[str, Any]) -> "BBox":
        # Accept both the service spelling and the short map-bounds spelling.
        try:
            return cls(
                min_lon=float(raw.get("minLongitude", raw.get("minLng"))),
                min_lat=float(raw.get("minLatitude", raw.get("minLat"))),
                max_lon=float(raw.get("maxLongitude", raw.get("maxLng"))),
                max_lat=float(raw.get("maxLatitude", raw.get("maxLat"))),
            ).normalized()
        except TypeError as e:
            raise ValueError(f"Incomplete bounding box: {dict(raw)!r}") from e
