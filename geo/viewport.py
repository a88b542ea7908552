from __future__ import annotations

import math
from functools import lru_cache

from pyproj import Transformer

from geo.aoi import BBox


_MAX_MERCATOR_LAT = 85.05112878

# Ground resolution (m/px) of a 256px web-mercator tile at zoom 0 on the equator.
_RESOLUTION_Z0_M = 156543.03392804097

# OGC standardized rendering pixel size is 0.28mm.
_METERS_PER_PIXEL_OGC = 0.00028


@lru_cache(maxsize=1)
def transformer_3857_to_4326() -> Transformer:
    return Transformer.from_crs("EPSG:3857", "EPSG:4326", always_xy=True)


def bbox_from_extent_3857(extent: tuple[float, float, float, float]) -> BBox:
    """
    Convert a map view extent (minX, minY, maxX, maxY in EPSG:3857 meters) into the
    WGS84 bounding box the search service filters by.
    """
    min_x, min_y, max_x, max_y = (float(v) for v in extent)
    t = transformer_3857_to_4326()
    min_lon, min_lat = t.transform(min_x, min_y)
    max_lon, max_lat = t.transform(max_x, max_y)
    return BBox(
        min_lon=min_lon, min_lat=min_lat, max_lon=max_lon, max_lat=max_lat
    ).normalized()


def map_scale(view_zoom: float, *, lat: float) -> float:
    """
    Approximate map scale denominator (1:N) for a web-mercator view.

    The search service uses it to thin out results at low zoom.
    """
    lat = max(-_MAX_MERCATOR_LAT, min(_MAX_MERCATOR_LAT, float(lat)))
    resolution = _RESOLUTION_Z0_M * math.cos(math.radians(lat)) / (2 ** float(view_zoom))
    return float(resolution / _METERS_PER_PIXEL_OGC)
