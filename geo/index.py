from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from shapely.geometry import Point
from shapely.geometry import box as shapely_box
from shapely.strtree import STRtree

from geo.aoi import BBox
from search.types import ResultItem


@dataclass
class ItemIndex:
    """
    STRtree over the point locations of search results (EPSG:4326).

    Items without `longitude`/`latitude` are kept out of the tree; they never match a
    bbox query.
    """

    items: list[ResultItem]

    _tree: STRtree | None = field(default=None, repr=False)
    _located: list[ResultItem] = field(default_factory=list, repr=False)
    _order: dict[str, int] = field(default_factory=dict, repr=False)
    _query_cache: dict[tuple[float, float, float, float], list[ResultItem]] = field(
        default_factory=dict, repr=False
    )

    def query(self, aoi: BBox) -> list[ResultItem]:
        """
        Items whose point falls inside `aoi`, in the order they were indexed.
        """
        b = aoi.normalized()
        # Exact corners: boxes a hair apart can disagree on an edge point.
        key = (b.min_lon, b.min_lat, b.max_lon, b.max_lat)
        cached = self._query_cache.get(key)
        if cached is not None:
            return list(cached)

        if self._tree is None:
            out: list[ResultItem] = []
        else:
            bbox = shapely_box(b.min_lon, b.min_lat, b.max_lon, b.max_lat)
            idxs = _to_int_list(self._tree.query(bbox))
            # STRtree matches envelopes; make the boundary test exact.
            hits = [
                self._located[i]
                for i in idxs
                if b.contains_point(self._located[i].lon, self._located[i].lat)  # type: ignore[arg-type]
            ]
            out = sorted(hits, key=lambda it: self._order.get(it.id, 0))

        _bounded_cache_put(self._query_cache, key, out, max_items=64)
        return list(out)

    def __len__(self) -> int:
        return len(self._located)


def build_item_index(items: Iterable[ResultItem]) -> ItemIndex:
    idx = ItemIndex(items=list(items))
    geoms: list[Point] = []
    for pos, it in enumerate(idx.items):
        idx._order.setdefault(it.id, pos)
        lon, lat = it.lon, it.lat
        if lon is None or lat is None:
            continue
        idx._located.append(it)
        geoms.append(Point(float(lon), float(lat)))
    idx._tree = STRtree(geoms) if geoms else None
    return idx


def _to_int_list(idxs: Any) -> list[int]:
    if idxs is None:
        return []
    try:
        return [int(i) for i in idxs]
    except Exception:
        try:
            return [int(i) for i in list(idxs)]
        except Exception:
            return []


def _bounded_cache_put(cache: dict, key, value, *, max_items: int) -> None:
    cache[key] = value
    if len(cache) > max_items:
        try:
            oldest = next(iter(cache.keys()))
            if oldest != key:
                cache.pop(oldest, None)
        except Exception:
            pass
