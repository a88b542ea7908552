from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any, Iterable

from details.types import ROAD_ID_FIELDS, ResultKind
from search.envelope import parse_list_envelope
from search.errors import RemoteCallFailed
from search.remote import PostJson, call_service
from search.types import ResultItem

logger = logging.getLogger(__name__)

AUTOCOMPLETE_PATHS: dict[ResultKind, str] = {
    ResultKind.district: "/api/v1/Districts/SearchDistrictAutoComplete",
    ResultKind.city: "/api/v1/Cities/SearchCityAutoComplete",
    ResultKind.governate: "/api/v1/Governates/SearchGovernateAutoComplete",
    ResultKind.region: "/api/v1/Regions/SearchRegionAutoComplete",
    ResultKind.road: "/api/v1/Regions/SearchRoadAutoComplete",
    ResultKind.poi: "/api/v1/Poi/SearchPoiAutoComplete",
}

_PLURALS = {
    ResultKind.district: "districts",
    ResultKind.city: "cities",
    ResultKind.governate: "governates",
    ResultKind.region: "regions",
    ResultKind.road: "roads",
    ResultKind.poi: "POIs",
}


def _require_position(kind: ResultKind, lon: float | None, lat: float | None) -> None:
    # POI suggestions are ranked around the map position.
    if kind == ResultKind.poi and (lon is None or lat is None):
        raise ValueError("POI autocomplete needs lon and lat")


def build_autocomplete_request(
    kind: ResultKind, text: str, *, lon: float | None = None, lat: float | None = None
) -> dict[str, Any]:
    _require_position(kind, lon, lat)
    body: dict[str, Any] = {"searchText": str(text)}
    if kind == ResultKind.poi:
        body["latitude"] = float(lat)  # type: ignore[arg-type]
        body["longitude"] = float(lon)  # type: ignore[arg-type]
    return body


class AutocompleteClient:
    """Type-ahead suggestions from the per-kind autocomplete endpoints."""

    def __init__(self, post: PostJson):
        self._post = post

    async def suggest(
        self,
        kind: ResultKind | str,
        text: str,
        *,
        lon: float | None = None,
        lat: float | None = None,
    ) -> tuple[ResultItem, ...]:
        kind = ResultKind(kind)
        default_error = f"Failed to fetch autocomplete for {_PLURALS[kind]}"
        body = build_autocomplete_request(kind, text, lon=lon, lat=lat)
        raw = await call_service(
            self._post, AUTOCOMPLETE_PATHS[kind], body, default_error=default_error
        )
        id_fields = ROAD_ID_FIELDS if kind == ResultKind.road else ("id",)
        return parse_list_envelope(raw, default_error=default_error, id_fields=id_fields)


@dataclass(frozen=True)
class Suggestions:
    kind: ResultKind
    text: str = ""
    items: tuple[ResultItem, ...] = ()
    loading: bool = False
    error: str | None = None


class Autocomplete:
    """
    Suggestion lists of a search box, one per result kind.

    Only the latest request of a kind may update its list; answers to older keystrokes
    are dropped. A failure keeps the previous suggestions and sets `error`.
    """

    def __init__(self, client: AutocompleteClient):
        self._client = client
        self._entries: dict[ResultKind, Suggestions] = {}
        self._seq: dict[ResultKind, int] = {}

    def entry(self, kind: ResultKind | str) -> Suggestions:
        kind = ResultKind(kind)
        return self._entries.get(kind) or Suggestions(kind=kind)

    async def request(
        self,
        kind: ResultKind | str,
        text: str,
        *,
        lon: float | None = None,
        lat: float | None = None,
    ) -> Suggestions:
        kind = ResultKind(kind)
        _require_position(kind, lon, lat)
        seq = self._seq.get(kind, 0) + 1
        self._seq[kind] = seq
        self._entries[kind] = replace(self.entry(kind), text=text, loading=True, error=None)

        try:
            items = await self._client.suggest(kind, text, lon=lon, lat=lat)
        except RemoteCallFailed as e:
            if seq == self._seq.get(kind):
                self._entries[kind] = replace(self.entry(kind), loading=False, error=e.description)
            logger.warning("Autocomplete for %s %r failed: %s", kind.value, text, e.description)
            return self.entry(kind)

        if seq != self._seq.get(kind):
            logger.debug("Dropping superseded %s suggestions for %r", kind.value, text)
            return self.entry(kind)
        self._entries[kind] = Suggestions(kind=kind, text=text, items=items)
        return self._entries[kind]

    async def request_all(
        self,
        text: str,
        *,
        lon: float | None = None,
        lat: float | None = None,
        kinds: Iterable[ResultKind | str] | None = None,
    ) -> dict[ResultKind, Suggestions]:
        """
        Query several kinds at once. Without a map position POIs are left out.
        """
        if kinds is None:
            wanted = [k for k in ResultKind if k != ResultKind.poi or (lon is not None and lat is not None)]
        else:
            wanted = [ResultKind(k) for k in kinds]
        results = await asyncio.gather(
            *(self.request(k, text, lon=lon, lat=lat) for k in wanted)
        )
        return dict(zip(wanted, results))

    def clear(self) -> None:
        # Outstanding requests become stale.
        for kind in self._seq:
            self._seq[kind] += 1
        self._entries.clear()
