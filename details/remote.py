from __future__ import annotations

from typing import Any

from details.types import ResultKind, ResultRef
from search.envelope import parse_detail_envelope
from search.errors import RemoteCallFailed
from search.remote import PostJson, call_service

DETAIL_PATHS: dict[ResultKind, str] = {
    ResultKind.district: "/api/v1/Districts/GetDistrictDetails",
    ResultKind.city: "/api/v1/Cities/GetCityDetails",
    ResultKind.governate: "/api/v1/Governates/GetGovernateDetails",
    ResultKind.region: "/api/v1/Regions/GetRegionDetails",
    ResultKind.poi: "/api/v1/Poi/GetPublicPoiDetails",
}

_DEFAULT_ERRORS: dict[ResultKind, str] = {
    ResultKind.district: "Failed to fetch district details",
    ResultKind.city: "Failed to fetch city details",
    ResultKind.governate: "Failed to fetch governate details",
    ResultKind.region: "Failed to fetch region details",
    ResultKind.poi: "Failed to fetch POI details",
}


class RemoteDetailSource:
    """
    DetailSource backed by the per-kind detail endpoints.

    Numeric ids are sent as numbers (districts, cities, ...), POI ids as strings.
    Road refs resolve to their inline search hit without a request.
    """

    def __init__(self, post: PostJson):
        self._post = post

    async def fetch(self, ref: ResultRef) -> dict[str, Any]:
        if ref.kind == ResultKind.road:
            if ref.inline is None:
                raise RemoteCallFailed("Road details are only available from the search hit")
            return dict(ref.inline)

        path = DETAIL_PATHS[ref.kind]
        default_error = _DEFAULT_ERRORS.get(ref.kind, "Failed to fetch details")
        raw = await call_service(
            self._post, path, {"id": _wire_id(ref)}, default_error=default_error
        )
        return parse_detail_envelope(raw, default_error=default_error)


def _wire_id(ref: ResultRef) -> str | int:
    if ref.kind == ResultKind.poi:
        return ref.id
    try:
        return int(ref.id)
    except ValueError:
        return ref.id
