from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from details.types import ROAD_ID_FIELDS, ResultKind
from search.envelope import build_search_request, parse_page_envelope
from search.errors import RemoteCallFailed
from search.types import Page, QueryMode, QuerySignature

logger = logging.getLogger(__name__)

# (path, json body) -> decoded json response
PostJson = Callable[[str, dict[str, Any]], Awaitable[Any]]

KEYWORD_SEARCH_PATH = "/api/v1/Poi/SearchPublicPois"
CATEGORY_SEARCH_PATH = "/api/v1/Poi/GetByCategory"

# Keyword search per result kind; only POIs can also be searched by category.
KIND_SEARCH_PATHS: dict[ResultKind, str] = {
    ResultKind.poi: KEYWORD_SEARCH_PATH,
    ResultKind.district: "/api/v1/Districts/SearchDistricts",
    ResultKind.city: "/api/v1/Cities/SearchCities",
    ResultKind.governate: "/api/v1/Governates/SearchGovernates",
    ResultKind.region: "/api/v1/Regions/SearchRegions",
    ResultKind.road: "/api/v1/Regions/SearchRoads",
}

_KIND_ERRORS: dict[ResultKind, str] = {
    ResultKind.poi: "Failed to fetch POIs",
    ResultKind.district: "Failed to fetch districts",
    ResultKind.city: "Failed to fetch cities",
    ResultKind.governate: "Failed to fetch governates",
    ResultKind.region: "Failed to fetch regions",
    ResultKind.road: "Failed to fetch roads",
}
_CATEGORY_ERROR = "Failed to fetch POIs by category"


async def call_service(post: PostJson, path: str, body: dict[str, Any], *, default_error: str) -> Any:
    """
    Run one POST through the injected transport, normalizing transport errors.
    """
    try:
        return await post(path, body)
    except RemoteCallFailed:
        raise
    except Exception as e:
        logger.debug("POST %s failed: %s", path, e)
        raise RemoteCallFailed(default_error) from e


class RemotePageFetcher:
    """
    PageFetcher backed by the map search service, for one result kind.

    The HTTP client is injected as `post`, so this class stays free of transport,
    auth and base-URL concerns. POIs (the default) answer keyword and category
    queries; districts, cities, governates, regions and roads answer keyword queries.
    """

    def __init__(self, post: PostJson, *, kind: ResultKind | str = ResultKind.poi):
        self._post = post
        self.kind = ResultKind(kind)
        self._id_fields = ROAD_ID_FIELDS if self.kind == ResultKind.road else ("id",)

    async def fetch(
        self, signature: QuerySignature, page_number: int, page_size: int
    ) -> Page:
        if signature.mode == QueryMode.category:
            if self.kind != ResultKind.poi:
                raise ValueError(f"Category search is not available for {self.kind.value} results")
            path, default_error = CATEGORY_SEARCH_PATH, _CATEGORY_ERROR
        else:
            path, default_error = KIND_SEARCH_PATHS[self.kind], _KIND_ERRORS[self.kind]

        body = build_search_request(signature, page_number, page_size)
        raw = await call_service(self._post, path, body, default_error=default_error)
        return parse_page_envelope(raw, default_error=default_error, id_fields=self._id_fields)
