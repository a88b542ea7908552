from __future__ import annotations

import asyncio

import pytest

from details.remote import RemoteDetailSource
from details.types import ResultKind, ResultRef
from geo.aoi import BBox
from search.envelope import build_search_request, parse_page_envelope
from search.errors import RemoteCallFailed
from search.autocomplete import AUTOCOMPLETE_PATHS, Autocomplete, AutocompleteClient
from search.remote import (
    CATEGORY_SEARCH_PATH,
    KEYWORD_SEARCH_PATH,
    KIND_SEARCH_PATHS,
    RemotePageFetcher,
)
from search.types import QuerySignature

BOX = BBox(min_lon=46.6, min_lat=24.6, max_lon=46.8, max_lat=24.8)


def _ok(value):
    return {"isSuccess": True, "isFailure": False, "error": None, "value": value}


def _fail(description):
    return {
        "isSuccess": False,
        "isFailure": True,
        "error": {"errorCode": "Poi.NotFound", "description": description, "errorType": 2},
        "value": None,
    }


class FakeService:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.posts: list[tuple[str, dict]] = []

    async def post(self, path, body):
        self.posts.append((path, body))
        r = self.responses.pop(0)
        if isinstance(r, Exception):
            raise r
        return r


def test_keyword_request_body():
    sig = QuerySignature.for_keyword("cafe", BOX, scale=18_000.0)
    body = build_search_request(sig, 2, 20)
    assert body == {
        "boundingBox": {
            "minLatitude": 24.6,
            "maxLatitude": 24.8,
            "minLongitude": 46.6,
            "maxLongitude": 46.8,
        },
        "pagination": {"pageNumber": 2, "pageSize": 20},
        "scale": 18_000.0,
        "keyword": "cafe",
    }


def test_fetcher_routes_by_mode_and_parses_page():
    svc = FakeService(
        _ok(
            {
                "items": [{"id": "p1", "englishName": "Cafe One"}, {"id": 2}],
                "hasNextPage": True,
                "hasPreviousPage": False,
                "pageNumber": 1,
                "pageSize": 2,
                "totalCount": 9,
                "totalPages": 5,
            }
        ),
        _ok({"items": [], "hasNextPage": False, "totalCount": 0, "totalPages": 0}),
    )
    f = RemotePageFetcher(svc.post)

    page = asyncio.run(f.fetch(QuerySignature.for_keyword("cafe", BOX), 1, 2))
    assert [it.id for it in page.items] == ["p1", "2"]
    assert page.items[0].fields["englishName"] == "Cafe One"
    assert page.has_next_page is True
    assert page.total_count == 9
    assert page.total_pages == 5

    empty = asyncio.run(f.fetch(QuerySignature.for_category(12, BOX), 1, 2))
    assert empty.items == ()
    assert svc.posts[0][0] == KEYWORD_SEARCH_PATH
    assert svc.posts[1][0] == CATEGORY_SEARCH_PATH
    assert svc.posts[1][1]["categoryId"] == 12
    assert "keyword" not in svc.posts[1][1]


def test_failure_envelope_uses_service_description():
    svc = FakeService(_fail("Bounding box too large"))
    f = RemotePageFetcher(svc.post)
    with pytest.raises(RemoteCallFailed) as ei:
        asyncio.run(f.fetch(QuerySignature.for_keyword("cafe", BOX), 1, 20))
    assert ei.value.description == "Bounding box too large"
    assert ei.value.error_code == "Poi.NotFound"


def test_transport_error_falls_back_to_default_message():
    svc = FakeService(ConnectionError("reset by peer"))
    f = RemotePageFetcher(svc.post)
    with pytest.raises(RemoteCallFailed) as ei:
        asyncio.run(f.fetch(QuerySignature.for_category(1, BOX), 1, 20))
    assert ei.value.description == "Failed to fetch POIs by category"


def test_page_items_without_id_are_rejected():
    with pytest.raises(RemoteCallFailed):
        parse_page_envelope(_ok({"items": [{"englishName": "?"}]}))


def test_detail_source_sends_typed_ids():
    svc = FakeService(_ok({"id": 5, "englishName": "Olaya"}), _ok({"id": "poi-1"}))
    src = RemoteDetailSource(svc.post)

    district = asyncio.run(src.fetch(ResultRef.of("district", 5)))
    poi = asyncio.run(src.fetch(ResultRef.of(ResultKind.poi, "poi-1")))

    assert district["englishName"] == "Olaya"
    assert poi == {"id": "poi-1"}
    assert svc.posts[0] == ("/api/v1/Districts/GetDistrictDetails", {"id": 5})
    assert svc.posts[1] == ("/api/v1/Poi/GetPublicPoiDetails", {"id": "poi-1"})


def test_detail_source_resolves_roads_inline():
    svc = FakeService()
    src = RemoteDetailSource(svc.post)
    road = ResultRef.road({"englishName": "King Fahd Rd", "geometry": "LINESTRING(0 0, 1 1)"})

    out = asyncio.run(src.fetch(road))
    assert out["geometry"] == "LINESTRING(0 0, 1 1)"
    assert svc.posts == []


def test_kind_fetchers_use_their_search_endpoint():
    svc = FakeService(
        _ok({"items": [{"id": 31, "englishName": "Olaya", "englishCity": "Riyadh"}], "totalCount": 1}),
        _ok({"items": [{"englishName": "King Fahd Rd", "geometry": "LINESTRING(0 0, 1 1)"}]}),
    )
    districts = RemotePageFetcher(svc.post, kind="district")
    roads = RemotePageFetcher(svc.post, kind=ResultKind.road)
    sig = QuerySignature.for_keyword("ol", BOX)

    d = asyncio.run(districts.fetch(sig, 1, 10))
    r = asyncio.run(roads.fetch(sig, 1, 10))

    assert svc.posts[0][0] == "/api/v1/Districts/SearchDistricts"
    assert svc.posts[1][0] == "/api/v1/Regions/SearchRoads"
    assert svc.posts[1][1]["keyword"] == "ol"
    assert [it.id for it in d.items] == ["31"]
    # Road hits have no id; the name stands in.
    assert [it.id for it in r.items] == ["King Fahd Rd"]

    assert ResultRef.from_hit("district", d.items[0].fields) == ResultRef.of("district", 31)
    road_ref = ResultRef.from_hit(ResultKind.road, r.items[0].fields)
    assert road_ref.id == "King Fahd Rd"
    assert road_ref.inline["geometry"] == "LINESTRING(0 0, 1 1)"


def test_kind_fetcher_failure_messages_and_category_guard():
    svc = FakeService(ConnectionError("down"))
    cities = RemotePageFetcher(svc.post, kind="city")
    with pytest.raises(RemoteCallFailed) as ei:
        asyncio.run(cities.fetch(QuerySignature.for_keyword("jed", BOX), 1, 10))
    assert ei.value.description == "Failed to fetch cities"

    with pytest.raises(ValueError):
        asyncio.run(cities.fetch(QuerySignature.for_category(3, BOX), 1, 10))
    assert set(KIND_SEARCH_PATHS) == set(ResultKind)


def test_autocomplete_bodies_and_paths():
    svc = FakeService(
        _ok([{"id": 4, "englishName": "Jeddah", "searchType": 2}]),
        _ok([{"id": "poi-9", "englishName": "Jeddah Cafe", "longitude": 39.1, "latitude": 21.5}]),
    )
    client = AutocompleteClient(svc.post)

    cities = asyncio.run(client.suggest("city", "jed"))
    pois = asyncio.run(client.suggest(ResultKind.poi, "jed", lon=39.2, lat=21.4))

    assert svc.posts[0] == (AUTOCOMPLETE_PATHS[ResultKind.city], {"searchText": "jed"})
    assert svc.posts[1] == (
        "/api/v1/Poi/SearchPoiAutoComplete",
        {"searchText": "jed", "latitude": 21.4, "longitude": 39.2},
    )
    assert [it.id for it in cities] == ["4"]
    assert pois[0].fields["englishName"] == "Jeddah Cafe"

    with pytest.raises(ValueError):
        asyncio.run(client.suggest("poi", "jed"))


def test_autocomplete_failure_keeps_previous_suggestions():
    svc = FakeService(
        _ok([{"id": 1, "englishName": "Riyadh"}]),
        ConnectionError("timeout"),
    )
    ac = Autocomplete(AutocompleteClient(svc.post))

    first = asyncio.run(ac.request("region", "ri"))
    failed = asyncio.run(ac.request("region", "riy"))

    assert [it.id for it in first.items] == ["1"]
    assert failed.error == "Failed to fetch autocomplete for regions"
    assert failed.loading is False
    assert [it.id for it in failed.items] == ["1"]


def test_autocomplete_drops_answers_to_older_keystrokes():
    class GatedService:
        def __init__(self):
            self.gates: dict[str, asyncio.Event] = {}

        async def post(self, path, body):
            text = body["searchText"]
            gate = self.gates.get(text)
            if gate is not None:
                await gate.wait()
            return _ok([{"id": text, "englishName": text}])

    async def run():
        svc = GatedService()
        ac = Autocomplete(AutocompleteClient(svc.post))
        svc.gates["r"] = asyncio.Event()
        old = asyncio.create_task(ac.request("city", "r"))
        await asyncio.sleep(0)
        await ac.request("city", "ri")
        svc.gates["r"].set()
        await old
        return ac

    ac = asyncio.run(run())
    assert ac.entry("city").text == "ri"
    assert [it.id for it in ac.entry("city").items] == ["ri"]


def test_autocomplete_request_all_skips_pois_without_position():
    svc = FakeService(*[_ok([]) for _ in range(5)])
    ac = Autocomplete(AutocompleteClient(svc.post))

    out = asyncio.run(ac.request_all("x"))

    assert ResultKind.poi not in out
    assert len(svc.posts) == 5
    ac.clear()
    assert ac.entry("district").items == ()
