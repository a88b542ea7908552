from __future__ import annotations

import logging
from typing import Any, Mapping

from details.resolver import DetailResolver
from details.types import DetailRecord, ResultKind, ResultRef
from geo.aoi import BBox
from panels.history import PanelHistoryStack
from panels.types import (
    ChildPanelConfig,
    ChildPanelType,
    PanelType,
    PanelView,
    PlaceDetailsData,
)
from search.consolidator import ResultConsolidator
from search.errors import DetailFetchFailed
from search.recent import RecentSearchItem, RecentSearches
from search.types import QueryMode, QuerySignature, ResultSet

logger = logging.getLogger(__name__)

_PANEL_FOR_KIND: dict[ResultKind, PanelType] = {
    ResultKind.poi: PanelType.poi_details,
    ResultKind.district: PanelType.poi_details,
    ResultKind.city: PanelType.poi_details,
    ResultKind.governate: PanelType.poi_details,
    ResultKind.region: PanelType.poi_details,
    ResultKind.road: PanelType.poi_details,
}

_RECENT_EXTRA_FIELDS = (
    "arabicCity",
    "englishCity",
    "arabicDistrict",
    "englishDistrict",
    "arabicGovernate",
    "englishGovernate",
    "arabicRegion",
    "englishRegion",
    "categoryId",
    "arabicCategory",
    "englishCategory",
    "geometry",
)


def panel_type_for(kind: ResultKind) -> PanelType:
    return _PANEL_FOR_KIND.get(kind, PanelType.poi_details)


class SearchOrchestrator:
    """
    Routes user actions to the search, detail and panel state.

    Search state and panel state are independent: a new search or a category switch
    never touches the panels. Only `clear_all()` resets both.
    """

    def __init__(
        self,
        consolidator: ResultConsolidator,
        resolver: DetailResolver,
        *,
        primary: PanelHistoryStack[PanelType] | None = None,
        child: PanelHistoryStack[ChildPanelType] | None = None,
        recent: RecentSearches | None = None,
    ):
        self.consolidator = consolidator
        self.resolver = resolver
        self.primary: PanelHistoryStack[PanelType] = primary or PanelHistoryStack("primary")
        self.child: PanelHistoryStack[ChildPanelType] = child or PanelHistoryStack("child")
        self.recent = recent

        self._bbox: BBox | None = None
        self._scale: float | None = None
        self._mode: QueryMode | None = None
        self._keyword: str | None = None
        self._category_id: int | None = None

        self._selection_seq = 0
        self.selected_ref: ResultRef | None = None
        self.selected_detail: DetailRecord | None = None
        self.detail_error: DetailFetchFailed | None = None
        self.detail_loading = False
        self.prevent_fit_view = False

    @property
    def viewport(self) -> BBox | None:
        return self._bbox

    def current_set(self) -> ResultSet:
        return self.consolidator.current_set()

    def build_signature(self) -> QuerySignature | None:
        if self._bbox is None or self._mode is None:
            return None
        if self._mode == QueryMode.keyword:
            return QuerySignature.for_keyword(self._keyword or "", self._bbox, scale=self._scale)
        return QuerySignature.for_category(
            self._category_id, self._bbox, scale=self._scale  # type: ignore[arg-type]
        )

    async def on_viewport_change(self, bbox: BBox, scale: float | None = None) -> ResultSet | None:
        """
        Pan/zoom. Under an active query this extends the current results with the next
        page for the new viewport.
        """
        self._bbox = bbox.normalized()
        self._scale = scale
        sig = self.build_signature()
        if sig is None:
            return None
        return await self.consolidator.request_page(sig, self._page_for(sig))

    async def on_filter_change(
        self, *, keyword: str | None = None, category_id: int | None = None
    ) -> ResultSet | None:
        """
        Start a keyword search or switch to a category. Exactly one of the two must be
        given. The first page is requested; a different query resets the results.
        """
        if (keyword is None) == (category_id is None):
            raise ValueError("Pass exactly one of keyword / category_id")
        if keyword is not None:
            self._mode = QueryMode.keyword
            self._keyword = str(keyword)
            self._category_id = None
        else:
            self._mode = QueryMode.category
            self._category_id = int(category_id)  # type: ignore[arg-type]
            self._keyword = None

        sig = self.build_signature()
        if sig is None:
            logger.debug("Filter set before the first viewport; waiting for the map")
            return None
        return await self.consolidator.request_page(sig, 1)

    async def load_more(self) -> ResultSet:
        return await self.consolidator.request_next_page()

    def should_fit_view(self) -> bool:
        return self.consolidator.current_set().is_first_page and not self.prevent_fit_view

    def acknowledge_fit_view(self) -> None:
        self.consolidator.acknowledge_first_page()

    async def on_item_selected(self, ref: ResultRef, title: str) -> PanelView[PanelType] | None:
        """
        Open the detail view of a picked result on the primary panel.

        Failures end up in `detail_error`; a selection that was superseded by a newer
        one while its details were loading is not pushed.
        """
        self._selection_seq += 1
        seq = self._selection_seq
        self.detail_loading = True
        self.detail_error = None
        try:
            record = await self.resolver.fetch(ref, silent=False)
        except DetailFetchFailed as e:
            if seq == self._selection_seq:
                self.detail_error = e
                self.detail_loading = False
            logger.warning("Could not open %s:%s: %s", ref.kind.value, ref.id, e.reason)
            return None

        if seq != self._selection_seq:
            logger.debug("Selection %s:%s superseded; not opening", ref.kind.value, ref.id)
            return None

        self.detail_loading = False
        if record is None:
            return None

        self.selected_ref = ref
        self.selected_detail = record
        data = PlaceDetailsData(kind=ref.kind.value, id=ref.id, details=record.payload)
        self.primary.push(PanelView.create(panel_type_for(ref.kind), title, data.to_data()))

        if self.recent is not None:
            await self.recent.record(_recent_item(ref, record.payload))
        return self.primary.current()

    async def on_item_hover(self, ref: ResultRef) -> DetailRecord | None:
        return await self.resolver.fetch(ref, silent=True)

    def open_child(
        self,
        type: ChildPanelType,
        title: str,
        data: Mapping[str, Any] | None = None,
        *,
        config: ChildPanelConfig | None = None,
    ) -> bool:
        return self.child.open(type, title, data, config=config or ChildPanelConfig())

    def back(self) -> None:
        self.primary.back()

    def forward(self) -> None:
        self.primary.forward()

    def child_back(self) -> None:
        self.child.back()

    def child_forward(self) -> None:
        self.child.forward()

    def clear_selection(self) -> None:
        self._selection_seq += 1
        self.selected_ref = None
        self.selected_detail = None
        self.detail_error = None
        self.detail_loading = False
        self.prevent_fit_view = False

    def clear_all(self) -> None:
        """Reset search results, filters, both panels and the selection."""
        self.consolidator.clear()
        self._mode = None
        self._keyword = None
        self._category_id = None
        self.primary.reset()
        self.child.reset()
        self.clear_selection()

    def _page_for(self, sig: QuerySignature) -> int:
        live = self.consolidator.signature
        if live is not None and live == sig:
            return self.consolidator.next_page
        return 1


def _recent_item(ref: ResultRef, payload: Mapping[str, Any]) -> RecentSearchItem:
    return RecentSearchItem(
        id=ref.id,
        kind=ref.kind,
        english_name=str(payload.get("englishName") or ""),
        arabic_name=str(payload.get("arabicName") or ""),
        extra={k: payload[k] for k in _RECENT_EXTRA_FIELDS if payload.get(k) is not None},
    )
