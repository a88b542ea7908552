from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from geo.aoi import BBox
from geo.index import ItemIndex, build_item_index
from search.config import get_settings
from search.errors import FetchFailed, InvalidSignatureTransition, RemoteCallFailed
from search.fetcher import PageFetcher
from search.types import ConsolidatorStatus, Page, QuerySignature, ResultItem, ResultSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Ticket:
    """
    Stamp taken when a page request is issued; compared against the live query when
    the response lands.
    """

    signature: QuerySignature
    page_number: int
    epoch: int


class ResultConsolidator:
    """
    Owns the accumulated search results for one active query.

    Pages arrive asynchronously and possibly out of order. Page 1 replaces the set,
    later pages merge into it by id (existing ids update in place, new ids append).
    Any change of query identity (mode, keyword, category) discards the set before the
    next fetch is issued; responses stamped with an older query are dropped on arrival.
    """

    def __init__(self, fetcher: PageFetcher, *, page_size: int | None = None):
        self._fetcher = fetcher
        self._page_size = int(get_settings().pageSize if page_size is None else page_size)
        self._log_decimals = get_settings().coordinateDecimals
        if self._page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {self._page_size}")

        self._epoch = 0
        self._in_flight = 0
        self._signature: QuerySignature | None = None
        self._items: dict[str, ResultItem] = {}
        self._page_number = 1
        self._next_page = 1
        self._has_next_page = True
        self._has_previous_page = False
        self._total_count = 0
        self._total_pages = 0
        self._is_first_page = False
        self._status = ConsolidatorStatus.idle
        self._error: FetchFailed | None = None
        self._index: ItemIndex | None = None

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def signature(self) -> QuerySignature | None:
        return self._signature

    @property
    def next_page(self) -> int:
        return self._next_page

    @property
    def loading(self) -> bool:
        return self._status == ConsolidatorStatus.loading

    @property
    def error(self) -> FetchFailed | None:
        return self._error

    def current_set(self) -> ResultSet:
        return ResultSet(
            items=tuple(self._items.values()),
            signature=self._signature,
            page_number=self._page_number,
            next_page=self._next_page,
            has_next_page=self._has_next_page,
            has_previous_page=self._has_previous_page,
            total_count=self._total_count,
            total_pages=self._total_pages,
            is_first_page=self._is_first_page,
            status=self._status,
            error=self._error,
        )

    async def request_page(self, signature: QuerySignature, page_number: int) -> ResultSet:
        """
        Fetch `page_number` for `signature` and merge it.

        A signature that differs from the live one resets the set and forces page 1.
        Failures never raise: they leave the items untouched and set `error`.
        """
        ticket = self._issue(signature, page_number)
        try:
            page = await self._fetcher.fetch(
                ticket.signature, ticket.page_number, self._page_size
            )
        except asyncio.CancelledError:
            self._settle(ticket)
            raise
        except Exception as e:
            if self._settle(ticket):
                self._fail(ticket, e)
            else:
                logger.debug(
                    "Dropping stale failure for %s page %d: %s",
                    ticket.signature.describe(self._log_decimals),
                    ticket.page_number,
                    e,
                )
            return self.current_set()

        if self._settle(ticket):
            self._apply(ticket, page)
        else:
            logger.debug(
                "Dropping stale page %d for %s (%d items); live query is %s",
                ticket.page_number,
                ticket.signature.describe(self._log_decimals),
                len(page.items),
                self._signature.describe(self._log_decimals) if self._signature else "<none>",
            )
        return self.current_set()

    async def request_next_page(self) -> ResultSet:
        if self._signature is None:
            logger.debug("request_next_page ignored: no active query")
            return self.current_set()
        if not self._has_next_page:
            logger.debug(
                "request_next_page ignored: %s has no further pages",
                self._signature.describe(self._log_decimals),
            )
            return self.current_set()
        return await self.request_page(self._signature, self._next_page)

    def merge_page(self, signature: QuerySignature, page_number: int, page: Page) -> ResultSet:
        """
        Apply a page the caller fetched itself.

        Page 1 of a different query starts a new set; a later page of a different
        query has nothing to extend and raises `InvalidSignatureTransition`.
        """
        page_number = int(page_number)
        if page_number < 1:
            raise ValueError(f"page_number must be >= 1, got {page_number}")
        if self._signature is None or signature != self._signature:
            if page_number > 1:
                raise InvalidSignatureTransition(self._signature, signature, page_number)
            self._reset(signature)
        ticket = _Ticket(signature=signature, page_number=page_number, epoch=self._epoch)
        self._apply(ticket, page)
        return self.current_set()

    def items_within(self, aoi: BBox) -> list[ResultItem]:
        """
        Consolidated items located inside `aoi`, in result order.
        """
        if self._index is None:
            self._index = build_item_index(self._items.values())
        return self._index.query(aoi)

    def acknowledge_first_page(self) -> None:
        """The UI consumed the fresh first page (e.g. fitted the map to it)."""
        self._is_first_page = False

    def clear(self) -> None:
        """
        Forget the active query and its results. In-flight responses become stale.
        """
        self._epoch += 1
        self._in_flight = 0
        self._signature = None
        self._replace_items([])
        self._page_number = 1
        self._next_page = 1
        self._has_next_page = True
        self._has_previous_page = False
        self._total_count = 0
        self._total_pages = 0
        self._is_first_page = False
        self._status = ConsolidatorStatus.idle
        self._error = None

    def _issue(self, signature: QuerySignature, page_number: int) -> _Ticket:
        page_number = int(page_number)
        if page_number < 1:
            raise ValueError(f"page_number must be >= 1, got {page_number}")

        if self._signature is None or signature != self._signature:
            if page_number != 1:
                logger.debug(
                    "Query changed to %s; requested page %d becomes page 1",
                    signature.describe(self._log_decimals),
                    page_number,
                )
            self._reset(signature)
            page_number = 1

        self._in_flight += 1
        self._status = ConsolidatorStatus.loading
        self._error = None
        return _Ticket(signature=signature, page_number=page_number, epoch=self._epoch)

    def _reset(self, signature: QuerySignature) -> None:
        self.clear()
        self._signature = signature

    def _is_live(self, ticket: _Ticket) -> bool:
        return (
            ticket.epoch == self._epoch
            and self._signature is not None
            and ticket.signature == self._signature
        )

    def _settle(self, ticket: _Ticket) -> bool:
        """
        Mark a request as finished. Returns False when its response is stale.
        """
        if not self._is_live(ticket):
            return False
        self._in_flight = max(0, self._in_flight - 1)
        return True

    def _apply(self, ticket: _Ticket, page: Page) -> None:
        incoming = list(page.items)
        if ticket.page_number == 1:
            self._replace_items(incoming)
            self._is_first_page = True
        else:
            merged = dict(self._items)
            for it in incoming:
                # Re-arrival keeps its slot but takes the newer field values.
                merged[it.id] = it
            self._items = merged
            self._index = None
            self._is_first_page = False

        # An empty page never advances the cursor.
        if incoming:
            self._page_number = ticket.page_number
            self._next_page = ticket.page_number + 1

        self._has_next_page = bool(page.has_next_page)
        self._has_previous_page = bool(page.has_previous_page)
        self._total_count = int(page.total_count)
        self._total_pages = int(page.total_pages)
        # Keep the latest viewport of the same query.
        self._signature = ticket.signature
        self._error = None
        self._status = (
            ConsolidatorStatus.loading if self._in_flight else ConsolidatorStatus.ready
        )

    def _fail(self, ticket: _Ticket, exc: Exception) -> None:
        reason = _failure_reason(exc)
        self._error = FetchFailed(ticket.signature, ticket.page_number, reason)
        self._is_first_page = False
        self._status = (
            ConsolidatorStatus.loading if self._in_flight else ConsolidatorStatus.error
        )
        logger.warning(
            "Search page %d for %s failed: %s",
            ticket.page_number,
            ticket.signature.describe(self._log_decimals),
            reason,
        )

    def _replace_items(self, items: list[ResultItem]) -> None:
        fresh: dict[str, ResultItem] = {}
        for it in items:
            fresh[it.id] = it
        self._items = fresh
        self._index = None


def _failure_reason(exc: BaseException) -> str:
    if isinstance(exc, RemoteCallFailed):
        return exc.description
    return str(exc) or exc.__class__.__name__
