from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Iterable

from details.types import ResultKind
from search.config import get_settings

logger = logging.getLogger(__name__)

_DAY_S = 24 * 60 * 60


@dataclass(frozen=True)
class RecentSearchItem:
    id: str
    kind: ResultKind
    english_name: str = ""
    arabic_name: str = ""
    timestamp: float = 0.0
    # Kind-specific extras (city/district names, category, geometry, ...).
    extra: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def key(self) -> tuple[str, str]:
        return (self.kind.value, self.id)


class RecentSearches:
    """
    Most-recent-first list of results the user opened.

    Re-adding an entry moves it to the front; the list is capped, and entries older
    than the configured age are dropped when a saved list is loaded.
    """

    def __init__(
        self,
        *,
        max_items: int | None = None,
        max_age_days: float | None = None,
        sink: Callable[[RecentSearchItem], Awaitable[Any]] | None = None,
    ):
        settings = get_settings()
        self._max_items = int(settings.maxRecentSearches if max_items is None else max_items)
        if self._max_items < 1:
            raise ValueError(f"max_items must be >= 1, got {self._max_items}")
        age_days = settings.recentSearchMaxAgeDays if max_age_days is None else max_age_days
        self._max_age_s = float(age_days) * _DAY_S
        self._sink = sink
        self._items: list[RecentSearchItem] = []

    @property
    def items(self) -> list[RecentSearchItem]:
        return list(self._items)

    def add(self, item: RecentSearchItem, *, now: float | None = None) -> RecentSearchItem:
        stamped = replace(item, timestamp=float(now if now is not None else time.time()))
        rest = [it for it in self._items if it.key != stamped.key]
        self._items = [stamped, *rest][: self._max_items]
        return stamped

    async def record(self, item: RecentSearchItem, *, now: float | None = None) -> RecentSearchItem:
        """
        Add locally and report to the remote history, ignoring remote failures.
        """
        if self._sink is not None:
            try:
                await self._sink(item)
            except Exception as e:
                logger.debug("Recent search sink failed for %s:%s: %s", item.kind.value, item.id, e)
        return self.add(item, now=now)

    def remove(self, item_id: str, kind: ResultKind | str) -> None:
        key = (ResultKind(kind).value, str(item_id))
        self._items = [it for it in self._items if it.key != key]

    def clear(self) -> None:
        self._items = []

    def load(self, items: Iterable[RecentSearchItem], *, now: float | None = None) -> None:
        cutoff = float(now if now is not None else time.time()) - self._max_age_s
        kept: list[RecentSearchItem] = []
        seen: set[tuple[str, str]] = set()
        for it in sorted(items, key=lambda x: x.timestamp, reverse=True):
            if it.timestamp <= cutoff or it.key in seen:
                continue
            seen.add(it.key)
            kept.append(it)
        self._items = kept[: self._max_items]
