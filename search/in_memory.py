from __future__ import annotations

import math
from typing import Iterable

from geo.index import build_item_index
from search.types import Page, QueryMode, QuerySignature, ResultItem

_NAME_FIELDS = ("englishName", "arabicName")


class InMemoryPageFetcher:
    """
    Indexes a fixed list of results once (STRtree), then answers page requests the
    way the search service does: filter by query, slice by bbox, paginate.
    """

    def __init__(self, items: Iterable[ResultItem]):
        self._index = build_item_index(items)

    async def fetch(
        self, signature: QuerySignature, page_number: int, page_size: int
    ) -> Page:
        in_view = self._index.query(signature.bbox)
        matches = [it for it in in_view if _matches(it, signature)]

        size = max(1, int(page_size))
        page = max(1, int(page_number))
        total = len(matches)
        total_pages = int(math.ceil(total / size)) if total else 0
        start = (page - 1) * size
        return Page(
            items=tuple(matches[start : start + size]),
            has_next_page=page < total_pages,
            has_previous_page=page > 1,
            total_count=total,
            total_pages=total_pages,
        )


def _matches(item: ResultItem, signature: QuerySignature) -> bool:
    if signature.mode == QueryMode.category:
        cat = item.fields.get("categoryId")
        return cat is not None and int(cat) == signature.category_id

    needle = (signature.keyword or "").strip().lower()
    if not needle:
        return True
    for name in _NAME_FIELDS:
        v = item.fields.get(name)
        if v and needle in str(v).lower():
            return True
    return False
