from __future__ import annotations

from typing import Protocol

from search.types import Page, QuerySignature


class PageFetcher(Protocol):
    """
    Source of search result pages.

    - RemotePageFetcher: posts to the map search service
    - InMemoryPageFetcher: slices a preloaded item list (tests, demos, offline)

    Failure is signalled by raising; the consolidator turns it into state.
    """

    async def fetch(
        self, signature: QuerySignature, page_number: int, page_size: int
    ) -> Page: ...
