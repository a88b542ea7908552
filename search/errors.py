from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from details.types import ResultRef
    from search.types import QuerySignature


class SearchCoreError(Exception):
    """Base class for errors raised by the search/navigation core."""


class FetchFailed(SearchCoreError):
    """
    A page fetch failed. Stored on the consolidator as a transient error; existing
    results stay visible.
    """

    def __init__(self, signature: QuerySignature, page_number: int, reason: str):
        super().__init__(f"Page {page_number} for {signature.describe()} failed: {reason}")
        self.signature = signature
        self.page_number = int(page_number)
        self.reason = reason


class DetailFetchFailed(SearchCoreError):
    def __init__(self, ref: ResultRef, reason: str):
        super().__init__(f"Details for {ref.kind.value}:{ref.id} failed: {reason}")
        self.ref = ref
        self.reason = reason


class InvalidSignatureTransition(SearchCoreError):
    """
    A page was applied on top of a result set built for a different query.

    `ResultConsolidator.request_page` always resets on a signature mismatch, so this
    only fires when a caller merges pages by hand.
    """

    def __init__(self, live: QuerySignature | None, incoming: QuerySignature, page_number: int):
        live_desc = live.describe() if live is not None else "<none>"
        super().__init__(
            f"Cannot merge page {page_number} of {incoming.describe()} into results for {live_desc}"
        )
        self.live = live
        self.incoming = incoming
        self.page_number = int(page_number)


class RemoteCallFailed(SearchCoreError):
    """
    The remote service rejected a call (transport error or `isFailure` envelope).
    """

    def __init__(self, description: str, *, error_code: str | None = None):
        super().__init__(description)
        self.description = description
        self.error_code = error_code
