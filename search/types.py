from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping

from geo.aoi import BBox

if TYPE_CHECKING:
    from search.errors import FetchFailed


class QueryMode(str, Enum):
    keyword = "keyword"
    category = "category"


@dataclass(frozen=True)
class QuerySignature:
    """
    What is currently being searched.

    Equality (and hashing) only looks at the mode and the mode-relevant key: the
    viewport (`bbox`, `scale`) refines the same logical query, so panning/zooming never
    produces a different signature, while switching mode, keyword or category does.
    """

    mode: QueryMode
    bbox: BBox = field(compare=False)
    keyword: str | None = None
    category_id: int | None = None
    scale: float | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.mode == QueryMode.keyword:
            if self.keyword is None:
                raise ValueError("Keyword search requires a keyword")
            if self.category_id is not None:
                raise ValueError("Keyword search cannot carry a category id")
        elif self.mode == QueryMode.category:
            if self.category_id is None:
                raise ValueError("Category search requires a category id")
            if self.keyword is not None:
                raise ValueError("Category search cannot carry a keyword")
        else:
            raise ValueError(f"Unknown query mode: {self.mode!r}")

    @classmethod
    def for_keyword(
        cls, keyword: str, bbox: BBox, *, scale: float | None = None
    ) -> "QuerySignature":
        return cls(mode=QueryMode.keyword, keyword=str(keyword), bbox=bbox, scale=scale)

    @classmethod
    def for_category(
        cls, category_id: int, bbox: BBox, *, scale: float | None = None
    ) -> "QuerySignature":
        return cls(
            mode=QueryMode.category, category_id=int(category_id), bbox=bbox, scale=scale
        )

    def with_viewport(self, bbox: BBox, scale: float | None = None) -> "QuerySignature":
        return replace(self, bbox=bbox, scale=scale)

    def describe(self, decimals: int | None = None) -> str:
        if self.mode == QueryMode.keyword:
            out = f"keyword={self.keyword!r}"
        else:
            out = f"category={self.category_id}"
        if decimals is not None:
            out += f" bbox={self.bbox.rounded_key(decimals)}"
        return out


@dataclass(frozen=True)
class ResultItem:
    """
    One search hit. `fields` holds the domain payload as delivered by the service
    (names, city/district, category, rating, ...).
    """

    id: str
    fields: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(
        cls, raw: Mapping[str, Any], *, id_fields: tuple[str, ...] = ("id",)
    ) -> "ResultItem":
        # First non-empty field wins; road hits carry no id and fall back to a name.
        rid = next((raw[f] for f in id_fields if raw.get(f) not in (None, "")), None)
        if rid is None:
            raise ValueError(f"Search result without an id: {dict(raw)!r}")
        return cls(id=str(rid), fields=dict(raw))

    @property
    def lon(self) -> float | None:
        v = self.fields.get("longitude")
        return float(v) if v is not None else None

    @property
    def lat(self) -> float | None:
        v = self.fields.get("latitude")
        return float(v) if v is not None else None


@dataclass(frozen=True)
class Page:
    """
    One page of search results plus the server's pagination metadata.
    """

    items: tuple[ResultItem, ...]
    has_next_page: bool
    has_previous_page: bool = False
    total_count: int = 0
    total_pages: int = 0


class ConsolidatorStatus(str, Enum):
    idle = "idle"
    loading = "loading"
    ready = "ready"
    error = "error"


@dataclass(frozen=True)
class ResultSet:
    """
    Read-only snapshot of the consolidated results for the active query.

    - page_number: last page that delivered items (1 before any page landed)
    - next_page: the page `request_next_page()` will ask for
    - is_first_page: a fresh first page just replaced the set (UI may fit the view)
    """

    items: tuple[ResultItem, ...] = ()
    signature: QuerySignature | None = None
    page_number: int = 1
    next_page: int = 1
    has_next_page: bool = True
    has_previous_page: bool = False
    total_count: int = 0
    total_pages: int = 0
    is_first_page: bool = False
    status: ConsolidatorStatus = ConsolidatorStatus.idle
    error: FetchFailed | None = None

    @property
    def loading(self) -> bool:
        return self.status == ConsolidatorStatus.loading

    @property
    def ids(self) -> list[str]:
        return [it.id for it in self.items]

    def get(self, item_id: str) -> ResultItem | None:
        iid = str(item_id)
        for it in self.items:
            if it.id == iid:
                return it
        return None

    def __len__(self) -> int:
        return len(self.items)
