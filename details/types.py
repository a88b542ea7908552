from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

# Roads come without an id; the English name is stable enough as a key.
ROAD_ID_FIELDS = ("id", "englishName", "arabicName")


class ResultKind(str, Enum):
    district = "district"
    city = "city"
    governate = "governate"
    region = "region"
    poi = "poi"
    road = "road"


@dataclass(frozen=True)
class ResultRef:
    """
    Reference to something the user picked from the results.

    Roads have no detail endpoint; their ref carries the search hit as `inline`.
    """

    kind: ResultKind
    id: str
    inline: dict[str, Any] | None = field(default=None, compare=False, hash=False)

    @classmethod
    def of(cls, kind: ResultKind | str, rid: str | int) -> "ResultRef":
        return cls(kind=ResultKind(kind), id=str(rid))

    @classmethod
    def road(cls, data: Mapping[str, Any]) -> "ResultRef":
        rid = next((data[f] for f in ROAD_ID_FIELDS if data.get(f)), None)
        if not rid:
            raise ValueError("Road result needs an id or a name")
        return cls(kind=ResultKind.road, id=str(rid), inline=dict(data))

    @classmethod
    def from_hit(cls, kind: ResultKind | str, hit: Mapping[str, Any]) -> "ResultRef":
        """Ref for a search or autocomplete hit of the given kind."""
        kind = ResultKind(kind)
        if kind == ResultKind.road:
            return cls.road(hit)
        rid = hit.get("id")
        if rid is None or str(rid) == "":
            raise ValueError(f"{kind.value} result without an id")
        return cls.of(kind, rid)

    @property
    def key(self) -> tuple[str, str]:
        return (self.kind.value, self.id)


@dataclass(frozen=True)
class DetailRecord:
    ref: ResultRef
    payload: dict[str, Any]
    fetched_at: float = field(default_factory=time.time)
