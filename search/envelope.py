from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, ValidationError

from search.errors import RemoteCallFailed
from search.types import Page, QueryMode, QuerySignature, ResultItem


class ApiError(BaseModel):
    errorCode: str | None = None
    description: str | None = None
    errorType: int | None = None


class ApiEnvelope(BaseModel):
    """
    Response wrapper used by every endpoint of the map search service.
    """

    isSuccess: bool = True
    isFailure: bool = False
    error: ApiError | None = None
    value: Any = None


class ApiPagedValue(BaseModel):
    items: list[dict[str, Any]] = Field(default_factory=list)
    hasNextPage: bool = False
    hasPreviousPage: bool = False
    pageNumber: int = 1
    pageSize: int = 0
    totalCount: int = 0
    totalPages: int = 0


def _unwrap(raw: Any, *, default_error: str) -> ApiEnvelope:
    try:
        env = ApiEnvelope.model_validate(raw)
    except ValidationError as e:
        raise RemoteCallFailed(f"{default_error}: malformed response") from e
    if env.isFailure or not env.isSuccess:
        err = env.error or ApiError()
        raise RemoteCallFailed(err.description or default_error, error_code=err.errorCode)
    return env


def parse_page_envelope(
    raw: Any,
    *,
    default_error: str = "Failed to fetch POIs",
    id_fields: tuple[str, ...] = ("id",),
) -> Page:
    env = _unwrap(raw, default_error=default_error)
    try:
        value = ApiPagedValue.model_validate(env.value or {})
        items = tuple(ResultItem.from_mapping(it, id_fields=id_fields) for it in value.items)
    except (ValidationError, ValueError) as e:
        raise RemoteCallFailed(f"{default_error}: malformed page") from e
    return Page(
        items=items,
        has_next_page=value.hasNextPage,
        has_previous_page=value.hasPreviousPage,
        total_count=value.totalCount,
        total_pages=value.totalPages,
    )


def parse_list_envelope(
    raw: Any, *, default_error: str, id_fields: tuple[str, ...] = ("id",)
) -> tuple[ResultItem, ...]:
    """
    Unpaged list responses (autocomplete): `value` is a plain list of hits.
    """
    env = _unwrap(raw, default_error=default_error)
    rows = env.value if env.value is not None else []
    if not isinstance(rows, list):
        raise RemoteCallFailed(f"{default_error}: malformed list")
    try:
        return tuple(ResultItem.from_mapping(r, id_fields=id_fields) for r in rows)
    except (AttributeError, ValueError) as e:
        raise RemoteCallFailed(f"{default_error}: malformed list") from e


def parse_detail_envelope(
    raw: Any, *, default_error: str = "Failed to fetch details"
) -> dict[str, Any]:
    env = _unwrap(raw, default_error=default_error)
    if not isinstance(env.value, dict):
        raise RemoteCallFailed(f"{default_error}: empty details")
    return dict(env.value)


def build_search_request(
    signature: QuerySignature, page_number: int, page_size: int
) -> dict[str, Any]:
    """
    Request body for a keyword search (any kind) or a POI category search.
    """
    body: dict[str, Any] = {
        "boundingBox": signature.bbox.to_wire(),
        "pagination": {"pageNumber": int(page_number), "pageSize": int(page_size)},
    }
    if signature.scale is not None:
        body["scale"] = float(signature.scale)
    if signature.mode == QueryMode.keyword:
        body["keyword"] = signature.keyword
    else:
        body["categoryId"] = signature.category_id
    return body
