from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Generic, Literal, Mapping, TypeVar, Union


class PanelType(str, Enum):
    """Views of the primary (left) panel."""

    measurement = "measurement"
    drawing = "drawing"
    routing = "routing"
    search = "search"
    poi_details = "poiDetails"
    profile = "profile"
    layers = "layers"
    organization_poi = "organizationPoi"
    missing_place = "missingPlace"
    save = "save"
    history = "history"
    analysis_3d = "analysis3D"
    spatial_analysis = "spatialAnalysis"


class ChildPanelType(str, Enum):
    """Views of the secondary panel that opens next to the primary one."""

    personal_poi_details = "personalPoiDetails"
    organization_poi_details = "organizationPoiDetails"
    saved_place_details = "saved-place-details"
    user_profile = "userProfile"
    image_gallery = "imageGallery"
    quick_settings = "quickSettings"
    notifications = "notifications"
    chat = "chat"
    document_viewer = "documentViewer"
    form_editor = "formEditor"
    data_table = "dataTable"
    calendar = "calendar"
    task_list = "taskList"
    file_manager = "fileManager"
    custom_content = "customContent"
    public_poi_details = "publicPoiDetails"


T = TypeVar("T", PanelType, ChildPanelType)

PanelSize = Union[Literal["sm", "md", "lg", "xl"], int]
PanelHeight = Union[Literal["auto", "full", "sm", "md", "lg"], int]


@dataclass(frozen=True)
class ChildPanelConfig:
    # sm=320px, md=480px, lg=640px, xl=800px
    width: PanelSize | None = None
    # auto=content, full=100vh, sm=400px, md=600px, lg=800px
    height: PanelHeight | None = None
    position: Literal["right", "left", "center"] | None = None
    show_close_button: bool | None = None
    allow_click_outside_to_close: bool | None = None
    show_backdrop: bool | None = None
    resizable: bool | None = None
    draggable: bool | None = None
    # Shown over everything, like a modal.
    overlay: bool | None = None


@dataclass(frozen=True)
class PanelView(Generic[T]):
    """
    One entry of a panel history.

    `data` is the view's payload as a plain mapping; `typed_payload()` decodes it for
    the panel types that have a concrete payload class.
    """

    type: T
    title: str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)
    config: ChildPanelConfig | None = None

    @classmethod
    def create(
        cls,
        type: T,
        title: str,
        data: Mapping[str, Any] | None = None,
        *,
        config: ChildPanelConfig | None = None,
    ) -> "PanelView[T]":
        return cls(type=type, title=str(title), data=dict(data or {}), config=config)

    def same_content(self, other: "PanelView[T]") -> bool:
        return self.type == other.type and self.data == other.data


@dataclass(frozen=True)
class PlaceDetailsData:
    """Payload of the detail views opened from a search result."""

    kind: str
    id: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_data(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_data(cls, data: Mapping[str, Any]) -> "PlaceDetailsData":
        return cls(
            kind=str(data.get("kind") or ""),
            id=str(data.get("id") or ""),
            details=dict(data.get("details") or {}),
        )


@dataclass(frozen=True)
class SearchPanelData:
    keyword: str | None = None
    category_id: int | None = None

    def to_data(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_data(cls, data: Mapping[str, Any]) -> "SearchPanelData":
        cat = data.get("category_id")
        return cls(
            keyword=data.get("keyword"),
            category_id=int(cat) if cat is not None else None,
        )


PanelPayload = Union[PlaceDetailsData, SearchPanelData]

PAYLOAD_TYPES: dict[PanelType | ChildPanelType, type[PlaceDetailsData] | type[SearchPanelData]] = {
    PanelType.search: SearchPanelData,
    PanelType.poi_details: PlaceDetailsData,
    PanelType.organization_poi: PlaceDetailsData,
    ChildPanelType.public_poi_details: PlaceDetailsData,
    ChildPanelType.personal_poi_details: PlaceDetailsData,
    ChildPanelType.organization_poi_details: PlaceDetailsData,
    ChildPanelType.saved_place_details: PlaceDetailsData,
}


def typed_payload(view: PanelView) -> PanelPayload | dict[str, Any]:
    """
    Decode `view.data` by its panel type; untyped panels get their mapping back.
    """
    cls = PAYLOAD_TYPES.get(view.type)
    if cls is None:
        return dict(view.data)
    return cls.from_data(view.data)
