from __future__ import annotations

from panels.history import PanelHistoryStack
from panels.types import (
    ChildPanelConfig,
    ChildPanelType,
    PanelType,
    PanelView,
    PlaceDetailsData,
    SearchPanelData,
    typed_payload,
)


def _view(t: PanelType, title: str, **data) -> PanelView[PanelType]:
    return PanelView.create(t, title, data)


def _stack_of_three() -> PanelHistoryStack[PanelType]:
    s: PanelHistoryStack[PanelType] = PanelHistoryStack("primary")
    s.push(_view(PanelType.search, "P1", keyword="cafe"))
    s.push(_view(PanelType.poi_details, "P2", id="a"))
    s.push(_view(PanelType.poi_details, "P3", id="b"))
    return s


def test_empty_stack_invariants():
    s: PanelHistoryStack[PanelType] = PanelHistoryStack()
    assert s.cursor == -1
    assert s.is_open is False
    assert s.current() is None
    assert not s.can_go_back()
    assert not s.can_go_forward()

    s.back()
    s.forward()
    s.replace_top(_view(PanelType.layers, "x"))
    s.patch_top_data({"a": 1})
    assert len(s) == 0
    assert s.cursor == -1


def test_push_after_back_truncates_forward_history():
    s = _stack_of_three()
    s.back()
    assert s.current().title == "P2"
    assert s.can_go_forward()

    s.push(_view(PanelType.routing, "P4"))
    assert [v.title for v in s.entries] == ["P1", "P2", "P4"]
    assert s.cursor == 2
    assert s.current().title == "P4"
    assert not s.can_go_forward()
    assert s.previous_type == PanelType.poi_details


def test_reopening_same_view_is_a_noop():
    s: PanelHistoryStack[PanelType] = PanelHistoryStack()
    assert s.push(_view(PanelType.poi_details, "Cafe", id="p7", details={"rating": 4}))
    assert not s.push(_view(PanelType.poi_details, "Cafe again", id="p7", details={"rating": 4}))
    assert len(s) == 1
    assert s.current().title == "Cafe"

    # Same type but different data is a new entry.
    assert s.push(_view(PanelType.poi_details, "Other", id="p8"))
    assert len(s) == 2


def test_back_and_forward_stop_at_the_ends():
    s = _stack_of_three()
    s.forward()
    assert s.cursor == 2
    s.back()
    s.back()
    s.back()
    assert s.cursor == 0
    assert s.current().title == "P1"
    assert s.is_open
    s.forward()
    assert s.cursor == 1


def test_replace_and_patch_only_touch_current_entry():
    s = _stack_of_three()
    s.back()
    s.replace_top(_view(PanelType.measurement, "Measure", tool="line"))
    s.patch_top_data({"unit": "km", "tool": "area"})

    titles = [v.title for v in s.entries]
    assert titles == ["P1", "Measure", "P3"]
    assert s.current().data == {"tool": "area", "unit": "km"}
    assert s.entries[2].data == {"id": "b"}


def test_reset_closes_the_stack():
    s = _stack_of_three()
    s.reset()
    assert len(s) == 0
    assert s.cursor == -1
    assert s.is_open is False
    assert s.previous_type is None


def test_entries_are_not_aliased():
    payload = {"details": {"name": "Cafe"}}
    s: PanelHistoryStack[PanelType] = PanelHistoryStack()
    s.push(PanelView.create(PanelType.poi_details, "Cafe", payload))
    payload["details"]["name"] = "changed"

    shown = s.current()
    shown.data["details"]["name"] = "also changed"
    assert s.current().data == {"details": {"name": "Cafe"}}


def test_child_panel_uses_the_same_stack_type():
    child: PanelHistoryStack[ChildPanelType] = PanelHistoryStack("child")
    cfg = ChildPanelConfig(width="md", position="right", overlay=False)
    assert child.open(ChildPanelType.image_gallery, "Photos", {"poi": "p1"}, config=cfg)
    assert not child.open(ChildPanelType.image_gallery, "Photos", {"poi": "p1"}, config=cfg)
    child.open(ChildPanelType.public_poi_details, "Details", {"kind": "poi", "id": "p1"})
    child.back()
    assert child.current().config == cfg
    assert child.can_go_forward()


def test_typed_payload_by_panel_type():
    details = PlaceDetailsData(kind="poi", id="p1", details={"englishName": "Cafe"})
    v = PanelView.create(PanelType.poi_details, "Cafe", details.to_data())
    assert typed_payload(v) == details

    search = PanelView.create(PanelType.search, "Search", SearchPanelData(category_id=4).to_data())
    assert typed_payload(search) == SearchPanelData(keyword=None, category_id=4)

    layers = PanelView.create(PanelType.layers, "Layers", {"visible": ["roads"]})
    assert typed_payload(layers) == {"visible": ["roads"]}
