from __future__ import annotations

import copy
import logging
from dataclasses import replace
from typing import Any, Generic, Mapping

from panels.types import T, PanelView

logger = logging.getLogger(__name__)


class PanelHistoryStack(Generic[T]):
    """
    Browser-style history of panel views.

    Invariant: -1 <= cursor < len(entries) and is_open == (cursor >= 0).

    Pushing while somewhere in the middle of the history drops everything after the
    cursor. Pushing the view that is already shown (same type, equal data) does
    nothing, so repeated clicks on one item do not pile up entries.

    Views are copied on the way in and on the way out; callers never hold a reference
    into the stack.
    """

    def __init__(self, name: str = "panel"):
        self.name = name
        self._entries: list[PanelView[T]] = []
        self._cursor = -1
        self._previous_type: T | None = None

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def is_open(self) -> bool:
        return self._cursor >= 0

    @property
    def entries(self) -> list[PanelView[T]]:
        return [_owned(v) for v in self._entries]

    @property
    def previous_type(self) -> T | None:
        """Type of the view that was current before the last push."""
        return self._previous_type

    def __len__(self) -> int:
        return len(self._entries)

    def current(self) -> PanelView[T] | None:
        if self._cursor < 0:
            return None
        return _owned(self._entries[self._cursor])

    def can_go_back(self) -> bool:
        return self._cursor > 0

    def can_go_forward(self) -> bool:
        return 0 <= self._cursor < len(self._entries) - 1

    def push(self, view: PanelView[T]) -> bool:
        """
        Open `view` on top of the current entry. Returns False for the re-open no-op.
        """
        top = self._entries[self._cursor] if self._cursor >= 0 else None
        if self.is_open and top is not None and top.same_content(view):
            logger.debug("%s: %s already shown, push ignored", self.name, _type_name(view.type))
            return False

        self._previous_type = top.type if top is not None else None
        del self._entries[self._cursor + 1 :]
        self._entries.append(_owned(view))
        self._cursor = len(self._entries) - 1
        return True

    def replace_top(self, view: PanelView[T]) -> None:
        if self._cursor < 0:
            return
        self._entries[self._cursor] = _owned(view)

    def patch_top_data(self, partial: Mapping[str, Any]) -> None:
        if self._cursor < 0:
            return
        top = self._entries[self._cursor]
        merged = {**top.data, **copy.deepcopy(dict(partial))}
        self._entries[self._cursor] = replace(top, data=merged)

    def back(self) -> None:
        if self._cursor > 0:
            self._cursor -= 1

    def forward(self) -> None:
        if self._cursor < len(self._entries) - 1:
            self._cursor += 1

    def reset(self) -> None:
        self._entries = []
        self._cursor = -1
        self._previous_type = None

    def open(
        self,
        type: T,
        title: str,
        data: Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> bool:
        """Shorthand for `push(PanelView.create(...))` with a fresh timestamp."""
        return self.push(PanelView.create(type, title, data, **kwargs))


def _owned(view: PanelView[T]) -> PanelView[T]:
    return replace(view, data=copy.deepcopy(view.data))


def _type_name(t: Any) -> str:
    return getattr(t, "value", str(t))
