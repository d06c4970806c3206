"""Translate finished drag gestures into tool store operations.

Gesture capture lives in the UI layer; it reports what was dragged
(a catalog tool or a placed instance) and what it was released over
(the canvas, a container instance, or an ordinary instance).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from ..core.models import PendingToolRequest, ToolInstance
from ..core.tree import position_in, subtree_names
from .tool_store import ToolStore

__all__ = ["DropKind", "DropEvent", "DropOutcome", "DropHandler", "CANVAS_ID"]

LOGGER = logging.getLogger(__name__)

CANVAS_ID = "form-area"


class DropKind(str, Enum):
    """What was being dragged."""

    TOOL = "tool"
    INSTANCE = "instance"


@dataclass(frozen=True, slots=True)
class DropEvent:
    """A released drag.

    ``active_id`` is a tool type for :attr:`DropKind.TOOL` and an instance
    name for :attr:`DropKind.INSTANCE`. ``over_id`` is ``None`` (or the
    canvas id) for the top-level canvas; ``index`` is the drop position on
    the canvas.
    """

    active_id: str
    kind: DropKind = DropKind.TOOL
    over_id: str | None = None
    index: int | None = None


@dataclass(slots=True)
class DropOutcome:
    action: str
    name: str | None = None
    request: PendingToolRequest | None = None
    reason: str = ""

    @property
    def handled(self) -> bool:
        return self.action != "ignored"


class DropHandler:
    """Applies :class:`DropEvent` objects to a :class:`ToolStore`."""

    def __init__(self, store: ToolStore, *, canvas_id: str = CANVAS_ID) -> None:
        self._store = store
        self._canvas_id = canvas_id

    def handle(self, event: DropEvent) -> DropOutcome:
        over = None if event.over_id in (None, self._canvas_id) else event.over_id
        if event.kind is DropKind.TOOL:
            outcome = self._drop_tool(event.active_id, over, event.index)
        else:
            outcome = self._drop_instance(event.active_id, over, event.index)
        LOGGER.debug(
            "DropHandler.handle: %s %s over %s -> %s %s",
            event.kind.value,
            event.active_id,
            over,
            outcome.action,
            outcome.reason,
        )
        return outcome

    # ------------------------------------------------------------------
    # Tools from the toolbox
    # ------------------------------------------------------------------
    def _drop_tool(self, tool_type: str, over: str | None, index: int | None) -> DropOutcome:
        tool = self._store.tools.get(tool_type)
        if tool is None:
            return DropOutcome("ignored", reason=f"unknown tool type {tool_type!r}")

        if over is None:
            return _created(self._store.create_instance(tool, index))

        target = self._store.find_instance(over)
        if target is None:
            return DropOutcome("ignored", reason=f"unknown drop target {over!r}")
        if target.container:
            return _created(self._store.create_instance(tool, None, target.name))
        return _created(self._store.create_instance(tool, self._position_of(target), target.parent))

    # ------------------------------------------------------------------
    # Instances already on the form
    # ------------------------------------------------------------------
    def _drop_instance(self, name: str, over: str | None, index: int | None) -> DropOutcome:
        moved = self._store.find_instance(name)
        if moved is None:
            return DropOutcome("ignored", reason=f"unknown instance {name!r}")
        if over == name:
            return DropOutcome("ignored", name=name, reason="dropped on itself")

        if over is None:
            if moved.parent is None:
                position = len(self._store.tool_instances) - 1 if index is None else index
                self._store.move_instance(name, position)
                return DropOutcome("moved", name=name)
            self._store.transfer_instance(name, None, index)
            return DropOutcome("transferred", name=name)

        target = self._store.find_instance(over)
        if target is None:
            return DropOutcome("ignored", name=name, reason=f"unknown drop target {over!r}")
        owned = subtree_names(moved)

        if target.container:
            if moved.parent == target.name:
                return DropOutcome("ignored", name=name, reason="already inside the container")
            if target.name in owned:
                return DropOutcome("ignored", name=name, reason="cannot drop into its own subtree")
            self._store.transfer_instance(name, target.name)
            return DropOutcome("transferred", name=name)

        position = self._position_of(target)
        if target.parent == moved.parent:
            self._store.move_instance(name, position)
            return DropOutcome("moved", name=name)
        if target.parent is not None and target.parent in owned:
            return DropOutcome("ignored", name=name, reason="cannot drop into its own subtree")
        self._store.transfer_instance(name, target.parent, position)
        return DropOutcome("transferred", name=name)

    def _position_of(self, instance: ToolInstance) -> int:
        if instance.parent is None:
            siblings = self._store.tool_instances
        else:
            siblings = tuple(self._store.get_instance(instance.parent).children)
        return position_in(siblings, instance.name)


def _created(result: ToolInstance | PendingToolRequest) -> DropOutcome:
    if isinstance(result, PendingToolRequest):
        return DropOutcome("pending", request=result)
    return DropOutcome("created", name=result.name)
