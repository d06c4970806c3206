"""Change notifications published by the tool store.

Rendering layers subscribe to these instead of polling the tree; each
event carries names, never live instance objects.
"""

from __future__ import annotations

import inspect
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Mapping
from weakref import WeakMethod

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from ..core.models import PendingToolRequest

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


@dataclass(slots=True)
class Event:
    """Base class for all tool-store events."""

    pass


# =============================================================================
# Tree Events
# =============================================================================


@dataclass(slots=True)
class ToolTreeReset(Event):
    """Emitted when the whole tree is rebuilt from a flat item list.

    Attributes:
        instance_count: Number of instances in the rebuilt tree.
    """

    instance_count: int


@dataclass(slots=True)
class ToolInstanceAdded(Event):
    """Emitted after an instance has been inserted."""

    name: str
    tool_type: str
    parent: str | None
    index: int


@dataclass(slots=True)
class ToolInstanceRemoved(Event):
    """Emitted after an instance (and its subtree) has been detached."""

    name: str
    parent: str | None
    removed_names: tuple[str, ...] = ()


@dataclass(slots=True)
class ToolInstanceMoved(Event):
    """Emitted after an instance changed position or container."""

    name: str
    old_parent: str | None
    new_parent: str | None
    old_index: int
    new_index: int


@dataclass(slots=True)
class ToolInstanceUpdated(Event):
    name: str
    fields: tuple[str, ...] = ()


@dataclass(slots=True)
class SelectionChanged(Event):
    name: str | None
    previous: str | None = None


@dataclass(slots=True)
class ToolNameRequested(Event):
    """Emitted when a name-requiring tool waits for a user-chosen name."""

    request: "PendingToolRequest"


@dataclass(slots=True)
class FormSaved(Event):
    item_count: int
    form: Mapping[str, Any]


# Selection changes follow every click; keep them out of the debug log.
_QUIET_EVENT_TYPES: frozenset[type[Event]] = frozenset({SelectionChanged})


class EventBus:
    """Synchronous publish/subscribe between the tool store and its views.

    Handlers run in subscription order for the exact event type they
    registered for. Bound methods are held weakly, so a discarded name
    prompt or panel stops receiving events without unsubscribing; other
    callables are held strongly. A handler that raises is logged and the
    remaining handlers still run.

    Example::

        bus = EventBus()
        bus.subscribe(ToolInstanceAdded, lambda event: print(event.name))
        store = ToolStore(catalog, event_bus=bus)
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: dict[type[Event], list[_Resolver]] = defaultdict(list)

    def subscribe(self, event_type: type[Event], handler: Handler) -> None:
        self._handlers[event_type].append(_resolver_for(handler))
        logger.debug("Subscribed %s to %s", _describe(handler), event_type.__name__)

    def unsubscribe(self, event_type: type[Event], handler: Handler) -> None:
        """Remove the first registration of ``handler``; unknown handlers are ignored."""

        resolvers = self._handlers.get(event_type, [])
        for position, resolve in enumerate(resolvers):
            if resolve() == handler:
                del resolvers[position]
                logger.debug("Unsubscribed %s from %s", _describe(handler), event_type.__name__)
                return

    def publish(self, event: Event) -> None:
        event_type = type(event)
        resolvers = self._handlers.get(event_type)
        if not resolvers:
            return
        if event_type not in _QUIET_EVENT_TYPES:
            logger.debug("Publishing %s to %d handler(s)", event_type.__name__, len(resolvers))

        dead = False
        for resolve in list(resolvers):
            handler = resolve()
            if handler is None:
                dead = True
                continue
            try:
                handler(event)
            except Exception:
                logger.exception("Handler %s failed on %s", _describe(handler), event_type.__name__)
        if dead:
            resolvers[:] = [resolve for resolve in resolvers if resolve() is not None]

    def clear(self) -> None:
        self._handlers.clear()

    def handler_count(self, event_type: type[Event] | None = None) -> int:
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(resolvers) for resolvers in self._handlers.values())


_Resolver = Callable[[], "Handler | None"]


def _resolver_for(handler: Handler) -> _Resolver:
    if inspect.ismethod(handler):
        return WeakMethod(handler)
    return lambda: handler


def _describe(handler: Handler) -> str:
    if inspect.ismethod(handler):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    return getattr(handler, "__name__", repr(handler))


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "ToolTreeReset",
    "ToolInstanceAdded",
    "ToolInstanceRemoved",
    "ToolInstanceMoved",
    "ToolInstanceUpdated",
    "SelectionChanged",
    "ToolNameRequested",
    "FormSaved",
]
