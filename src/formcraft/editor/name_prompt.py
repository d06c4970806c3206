"""State behind the "name this field" prompt shown for name-requiring tools."""

from __future__ import annotations

import logging

from ..core.models import PendingToolRequest, ToolInstance
from .events import EventBus, ToolNameRequested
from .tool_store import ToolStore

__all__ = ["NamePrompt"]

LOGGER = logging.getLogger(__name__)


class NamePrompt:
    """Resolves :class:`PendingToolRequest` objects into added instances.

    The prompt stays open with an error message when the store rejects the
    name, and closes once the instance was added or the request cancelled.
    """

    def __init__(self, store: ToolStore, *, event_bus: EventBus | None = None) -> None:
        self._store = store
        self._request: PendingToolRequest | None = None
        self.name = ""
        self.error = ""
        if event_bus is not None:
            event_bus.subscribe(ToolNameRequested, self._on_name_requested)

    @property
    def request(self) -> PendingToolRequest | None:
        return self._request

    @property
    def is_open(self) -> bool:
        return self._request is not None

    @property
    def title(self) -> str:
        if self._request is None:
            return ""
        return f"Add {self._request.tool.title}"

    @property
    def can_submit(self) -> bool:
        return self.is_open and bool(self.name) and not self.error

    def open(self, request: PendingToolRequest) -> None:
        self._request = request
        self.name = ""
        self.error = ""

    def set_name(self, value: str) -> None:
        self.name = value
        self.error = ""

    def submit(self) -> bool:
        """Try to add the pending tool under the entered name."""

        if not self.can_submit:
            return False
        request = self._request
        assert request is not None
        candidate = ToolInstance.from_tool(request.tool, self.name)
        result = self._store.add_instance(candidate, request.index, request.parent)
        if result.ok:
            LOGGER.debug("NamePrompt.submit: added %s", self.name)
            self.cancel()
            return True
        self.error = result.message
        return False

    def cancel(self) -> None:
        self._request = None
        self.name = ""
        self.error = ""

    def _on_name_requested(self, event: ToolNameRequested) -> None:
        self.open(event.request)
