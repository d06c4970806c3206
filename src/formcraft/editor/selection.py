"""Tracks the single selected tool instance by name."""

from __future__ import annotations

from typing import Iterable, Mapping

from ..core.models import ToolInstance

__all__ = ["SelectionTracker"]


class SelectionTracker:
    """Holds at most one selected name.

    The selected instance is resolved against the current name index on
    every read, so a removed instance resolves to ``None`` without any
    bookkeeping by the caller.
    """

    __slots__ = ("_name",)

    def __init__(self, name: str | None = None) -> None:
        self._name = name

    @property
    def selected_name(self) -> str | None:
        return self._name

    def select(self, name: str | None) -> str | None:
        """Select ``name`` and return the previously selected name."""

        previous = self._name
        self._name = name
        return previous

    def clear(self) -> str | None:
        return self.select(None)

    def resolve(self, index: Mapping[str, ToolInstance]) -> ToolInstance | None:
        if self._name is None:
            return None
        return index.get(self._name)

    def discard(self, names: Iterable[str]) -> bool:
        """Clear the selection if it points at one of ``names``."""

        if self._name is not None and self._name in set(names):
            self._name = None
            return True
        return False

    def __repr__(self) -> str:
        return f"SelectionTracker(selected_name={self._name!r})"
