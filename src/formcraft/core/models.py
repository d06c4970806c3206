"""Dataclasses describing catalog tools, placed instances and flat items."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .errors import PayloadValidationError, ToolErrorKind

__all__ = [
    "Tool",
    "ToolInstance",
    "Item",
    "PendingToolRequest",
    "AddResult",
]


@dataclass(frozen=True, slots=True)
class Tool:
    """Catalog entry describing a placeable form field type."""

    tool_type: str
    title: str = ""
    options: Mapping[str, Any] = field(default_factory=dict)
    require_name: bool = True
    option_fields: Optional[Mapping[str, Any]] = None
    container: bool = False

    def default_options(self) -> Dict[str, Any]:
        """Return a private copy of the default option values."""

        return deepcopy(dict(self.options))


@dataclass(slots=True)
class ToolInstance:
    """A tool placed on the form canvas.

    ``defaults`` keeps the originating tool's option defaults so the flat
    representation can store overrides only.
    """

    tool_type: str
    name: str
    title: str = ""
    options: Dict[str, Any] = field(default_factory=dict)
    require_name: bool = True
    option_fields: Optional[Mapping[str, Any]] = None
    container: bool = False
    parent: Optional[str] = None
    children: List["ToolInstance"] = field(default_factory=list)
    defaults: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_tool(
        cls,
        tool: Tool,
        name: str,
        options: Mapping[str, Any] | None = None,
        *,
        parent: str | None = None,
    ) -> "ToolInstance":
        """Create an instance seeded with ``tool`` defaults and ``options`` overrides."""

        merged = tool.default_options()
        if options:
            merged.update(deepcopy(dict(options)))
        return cls(
            tool_type=tool.tool_type,
            name=name,
            title=tool.title,
            options=merged,
            require_name=tool.require_name,
            option_fields=tool.option_fields,
            container=tool.container,
            parent=parent,
            children=[],
            defaults=tool.default_options(),
        )

    def option_overrides(self) -> Dict[str, Any]:
        """Return the options whose value differs from the tool default."""

        overrides: Dict[str, Any] = {}
        for key, value in self.options.items():
            if key in self.defaults and self.defaults[key] == value:
                continue
            overrides[key] = deepcopy(value)
        return overrides

    def __deepcopy__(self, memo: dict[int, Any]) -> "ToolInstance":
        # option_fields may hold rendering callables; share them rather than copy.
        clone = ToolInstance(
            tool_type=self.tool_type,
            name=self.name,
            title=self.title,
            options=deepcopy(self.options, memo),
            require_name=self.require_name,
            option_fields=self.option_fields,
            container=self.container,
            parent=self.parent,
            children=[deepcopy(child, memo) for child in self.children],
            defaults=deepcopy(self.defaults, memo),
        )
        memo[id(self)] = clone
        return clone


@dataclass(frozen=True, slots=True)
class Item:
    """Flat persistence record for one instance."""

    tool_type: str
    name: str
    options: Mapping[str, Any] = field(default_factory=dict)
    parent: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Return the wire representation (camelCase ``toolType``)."""

        payload: Dict[str, Any] = {
            "toolType": self.tool_type,
            "name": self.name,
            "options": deepcopy(dict(self.options)),
        }
        if self.parent is not None:
            payload["parent"] = self.parent
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Item":
        tool_type = payload.get("toolType", payload.get("tool_type"))
        name = payload.get("name")
        missing = [key for key, value in (("toolType", tool_type), ("name", name)) if not value]
        if missing:
            raise PayloadValidationError.from_messages(
                [f"'{key}' is a required property" for key in missing], subject="item"
            )
        options = payload.get("options") or {}
        return cls(
            tool_type=str(tool_type),
            name=str(name),
            options=dict(options),
            parent=payload.get("parent") or None,
        )


@dataclass(frozen=True, slots=True)
class PendingToolRequest:
    """A creation that waits for the user to supply a name."""

    tool: Tool
    index: Optional[int] = None
    parent: Optional[str] = None


@dataclass(slots=True)
class AddResult:
    """Outcome of :meth:`ToolStore.add_instance`."""

    ok: bool
    error: Optional[ToolErrorKind] = None
    message: str = ""
    instance: Optional[ToolInstance] = None

    def __bool__(self) -> bool:
        return self.ok
