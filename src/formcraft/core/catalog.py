"""Read-only catalog of the tools that can be placed on a form."""

from __future__ import annotations

from typing import Any, Iterable, Iterator, Mapping, Sequence, overload

from .errors import UnknownToolTypeError
from .models import Tool

__all__ = ["ToolCatalog", "tool_from_dict"]


class ToolCatalog(Sequence[Tool]):
    """Ordered collection of :class:`Tool` definitions keyed by ``tool_type``."""

    __slots__ = ("_tools", "_by_type")

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        self._tools: tuple[Tool, ...] = tuple(tools)
        self._by_type: dict[str, Tool] = {}
        for tool in self._tools:
            if tool.tool_type in self._by_type:
                raise ValueError(f"Duplicate tool type in catalog: {tool.tool_type!r}")
            self._by_type[tool.tool_type] = tool

    @classmethod
    def coerce(cls, tools: "ToolCatalog | Iterable[Tool]") -> "ToolCatalog":
        if isinstance(tools, ToolCatalog):
            return tools
        return cls(tools)

    @property
    def tool_types(self) -> tuple[str, ...]:
        return tuple(tool.tool_type for tool in self._tools)

    def get(self, tool_type: str) -> Tool | None:
        return self._by_type.get(tool_type)

    def require(self, tool_type: str, *, item_name: str | None = None) -> Tool:
        """Return the tool for ``tool_type`` or raise :class:`UnknownToolTypeError`."""

        tool = self._by_type.get(tool_type)
        if tool is None:
            raise UnknownToolTypeError.for_type(tool_type, item_name=item_name)
        return tool

    def is_reserved(self, name: str) -> bool:
        """Names may never collide with a catalog tool type."""

        return name in self._by_type

    def __contains__(self, value: object) -> bool:
        if isinstance(value, Tool):
            return self._by_type.get(value.tool_type) == value
        return value in self._by_type

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    @overload
    def __getitem__(self, index: int) -> Tool: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[Tool]: ...

    def __getitem__(self, index):  # type: ignore[override]
        return self._tools[index]

    def __repr__(self) -> str:
        return f"ToolCatalog({list(self.tool_types)!r})"


def tool_from_dict(payload: Mapping[str, Any]) -> Tool:
    """Build a :class:`Tool` from its wire representation."""

    tool_type = str(payload.get("toolType", payload.get("tool_type")))
    require_name = payload.get("requireName", payload.get("require_name", True))
    return Tool(
        tool_type=tool_type,
        title=str(payload.get("title") or tool_type),
        options=dict(payload.get("options") or {}),
        require_name=bool(require_name),
        option_fields=payload.get("optionFields", payload.get("option_fields")),
        container=bool(payload.get("container", False)),
    )
