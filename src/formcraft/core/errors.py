"""Error kinds and exception types raised by the tool-instance tree.

User-correctable failures (a clashing name typed into a dialog) are reported
as values through :class:`ToolErrorKind`; contract violations and fatal load
problems are raised as :class:`ToolTreeError` subclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Sequence

__all__ = [
    "ToolErrorKind",
    "ToolTreeError",
    "DuplicateNameError",
    "ReservedNameError",
    "UnknownToolTypeError",
    "InstanceNotFoundError",
    "InvalidMoveError",
    "PayloadValidationError",
]


class ToolErrorKind(str, Enum):
    """Machine-readable error identifiers shared by results and exceptions."""

    DUPLICATE_NAME = "duplicate_name"
    RESERVED_NAME = "reserved_name"
    UNKNOWN_TOOL_TYPE = "unknown_tool_type"
    NOT_FOUND = "not_found"
    INVALID_NAME = "invalid_name"
    INVALID_MOVE = "invalid_move"
    INVALID_PAYLOAD = "invalid_payload"


# -----------------------------------------------------------------------------
# Base Error Class
# -----------------------------------------------------------------------------

@dataclass
class ToolTreeError(Exception):
    """Base exception for tool-tree failures.

    Attributes:
        kind: Machine-readable error identifier.
        message: Human-readable error description.
        details: Additional structured error information.
    """

    kind: ToolErrorKind
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    severity: ClassVar[str] = "error"

    def __post_init__(self) -> None:
        Exception.__init__(self, self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary suitable for logging or API responses."""
        result: dict[str, Any] = {
            "error": self.kind.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = dict(self.details)
        return result

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"


# -----------------------------------------------------------------------------
# Naming Errors
# -----------------------------------------------------------------------------

@dataclass
class DuplicateNameError(ToolTreeError):
    """Raised when a name is already used somewhere in the tree."""

    kind: ToolErrorKind = field(default=ToolErrorKind.DUPLICATE_NAME)
    message: str = field(default="Name is already in use")
    details: dict[str, Any] = field(default_factory=dict)

    name: str | None = field(default=None)

    @classmethod
    def for_name(cls, name: str) -> "DuplicateNameError":
        return cls(
            message=f"There is already a tool with the name {name}",
            details={"name": name},
            name=name,
        )


@dataclass
class ReservedNameError(ToolTreeError):
    """Raised when a name collides with a catalog tool type."""

    kind: ToolErrorKind = field(default=ToolErrorKind.RESERVED_NAME)
    message: str = field(default="Name is reserved")
    details: dict[str, Any] = field(default_factory=dict)

    name: str | None = field(default=None)

    @classmethod
    def for_name(cls, name: str) -> "ReservedNameError":
        return cls(
            message=f'The name "{name}" is reserved and can not be used',
            details={"name": name},
            name=name,
        )


# -----------------------------------------------------------------------------
# Lookup / Structure Errors
# -----------------------------------------------------------------------------

@dataclass
class UnknownToolTypeError(ToolTreeError):
    """Raised when a flat item references a tool type missing from the catalog."""

    kind: ToolErrorKind = field(default=ToolErrorKind.UNKNOWN_TOOL_TYPE)
    message: str = field(default="Unknown tool type")
    details: dict[str, Any] = field(default_factory=dict)

    tool_type: str | None = field(default=None)

    @classmethod
    def for_type(cls, tool_type: str, *, item_name: str | None = None) -> "UnknownToolTypeError":
        details: dict[str, Any] = {"tool_type": tool_type}
        if item_name is not None:
            details["name"] = item_name
        return cls(
            message=f"Could not find tool for type {tool_type}",
            details=details,
            tool_type=tool_type,
        )


@dataclass
class InstanceNotFoundError(ToolTreeError, LookupError):
    """Raised when an operation addresses a name that is not in the tree.

    Callers only ever address names obtained from the current tree, so this
    signals that caller and engine state have drifted apart.
    """

    kind: ToolErrorKind = field(default=ToolErrorKind.NOT_FOUND)
    message: str = field(default="Tool instance not found")
    details: dict[str, Any] = field(default_factory=dict)

    name: str | None = field(default=None)

    @classmethod
    def for_name(cls, name: str) -> "InstanceNotFoundError":
        return cls(
            message=f"No tool instance named {name!r}",
            details={"name": name},
            name=name,
        )


@dataclass
class InvalidMoveError(ToolTreeError):
    """Raised when a move would place an instance inside its own subtree."""

    kind: ToolErrorKind = field(default=ToolErrorKind.INVALID_MOVE)
    message: str = field(default="Invalid move")
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class PayloadValidationError(ToolTreeError):
    """Raised when a flat form or catalog payload cannot be loaded."""

    kind: ToolErrorKind = field(default=ToolErrorKind.INVALID_PAYLOAD)
    message: str = field(default="Invalid payload")
    details: dict[str, Any] = field(default_factory=dict)

    errors: list[str] = field(default_factory=list)

    @classmethod
    def from_messages(cls, messages: Sequence[str], *, subject: str = "payload") -> "PayloadValidationError":
        collected = [str(message) for message in messages]
        summary = collected[0] if collected else "unknown error"
        if len(collected) > 1:
            summary = f"{summary} (and {len(collected) - 1} more)"
        return cls(
            message=f"Invalid {subject}: {summary}",
            details={"errors": list(collected)},
            errors=collected,
        )
