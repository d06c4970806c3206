"""Framework-independent tool-instance tree: models, catalog, conversion."""

from .catalog import ToolCatalog, tool_from_dict
from .convert import build, flatten
from .errors import (
    DuplicateNameError,
    InstanceNotFoundError,
    InvalidMoveError,
    PayloadValidationError,
    ReservedNameError,
    ToolErrorKind,
    ToolTreeError,
    UnknownToolTypeError,
)
from .models import AddResult, Item, PendingToolRequest, Tool, ToolInstance

__all__ = [
    "AddResult",
    "DuplicateNameError",
    "InstanceNotFoundError",
    "InvalidMoveError",
    "Item",
    "PayloadValidationError",
    "PendingToolRequest",
    "ReservedNameError",
    "Tool",
    "ToolCatalog",
    "ToolErrorKind",
    "ToolInstance",
    "ToolTreeError",
    "UnknownToolTypeError",
    "build",
    "flatten",
    "tool_from_dict",
]
