"""Form-builder engine: an ordered, nameable tree of placed form tools."""

from .core import Item, Tool, ToolCatalog, ToolInstance, build, flatten
from .editor.session import FormEditorSession
from .editor.tool_store import ToolStore

__all__ = [
    "FormEditorSession",
    "Item",
    "Tool",
    "ToolCatalog",
    "ToolInstance",
    "ToolStore",
    "build",
    "flatten",
]

__version__ = "0.1.0"
