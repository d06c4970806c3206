"""Editing layer: the tool store and the collaborators that drive it."""

from .drop import DropEvent, DropHandler, DropKind, DropOutcome
from .events import EventBus
from .name_prompt import NamePrompt
from .selection import SelectionTracker
from .session import FormEditorSession
from .tool_store import ToolStore

__all__ = [
    "DropEvent",
    "DropHandler",
    "DropKind",
    "DropOutcome",
    "EventBus",
    "FormEditorSession",
    "NamePrompt",
    "SelectionTracker",
    "ToolStore",
]
