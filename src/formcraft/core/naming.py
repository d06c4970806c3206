"""Name generation and validation for tool instances."""

from __future__ import annotations

import re
import uuid
from typing import Container

from .catalog import ToolCatalog
from .errors import ToolErrorKind

__all__ = [
    "generate_tool_name",
    "label_for_field_name",
    "check_name",
    "describe_name_error",
]

_WORD_BOUNDARY_RE = re.compile(r"[_\-\s.]+")
_CAMEL_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def generate_tool_name() -> str:
    """Return a random identifier for tools that do not ask for a name.

    Uniqueness against the tree is not re-checked here; ``add_instance``
    validation still applies.
    """

    return str(uuid.uuid4())


def label_for_field_name(name: str) -> str:
    """Turn a field name such as ``first_name`` or ``firstName`` into ``First Name``."""

    spaced = _CAMEL_RE.sub(" ", name or "")
    words = [word for word in _WORD_BOUNDARY_RE.split(spaced) if word]
    return " ".join(word[:1].upper() + word[1:] for word in words)


def check_name(
    name: str,
    *,
    existing: Container[str],
    catalog: ToolCatalog,
) -> ToolErrorKind | None:
    """Return the reason ``name`` cannot be used, or ``None`` when it is free."""

    if not isinstance(name, str) or not name.strip():
        return ToolErrorKind.INVALID_NAME
    if name in existing:
        return ToolErrorKind.DUPLICATE_NAME
    if catalog.is_reserved(name):
        return ToolErrorKind.RESERVED_NAME
    return None


def describe_name_error(kind: ToolErrorKind, name: str) -> str:
    """User-facing message for a rejected name."""

    if kind is ToolErrorKind.DUPLICATE_NAME:
        return f"There is already a tool with the name {name}"
    if kind is ToolErrorKind.RESERVED_NAME:
        return f'The name "{name}" is reserved and can not be used'
    if kind is ToolErrorKind.INVALID_NAME:
        return "A name is required"
    return f"The name {name!r} can not be used"
