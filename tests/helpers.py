"""Shared test data and small assertion helpers."""

from __future__ import annotations

from formcraft.core.catalog import ToolCatalog
from formcraft.core.models import Tool
from formcraft.editor.tool_store import ToolStore

SAMPLE_ITEMS = [
    {"toolType": "header", "name": "header_1", "options": {"content": "Form Title"}},
    {
        "toolType": "paragraph",
        "name": "paragraph_1",
        "options": {"content": "This is the contents of the first paragraph"},
    },
    {"toolType": "file", "name": "yes", "options": {"label": "Yes"}},
    {"toolType": "text", "name": "caption", "options": {"label": "Caption"}, "parent": "yes"},
]


def make_catalog() -> ToolCatalog:
    return ToolCatalog(
        [
            Tool("header", "Header", {"content": "Header"}, require_name=False),
            Tool("paragraph", "Paragraph", {"content": "Paragraph"}, require_name=False),
            Tool("text", "Text", {"label": "Text", "required": False}),
            Tool("number", "Number", {"label": "Number", "min": 0, "max": None}),
            Tool("file", "File Upload", {"label": "File"}, container=True),
            Tool("field_container", "Field Container", {"columns": 1}, require_name=False, container=True),
        ]
    )


def top_names(store: ToolStore) -> list[str]:
    return [instance.name for instance in store.tool_instances]


def child_names(store: ToolStore, name: str) -> list[str]:
    return [child.name for child in store.get_instance(name).children]
