"""Conversion between the nested instance tree and the flat item list.

The flat list is ordered and parent-referencing: containment is rebuilt from
``parent`` names plus the relative order of items in the list.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from .catalog import ToolCatalog
from .errors import DuplicateNameError, PayloadValidationError, ReservedNameError
from .models import Item, Tool, ToolInstance
from .tree import iter_instances

__all__ = ["flatten", "build", "flatten_to_dicts", "build_from_dicts"]

LOGGER = logging.getLogger(__name__)


def flatten(instances: Iterable[ToolInstance], *, full_options: bool = False) -> List[Item]:
    """Emit one :class:`Item` per instance in pre-order.

    Each child follows its container and carries the container's name as
    ``parent``. Options are stored as overrides against the tool defaults
    unless ``full_options`` is set.
    """

    items: List[Item] = []

    def _emit(nodes: Iterable[ToolInstance], parent: str | None) -> None:
        for node in nodes:
            options = dict(node.options) if full_options else node.option_overrides()
            items.append(
                Item(
                    tool_type=node.tool_type,
                    name=node.name,
                    options=options,
                    parent=parent,
                )
            )
            _emit(node.children, node.name)

    _emit(instances, None)
    return items


def build(
    items: Iterable[Item | Mapping[str, Any]],
    catalog: ToolCatalog | Iterable[Tool],
) -> List[ToolInstance]:
    """Rebuild the instance tree from a flat item list.

    Loading is all-or-nothing: unknown tool types, clashing names, dangling
    parent references and parent cycles abort the build.
    """

    catalog = ToolCatalog.coerce(catalog)
    records = [item if isinstance(item, Item) else Item.from_dict(item) for item in items]

    tools: Dict[str, Tool] = {}
    by_parent: Dict[str | None, List[Item]] = defaultdict(list)
    for record in records:
        tool = catalog.require(record.tool_type, item_name=record.name)
        if record.name in tools:
            raise DuplicateNameError.for_name(record.name)
        if catalog.is_reserved(record.name):
            raise ReservedNameError.for_name(record.name)
        tools[record.name] = tool
        by_parent[record.parent].append(record)

    dangling = sorted(
        {record.parent for record in records if record.parent is not None and record.parent not in tools}
    )
    if dangling:
        raise PayloadValidationError.from_messages(
            [f"Item parent {parent!r} does not match any item name" for parent in dangling],
            subject="form items",
        )

    def _attach(parent: str | None) -> List[ToolInstance]:
        nodes: List[ToolInstance] = []
        for record in by_parent.get(parent, ()):
            node = ToolInstance.from_tool(tools[record.name], record.name, record.options, parent=parent)
            node.children = _attach(record.name)
            nodes.append(node)
        return nodes

    tree = _attach(None)
    reached = {node.name for node in iter_instances(tree)}
    if len(reached) != len(records):
        # Items on a parent cycle never hang off a top-level item.
        orphaned = sorted(set(tools) - reached)
        raise PayloadValidationError.from_messages(
            [f"Item {name!r} is not reachable from a top-level item" for name in orphaned],
            subject="form items",
        )

    LOGGER.debug("Built tool tree: %d item(s), %d top-level", len(records), len(tree))
    return tree


def flatten_to_dicts(instances: Iterable[ToolInstance], *, full_options: bool = False) -> List[Dict[str, Any]]:
    """Flatten straight to wire dictionaries."""

    return [item.to_dict() for item in flatten(instances, full_options=full_options)]


def build_from_dicts(
    payload: Sequence[Mapping[str, Any]],
    catalog: ToolCatalog | Iterable[Tool],
) -> List[ToolInstance]:
    return build(payload, catalog)
