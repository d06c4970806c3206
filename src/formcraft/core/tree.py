"""Traversal and lookup helpers over a list of top-level tool instances."""

from __future__ import annotations

from typing import Iterable, Iterator, List, Mapping, Sequence

from .errors import InstanceNotFoundError
from .models import ToolInstance

__all__ = [
    "iter_instances",
    "index_by_name",
    "find_instance",
    "get_instance",
    "sibling_list",
    "clamp_index",
    "subtree_names",
    "is_descendant",
    "position_in",
]


def iter_instances(instances: Iterable[ToolInstance]) -> Iterator[ToolInstance]:
    """Yield every instance in pre-order (parents before their children)."""

    stack: list[ToolInstance] = list(reversed(list(instances)))
    while stack:
        instance = stack.pop()
        yield instance
        stack.extend(reversed(instance.children))


def index_by_name(instances: Iterable[ToolInstance]) -> dict[str, ToolInstance]:
    return {instance.name: instance for instance in iter_instances(instances)}


def find_instance(name: str, instances: Iterable[ToolInstance]) -> ToolInstance | None:
    for instance in iter_instances(instances):
        if instance.name == name:
            return instance
    return None


def get_instance(name: str, instances: Iterable[ToolInstance]) -> ToolInstance:
    instance = find_instance(name, instances)
    if instance is None:
        raise InstanceNotFoundError.for_name(name)
    return instance


def sibling_list(
    instance: ToolInstance,
    top_level: List[ToolInstance],
    index: Mapping[str, ToolInstance],
) -> List[ToolInstance]:
    """Return the list that holds ``instance``: its parent's children or the top level."""

    if instance.parent is None:
        return top_level
    parent = index.get(instance.parent)
    if parent is None:
        raise InstanceNotFoundError.for_name(instance.parent)
    return parent.children


def clamp_index(index: int | None, length: int) -> int:
    """Clamp an insertion index to ``[0, length]``; ``None`` means append."""

    if index is None:
        return length
    return max(0, min(int(index), length))


def subtree_names(instance: ToolInstance) -> set[str]:
    return {node.name for node in iter_instances([instance])}


def is_descendant(name: str, ancestor: ToolInstance) -> bool:
    """Return True when ``name`` is ``ancestor`` itself or sits below it."""

    return name in subtree_names(ancestor)


def position_in(siblings: Sequence[ToolInstance], name: str) -> int:
    for position, sibling in enumerate(siblings):
        if sibling.name == name:
            return position
    raise InstanceNotFoundError.for_name(name)
