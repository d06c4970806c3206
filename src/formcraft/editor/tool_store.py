"""Tool store: the single source of truth for placed tool instances.

Every structural mutation deep-copies the current tree, edits the copy,
and only then swaps it in. Snapshots handed out earlier through
:attr:`ToolStore.tool_instances` therefore never change underneath their
holders.
"""

from __future__ import annotations

import logging
from copy import deepcopy
from dataclasses import fields
from typing import Any, Callable, Iterable, List, Mapping, Protocol

from ..core.catalog import ToolCatalog
from ..core.convert import build, flatten
from ..core.errors import (
    DuplicateNameError,
    InstanceNotFoundError,
    InvalidMoveError,
    ReservedNameError,
    ToolErrorKind,
    ToolTreeError,
    UnknownToolTypeError,
)
from ..core.models import AddResult, Item, PendingToolRequest, Tool, ToolInstance
from ..core.naming import check_name, describe_name_error, generate_tool_name, label_for_field_name
from ..core.tree import (
    clamp_index,
    index_by_name,
    is_descendant,
    iter_instances,
    position_in,
    sibling_list,
    subtree_names,
)
from ..services.settings import EditorSettings
from .events import (
    Event,
    EventBus,
    SelectionChanged,
    ToolInstanceAdded,
    ToolInstanceMoved,
    ToolInstanceRemoved,
    ToolInstanceUpdated,
    ToolNameRequested,
    ToolTreeReset,
)
from .selection import SelectionTracker

__all__ = ["ToolStore", "ToolStoreListener"]

LOGGER = logging.getLogger(__name__)

_INSTANCE_FIELDS = frozenset(field.name for field in fields(ToolInstance))


class ToolStoreListener(Protocol):
    """Callback fired after every tree substitution."""

    def __call__(self, store: "ToolStore") -> None:  # pragma: no cover - protocol
        ...


class ToolStore:
    """Owns the ordered tree of :class:`ToolInstance` nodes.

    Names are unique across the whole tree and never equal a catalog tool
    type; they address instances for selection and parent references.

    Events Emitted (when an event bus is supplied):
        - ToolTreeReset: after :meth:`load`
        - ToolInstanceAdded / ToolInstanceRemoved / ToolInstanceMoved /
          ToolInstanceUpdated: after the matching mutation
        - SelectionChanged: whenever the selected name changes
        - ToolNameRequested: when a tool waits for a user-chosen name
    """

    def __init__(
        self,
        tools: ToolCatalog | Iterable[Tool],
        items: Iterable[Item | Mapping[str, Any]] = (),
        *,
        event_bus: EventBus | None = None,
        settings: EditorSettings | None = None,
        name_factory: Callable[[], str] = generate_tool_name,
    ) -> None:
        self._catalog = ToolCatalog.coerce(tools)
        self._bus = event_bus
        self._settings = settings or EditorSettings()
        self._name_factory = name_factory
        self._instances: List[ToolInstance] = []
        self._index: dict[str, ToolInstance] = {}
        self._selection = SelectionTracker()
        self._listeners: list[ToolStoreListener] = []
        self._version = 0
        self.load(items)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------
    @property
    def tools(self) -> ToolCatalog:
        return self._catalog

    @property
    def tool_instances(self) -> tuple[ToolInstance, ...]:
        """Top-level instances of the current tree (read-only snapshot)."""

        return tuple(self._instances)

    @property
    def version(self) -> int:
        """Incremented on every tree substitution."""

        return self._version

    @property
    def selected_name(self) -> str | None:
        return self._selection.selected_name

    @property
    def selected_instance(self) -> ToolInstance | None:
        """Resolve the selected name against the current tree."""

        return self._selection.resolve(self._index)

    def find_instance(self, name: str) -> ToolInstance | None:
        return self._index.get(name)

    def get_instance(self, name: str) -> ToolInstance:
        return self._require(name)

    def iter_instances(self):
        return iter_instances(self._instances)

    def names(self) -> frozenset[str]:
        return frozenset(self._index)

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __len__(self) -> int:
        return len(self._index)

    def to_items(self, *, full_options: bool | None = None) -> List[Item]:
        """Flatten the current tree for saving."""

        if full_options is None:
            full_options = self._settings.emit_full_options
        return flatten(self._instances, full_options=full_options)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------
    def add_listener(self, listener: ToolStoreListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ToolStoreListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def load(self, items: Iterable[Item | Mapping[str, Any]]) -> None:
        """Replace the whole tree with one built from ``items``.

        Raises:
            UnknownToolTypeError: An item references a tool type missing
                from the catalog. The current tree is kept.
        """

        tree = build(items, self._catalog)
        previous = self._selection.clear()
        self._commit(tree)
        LOGGER.debug("ToolStore.load: %d instance(s)", len(self._index))
        self._publish(ToolTreeReset(instance_count=len(self._index)))
        if previous is not None:
            self._publish(SelectionChanged(name=None, previous=previous))

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------
    def create_instance(
        self,
        tool: Tool | str,
        index: int | None = None,
        parent: str | None = None,
    ) -> ToolInstance | PendingToolRequest:
        """Place ``tool`` or ask the caller for a name first.

        Tools with ``require_name=False`` receive a generated name and are
        inserted immediately; the new instance is returned. Otherwise a
        :class:`PendingToolRequest` is returned (and published as
        :class:`ToolNameRequested`) for the caller to resolve through
        :meth:`add_instance` or to discard.
        """

        if isinstance(tool, str):
            tool = self._catalog.require(tool)
        if parent is not None:
            self._require(parent)

        if not tool.require_name:
            name = self._name_factory()
            result = self.add_instance(ToolInstance.from_tool(tool, name), index, parent)
            if not result.ok:
                LOGGER.error("Generated name %r was rejected: %s", name, result.message)
                raise _error_for(result.error, name)
            assert result.instance is not None
            return result.instance

        request = PendingToolRequest(tool=tool, index=index, parent=parent)
        LOGGER.debug(
            "ToolStore.create_instance: awaiting name for tool_type=%s, index=%s, parent=%s",
            tool.tool_type,
            index,
            parent,
        )
        self._publish(ToolNameRequested(request=request))
        return request

    def add_instance(
        self,
        candidate: ToolInstance,
        index: int | None = None,
        parent: str | None = None,
    ) -> AddResult:
        """Validate and insert ``candidate``.

        Name clashes are returned as a failed :class:`AddResult` and leave
        the tree untouched. ``index`` is clamped to the target sibling list;
        ``None`` appends. The inserted instance becomes the selection.

        Raises:
            InstanceNotFoundError: ``parent`` is not in the tree.
            UnknownToolTypeError: ``candidate.tool_type`` is not in the catalog.
        """

        name = candidate.name
        self._require_tool(candidate.tool_type, name)
        kind = check_name(name, existing=self._index, catalog=self._catalog)
        if kind is not None:
            message = describe_name_error(kind, name)
            LOGGER.info("ToolStore.add_instance rejected name=%r: %s", name, kind.value)
            return AddResult(ok=False, error=kind, message=message)
        if parent is not None:
            self._require(parent)

        node = deepcopy(candidate)
        node.children = []
        node.parent = parent
        if self._settings.auto_label and node.options.get("label"):
            node.options["label"] = label_for_field_name(name)

        tree = self._copy_tree()
        siblings = tree if parent is None else index_by_name(tree)[parent].children
        position = clamp_index(index, len(siblings))
        siblings.insert(position, node)
        previous = self._selection.select(name)
        self._commit(tree)

        LOGGER.debug(
            "ToolStore.add_instance: name=%s, tool_type=%s, parent=%s, index=%d",
            name,
            node.tool_type,
            parent,
            position,
        )
        self._publish(ToolInstanceAdded(name=name, tool_type=node.tool_type, parent=parent, index=position))
        if previous != name:
            self._publish(SelectionChanged(name=name, previous=previous))
        return AddResult(ok=True, instance=self._index[name])

    # ------------------------------------------------------------------
    # Structural edits
    # ------------------------------------------------------------------
    def remove_instance(self, name: str) -> ToolInstance:
        """Detach ``name`` and its subtree; return the detached node.

        Clears the selection when it pointed into the removed subtree.
        """

        self._require(name)
        tree = self._copy_tree()
        index = index_by_name(tree)
        target = index[name]
        siblings = sibling_list(target, tree, index)
        siblings.pop(position_in(siblings, name))
        removed = subtree_names(target)
        previous = self._selection.selected_name
        cleared = self._selection.discard(removed)
        self._commit(tree)

        LOGGER.debug("ToolStore.remove_instance: name=%s, removed=%d", name, len(removed))
        self._publish(ToolInstanceRemoved(name=name, parent=target.parent, removed_names=tuple(sorted(removed))))
        if cleared:
            self._publish(SelectionChanged(name=None, previous=previous))
        return target

    def move_instance(self, name: str, new_index: int) -> int:
        """Reorder ``name`` within its current sibling list; return the final index."""

        self._require(name)
        tree = self._copy_tree()
        index = index_by_name(tree)
        target = index[name]
        siblings = sibling_list(target, tree, index)
        old_position = position_in(siblings, name)
        siblings.pop(old_position)
        new_position = clamp_index(new_index, len(siblings))
        siblings.insert(new_position, target)
        if new_position == old_position:
            return new_position
        self._commit(tree)

        LOGGER.debug("ToolStore.move_instance: name=%s, %d -> %d", name, old_position, new_position)
        self._publish(
            ToolInstanceMoved(
                name=name,
                old_parent=target.parent,
                new_parent=target.parent,
                old_index=old_position,
                new_index=new_position,
            )
        )
        return new_position

    def transfer_instance(self, name: str, parent: str | None = None, index: int | None = None) -> int:
        """Move ``name`` into another container (or the top level).

        Raises:
            InvalidMoveError: ``parent`` is ``name`` itself or lies inside
                its subtree.
        """

        current = self._require(name)
        if parent is not None:
            self._require(parent)
            if is_descendant(parent, current):
                error = InvalidMoveError(
                    message=f"Cannot move {name!r} into its own subtree ({parent!r})",
                    details={"name": name, "parent": parent},
                )
                LOGGER.error("ToolStore.transfer_instance: %s", error)
                raise error

        tree = self._copy_tree()
        tree_index = index_by_name(tree)
        target = tree_index[name]
        old_parent = target.parent
        siblings = sibling_list(target, tree, tree_index)
        old_position = position_in(siblings, name)
        siblings.pop(old_position)

        destination = tree if parent is None else tree_index[parent].children
        new_position = clamp_index(index, len(destination))
        target.parent = parent
        destination.insert(new_position, target)
        self._commit(tree)

        LOGGER.debug(
            "ToolStore.transfer_instance: name=%s, %s[%d] -> %s[%d]",
            name,
            old_parent,
            old_position,
            parent,
            new_position,
        )
        self._publish(
            ToolInstanceMoved(
                name=name,
                old_parent=old_parent,
                new_parent=parent,
                old_index=old_position,
                new_index=new_position,
            )
        )
        return new_position

    def update_instance(self, updated: ToolInstance | Mapping[str, Any]) -> ToolInstance:
        """Shallow-merge fields onto the instance named by ``updated``.

        A mapping only touches the keys it contains; a full
        :class:`ToolInstance` overwrites every field, children included.
        Supplied children are re-parented to this instance.
        """

        if isinstance(updated, ToolInstance):
            changes = {key: getattr(updated, key) for key in _INSTANCE_FIELDS}
        else:
            changes = dict(updated)
        if "name" not in changes:
            raise ValueError("update_instance requires a 'name'")
        unknown = sorted(set(changes) - _INSTANCE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown tool instance field(s): {', '.join(unknown)}")

        name = changes.pop("name")
        current = self._require(name)
        if "parent" in changes and changes["parent"] != current.parent:
            error = InvalidMoveError(
                message=f"Changing the parent of {name!r} requires transfer_instance",
                details={"name": name, "parent": changes["parent"]},
            )
            LOGGER.error("ToolStore.update_instance: %s", error)
            raise error
        if "tool_type" in changes:
            self._require_tool(changes["tool_type"], name)

        tree = self._copy_tree()
        target = index_by_name(tree)[name]
        if "children" in changes:
            children = [deepcopy(child) for child in changes.pop("children")]
            self._check_replacement_children(current, children)
            _reparent(name, children)
            target.children = children
            changed = ["children"]
        else:
            changed = []
        for key, value in changes.items():
            setattr(target, key, deepcopy(value))
            changed.append(key)
        self._commit(tree)

        LOGGER.debug("ToolStore.update_instance: name=%s, fields=%s", name, sorted(changed))
        self._publish(ToolInstanceUpdated(name=name, fields=tuple(sorted(changed))))
        return self._index[name]

    def update_options(self, name: str, **values: Any) -> ToolInstance:
        """Set individual option values on ``name``."""

        options = dict(self._require(name).options)
        options.update(values)
        return self.update_instance({"name": name, "options": options})

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    def select_instance(self, name: str) -> ToolInstance:
        instance = self._require(name)
        self._set_selection(name)
        return instance

    def clear_selection(self) -> None:
        self._set_selection(None)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _copy_tree(self) -> List[ToolInstance]:
        return deepcopy(self._instances)

    def _commit(self, tree: List[ToolInstance]) -> None:
        self._index = index_by_name(tree)
        self._instances = tree
        self._version += 1
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                LOGGER.exception("ToolStore listener %r failed", listener)

    def _require(self, name: str) -> ToolInstance:
        instance = self._index.get(name)
        if instance is None:
            error = InstanceNotFoundError.for_name(name)
            LOGGER.error("ToolStore lookup failed: %s", error)
            raise error
        return instance

    def _require_tool(self, tool_type: str, name: str) -> Tool:
        try:
            return self._catalog.require(tool_type, item_name=name)
        except UnknownToolTypeError as error:
            LOGGER.error("ToolStore rejected instance %r: %s", name, error)
            raise

    def _set_selection(self, name: str | None) -> None:
        previous = self._selection.select(name)
        if previous != name:
            self._publish(SelectionChanged(name=name, previous=previous))

    def _check_replacement_children(self, current: ToolInstance, children: List[ToolInstance]) -> None:
        # Names inside the old subtree are free to reappear; everything else is taken.
        taken = (set(self._index) - subtree_names(current)) | {current.name}
        seen: set[str] = set()
        for node in iter_instances(children):
            if node.name == current.name:
                raise InvalidMoveError(
                    message=f"{current.name!r} cannot contain itself",
                    details={"name": current.name},
                )
            if node.name in taken or node.name in seen:
                raise DuplicateNameError.for_name(node.name)
            if self._catalog.is_reserved(node.name):
                raise ReservedNameError.for_name(node.name)
            self._require_tool(node.tool_type, node.name)
            seen.add(node.name)

    def _publish(self, event: Event) -> None:
        if self._bus is not None:
            self._bus.publish(event)


def _error_for(kind: ToolErrorKind | None, name: str) -> ToolTreeError:
    if kind is ToolErrorKind.DUPLICATE_NAME:
        return DuplicateNameError.for_name(name)
    if kind is ToolErrorKind.RESERVED_NAME:
        return ReservedNameError.for_name(name)
    return ToolTreeError(kind=kind or ToolErrorKind.INVALID_NAME, message=f"Invalid generated name {name!r}")


def _reparent(container: str, children: List[ToolInstance]) -> None:
    # Each node's parent must name the instance whose children list holds it.
    for child in children:
        child.parent = container
    for node in iter_instances(children):
        for child in node.children:
            child.parent = node.name
