"""Tests for the ToolStore tree mutation engine."""

from __future__ import annotations

import random
from dataclasses import replace

import pytest

from formcraft.core.catalog import ToolCatalog
from formcraft.core.convert import build, flatten
from formcraft.core.errors import (
    DuplicateNameError,
    InstanceNotFoundError,
    InvalidMoveError,
    ToolErrorKind,
    UnknownToolTypeError,
)
from formcraft.core.models import PendingToolRequest, ToolInstance
from formcraft.core.tree import iter_instances
from formcraft.editor.events import (
    EventBus,
    SelectionChanged,
    ToolInstanceAdded,
    ToolInstanceMoved,
    ToolInstanceRemoved,
    ToolNameRequested,
)
from formcraft.editor.tool_store import ToolStore
from formcraft.services.settings import EditorSettings

from helpers import child_names, top_names


# =============================================================================
# Loading & read access
# =============================================================================


def test_initial_items_build_nested_tree(store: ToolStore) -> None:
    assert top_names(store) == ["header_1", "paragraph_1", "yes"]
    assert child_names(store, "yes") == ["caption"]
    assert store.get_instance("caption").parent == "yes"
    assert len(store) == 4
    assert store.selected_instance is None


def test_load_with_unknown_tool_type_keeps_current_tree(store: ToolStore) -> None:
    version = store.version

    with pytest.raises(UnknownToolTypeError):
        store.load([{"toolType": "video", "name": "clip"}])

    assert top_names(store) == ["header_1", "paragraph_1", "yes"]
    assert store.version == version


def test_load_clears_selection(store: ToolStore) -> None:
    store.select_instance("caption")

    store.load([{"toolType": "text", "name": "caption"}])

    assert store.selected_name is None


# =============================================================================
# create_instance / add_instance
# =============================================================================


def test_create_unnamed_tool_appends_with_generated_name(catalog: ToolCatalog, name_factory) -> None:
    store = ToolStore(catalog, name_factory=name_factory)

    created = store.create_instance(catalog.require("header"))

    assert isinstance(created, ToolInstance)
    assert created.name == "auto-1"
    assert top_names(store) == ["auto-1"]
    assert created.children == []
    assert created.parent is None
    assert store.selected_name == "auto-1"


def test_create_unnamed_tool_uses_real_uuid_by_default(catalog: ToolCatalog) -> None:
    store = ToolStore(catalog)

    first = store.create_instance("header")
    second = store.create_instance("header")

    assert isinstance(first, ToolInstance) and isinstance(second, ToolInstance)
    assert first.name != second.name
    assert top_names(store) == [first.name, second.name]


def test_create_named_tool_returns_pending_request(store: ToolStore, catalog: ToolCatalog) -> None:
    version = store.version

    request = store.create_instance(catalog.require("text"), 1)

    assert isinstance(request, PendingToolRequest)
    assert request.tool.tool_type == "text"
    assert request.index == 1
    assert request.parent is None
    assert store.version == version
    assert len(store) == 4


def test_create_instance_with_unknown_parent_raises(store: ToolStore) -> None:
    with pytest.raises(InstanceNotFoundError):
        store.create_instance("header", parent="missing")


def test_add_instance_inserts_at_index_and_selects(store: ToolStore, catalog: ToolCatalog) -> None:
    result = store.add_instance(ToolInstance.from_tool(catalog.require("text"), "email"), 1)

    assert result.ok
    assert result.instance is not None and result.instance.name == "email"
    assert top_names(store) == ["header_1", "email", "paragraph_1", "yes"]
    assert store.selected_name == "email"
    assert store.selected_instance is store.get_instance("email")


def test_add_instance_index_zero_inserts_first(store: ToolStore, catalog: ToolCatalog) -> None:
    store.add_instance(ToolInstance.from_tool(catalog.require("text"), "first"), 0)

    assert top_names(store)[0] == "first"


@pytest.mark.parametrize(
    ("index", "expected_position"),
    [(None, 3), (99, 3), (-5, 0), (2, 2)],
)
def test_add_instance_clamps_index(
    store: ToolStore, catalog: ToolCatalog, index: int | None, expected_position: int
) -> None:
    store.add_instance(ToolInstance.from_tool(catalog.require("text"), "extra"), index)

    assert top_names(store).index("extra") == expected_position


def test_add_instance_into_parent(store: ToolStore, catalog: ToolCatalog) -> None:
    result = store.add_instance(ToolInstance.from_tool(catalog.require("text"), "notes"), 0, "yes")

    assert result.ok
    assert child_names(store, "yes") == ["notes", "caption"]
    assert store.get_instance("notes").parent == "yes"
    assert top_names(store) == ["header_1", "paragraph_1", "yes"]


def test_add_instance_drops_candidate_children(store: ToolStore, catalog: ToolCatalog) -> None:
    candidate = ToolInstance.from_tool(catalog.require("file"), "uploads")
    candidate.children.append(ToolInstance.from_tool(catalog.require("text"), "stray"))

    store.add_instance(candidate)

    assert store.get_instance("uploads").children == []
    assert "stray" not in store


def test_add_instance_duplicate_anywhere_in_tree_is_rejected(store: ToolStore, catalog: ToolCatalog) -> None:
    version = store.version
    before = flatten(store.tool_instances)

    result = store.add_instance(ToolInstance.from_tool(catalog.require("text"), "caption"))

    assert not result
    assert result.error is ToolErrorKind.DUPLICATE_NAME
    assert result.message == "There is already a tool with the name caption"
    assert store.version == version
    assert flatten(store.tool_instances) == before


def test_add_instance_with_tool_type_name_is_reserved(store: ToolStore, catalog: ToolCatalog) -> None:
    version = store.version

    result = store.add_instance(ToolInstance(tool_type="text", name="file"))

    assert result.error is ToolErrorKind.RESERVED_NAME
    assert result.message == 'The name "file" is reserved and can not be used'
    assert store.version == version
    assert "file" not in store


def test_add_instance_with_blank_name_is_rejected(store: ToolStore, catalog: ToolCatalog) -> None:
    result = store.add_instance(ToolInstance.from_tool(catalog.require("text"), "   "))

    assert result.error is ToolErrorKind.INVALID_NAME
    assert len(store) == 4


def test_add_instance_with_unknown_parent_raises(store: ToolStore, catalog: ToolCatalog) -> None:
    with pytest.raises(InstanceNotFoundError):
        store.add_instance(ToolInstance.from_tool(catalog.require("text"), "orphan"), parent="missing")

    assert "orphan" not in store


def test_add_instance_with_unknown_tool_type_raises(store: ToolStore) -> None:
    version = store.version

    with pytest.raises(UnknownToolTypeError) as excinfo:
        store.add_instance(ToolInstance(tool_type="video", name="clip"))

    assert excinfo.value.details == {"tool_type": "video", "name": "clip"}
    assert "clip" not in store
    assert store.version == version


def test_add_instance_relabels_from_name(store: ToolStore, catalog: ToolCatalog) -> None:
    store.add_instance(ToolInstance.from_tool(catalog.require("text"), "first_name"))

    assert store.get_instance("first_name").options["label"] == "First Name"


def test_add_instance_keeps_label_when_auto_label_disabled(catalog: ToolCatalog) -> None:
    store = ToolStore(catalog, settings=EditorSettings(auto_label=False))

    store.add_instance(ToolInstance.from_tool(catalog.require("text"), "first_name"))

    assert store.get_instance("first_name").options["label"] == "Text"


# =============================================================================
# remove_instance
# =============================================================================


def test_remove_selected_instance_clears_selection(store: ToolStore) -> None:
    store.select_instance("paragraph_1")

    removed = store.remove_instance("paragraph_1")

    assert removed.name == "paragraph_1"
    assert store.selected_name is None
    assert store.selected_instance is None
    assert top_names(store) == ["header_1", "yes"]


def test_remove_other_instance_keeps_selection(store: ToolStore) -> None:
    store.select_instance("header_1")

    store.remove_instance("paragraph_1")

    assert store.selected_name == "header_1"


def test_remove_container_drops_subtree_and_selected_child(store: ToolStore) -> None:
    store.select_instance("caption")

    store.remove_instance("yes")

    assert "caption" not in store
    assert store.selected_name is None
    assert top_names(store) == ["header_1", "paragraph_1"]


def test_remove_child_detaches_from_parent(store: ToolStore) -> None:
    store.remove_instance("caption")

    assert child_names(store, "yes") == []


def test_remove_unknown_instance_raises(store: ToolStore) -> None:
    with pytest.raises(InstanceNotFoundError) as excinfo:
        store.remove_instance("missing")

    assert excinfo.value.kind is ToolErrorKind.NOT_FOUND
    assert isinstance(excinfo.value, LookupError)


# =============================================================================
# move_instance / transfer_instance
# =============================================================================


def test_move_and_move_back_restores_order(store: ToolStore) -> None:
    original = top_names(store)

    store.move_instance("header_1", 2)
    assert top_names(store) == ["paragraph_1", "yes", "header_1"]

    store.move_instance("header_1", 0)
    assert top_names(store) == original


def test_move_clamps_index(store: ToolStore) -> None:
    assert store.move_instance("header_1", 50) == 2
    assert top_names(store) == ["paragraph_1", "yes", "header_1"]

    assert store.move_instance("header_1", -3) == 0
    assert top_names(store) == ["header_1", "paragraph_1", "yes"]


def test_move_to_same_position_is_noop(store: ToolStore) -> None:
    version = store.version

    store.move_instance("paragraph_1", 1)

    assert store.version == version


def test_move_within_container(store: ToolStore, catalog: ToolCatalog) -> None:
    store.add_instance(ToolInstance.from_tool(catalog.require("text"), "notes"), parent="yes")

    store.move_instance("notes", 0)

    assert child_names(store, "yes") == ["notes", "caption"]
    assert top_names(store) == ["header_1", "paragraph_1", "yes"]


def test_move_unknown_instance_raises(store: ToolStore) -> None:
    with pytest.raises(InstanceNotFoundError):
        store.move_instance("missing", 0)


def test_transfer_into_container(store: ToolStore) -> None:
    store.transfer_instance("paragraph_1", "yes", 0)

    assert child_names(store, "yes") == ["paragraph_1", "caption"]
    assert store.get_instance("paragraph_1").parent == "yes"
    assert top_names(store) == ["header_1", "yes"]


def test_transfer_to_top_level(store: ToolStore) -> None:
    store.transfer_instance("caption", None, 0)

    assert top_names(store) == ["caption", "header_1", "paragraph_1", "yes"]
    assert store.get_instance("caption").parent is None
    assert child_names(store, "yes") == []


def test_transfer_into_own_subtree_is_refused(store: ToolStore) -> None:
    version = store.version

    with pytest.raises(InvalidMoveError):
        store.transfer_instance("yes", "caption")
    with pytest.raises(InvalidMoveError):
        store.transfer_instance("yes", "yes")

    assert store.version == version


# =============================================================================
# update_instance / update_options
# =============================================================================


def test_update_options_merges_values(store: ToolStore) -> None:
    store.update_options("caption", label="Photo caption", required=True)

    caption = store.get_instance("caption")
    assert caption.options == {"label": "Photo caption", "required": True}
    assert child_names(store, "yes") == ["caption"]


def test_update_instance_mapping_touches_only_given_fields(store: ToolStore) -> None:
    store.update_instance({"name": "yes", "title": "Upload"})

    container = store.get_instance("yes")
    assert container.title == "Upload"
    assert child_names(store, "yes") == ["caption"]
    assert container.options == {"label": "Yes"}


def test_update_instance_with_children_moves_instance_into_container(store: ToolStore) -> None:
    moved = store.get_instance("header_1")
    container = store.get_instance("yes")

    store.remove_instance("header_1")
    store.update_instance(
        replace(container, children=[*container.children, replace(moved, parent=container.name)])
    )

    assert top_names(store) == ["paragraph_1", "yes"]
    assert child_names(store, "yes") == ["caption", "header_1"]
    assert store.get_instance("header_1").parent == "yes"


def test_update_instance_rejects_parent_change(store: ToolStore) -> None:
    with pytest.raises(InvalidMoveError):
        store.update_instance({"name": "caption", "parent": None})


def test_update_instance_rejects_duplicate_child_names(store: ToolStore, catalog: ToolCatalog) -> None:
    with pytest.raises(DuplicateNameError):
        store.update_instance(
            {"name": "yes", "children": [ToolInstance.from_tool(catalog.require("text"), "header_1")]}
        )

    assert child_names(store, "yes") == ["caption"]


def test_update_instance_rejects_unknown_fields(store: ToolStore) -> None:
    with pytest.raises(ValueError):
        store.update_instance({"name": "caption", "colour": "red"})


def test_update_instance_reparents_nested_replacement_children(store: ToolStore, catalog: ToolCatalog) -> None:
    inner = ToolInstance.from_tool(catalog.require("text"), "inner")
    box = ToolInstance.from_tool(catalog.require("field_container"), "box")
    box.children.append(inner)

    store.update_instance({"name": "yes", "children": [box]})

    assert store.get_instance("box").parent == "yes"
    assert store.get_instance("inner").parent == "box"
    store.move_instance("inner", 0)
    detached = store.remove_instance("inner")
    assert detached.name == "inner"
    assert child_names(store, "box") == []


def test_update_instance_rejects_unknown_tool_types(store: ToolStore) -> None:
    with pytest.raises(UnknownToolTypeError):
        store.update_instance({"name": "caption", "tool_type": "video"})
    with pytest.raises(UnknownToolTypeError):
        store.update_instance({"name": "yes", "children": [ToolInstance(tool_type="video", name="clip")]})

    assert store.get_instance("caption").tool_type == "text"
    assert child_names(store, "yes") == ["caption"]


def test_update_unknown_instance_raises(store: ToolStore) -> None:
    with pytest.raises(InstanceNotFoundError):
        store.update_options("missing", label="x")


# =============================================================================
# Selection
# =============================================================================


def test_selected_instance_tracks_updates(store: ToolStore) -> None:
    store.select_instance("caption")

    store.update_options("caption", label="Changed")

    selected = store.selected_instance
    assert selected is not None
    assert selected.options["label"] == "Changed"


def test_clear_selection(store: ToolStore) -> None:
    store.select_instance("caption")

    store.clear_selection()

    assert store.selected_instance is None


def test_select_unknown_instance_raises(store: ToolStore) -> None:
    with pytest.raises(InstanceNotFoundError):
        store.select_instance("missing")


# =============================================================================
# Snapshots, observers and events
# =============================================================================


def test_snapshots_are_not_mutated_by_later_operations(store: ToolStore) -> None:
    before = store.tool_instances
    container_before = before[2]

    store.update_options("caption", label="Changed")
    store.remove_instance("header_1")
    store.move_instance("yes", 0)

    assert [instance.name for instance in before] == ["header_1", "paragraph_1", "yes"]
    assert container_before.children[0].options["label"] == "Caption"


def test_listeners_run_after_each_substitution(store: ToolStore) -> None:
    versions: list[int] = []
    store.add_listener(lambda current: versions.append(current.version))

    store.create_instance("header")
    store.remove_instance("paragraph_1")

    assert versions == [store.version - 1, store.version]


def test_listeners_see_selection_of_the_committed_tree(store: ToolStore, catalog: ToolCatalog) -> None:
    seen: list[str | None] = []
    store.add_listener(lambda current: seen.append(current.selected_name))

    store.add_instance(ToolInstance.from_tool(catalog.require("text"), "email"), parent="yes")
    store.remove_instance("yes")

    assert seen == ["email", None]


def test_failing_listener_does_not_break_mutation(store: ToolStore) -> None:
    def broken(_store: ToolStore) -> None:
        raise RuntimeError("boom")

    store.add_listener(broken)

    store.remove_instance("paragraph_1")

    assert "paragraph_1" not in store


def test_events_are_published(catalog: ToolCatalog, sample_items: list[dict], name_factory) -> None:
    bus = EventBus()
    received: list = []
    for event_type in (ToolInstanceAdded, ToolInstanceRemoved, ToolInstanceMoved, SelectionChanged, ToolNameRequested):
        bus.subscribe(event_type, received.append)
    store = ToolStore(catalog, sample_items, event_bus=bus, name_factory=name_factory)

    store.create_instance("header")
    store.create_instance("text")
    store.move_instance("auto-1", 0)
    store.remove_instance("auto-1")

    assert received[0] == ToolInstanceAdded(name="auto-1", tool_type="header", parent=None, index=3)
    assert received[1] == SelectionChanged(name="auto-1", previous=None)
    assert isinstance(received[2], ToolNameRequested)
    assert received[2].request.tool.tool_type == "text"
    assert received[3] == ToolInstanceMoved(
        name="auto-1", old_parent=None, new_parent=None, old_index=3, new_index=0
    )
    assert received[4] == ToolInstanceRemoved(name="auto-1", parent=None, removed_names=("auto-1",))
    assert received[5] == SelectionChanged(name=None, previous="auto-1")


# =============================================================================
# Invariants under random operation sequences
# =============================================================================


def _assert_invariants(store: ToolStore, catalog: ToolCatalog) -> None:
    nodes = list(iter_instances(store.tool_instances))
    names = [node.name for node in nodes]
    assert len(names) == len(set(names))
    assert not set(names) & set(catalog.tool_types)
    for node in nodes:
        for child in node.children:
            assert child.parent == node.name
    for top in store.tool_instances:
        assert top.parent is None


def test_random_operations_preserve_invariants_and_round_trip(catalog: ToolCatalog, name_factory) -> None:
    rng = random.Random(7)
    store = ToolStore(catalog, name_factory=name_factory)
    candidate_names = ["alpha", "beta", "gamma", "delta", "text", "file", "epsilon", "zeta"]

    for _ in range(300):
        existing = sorted(store.names())
        containers = [name for name in existing if store.get_instance(name).container]
        operation = rng.choice(["create", "add", "remove", "move", "transfer"])
        if operation == "create":
            tool = rng.choice([catalog.require("header"), catalog.require("field_container")])
            parent = rng.choice([None, *containers])
            store.create_instance(tool, rng.randint(-1, 5), parent)
        elif operation == "add":
            tool = rng.choice([catalog.require("text"), catalog.require("file")])
            parent = rng.choice([None, *containers])
            result = store.add_instance(ToolInstance.from_tool(tool, rng.choice(candidate_names)), None, parent)
            if not result.ok:
                assert result.error in (ToolErrorKind.DUPLICATE_NAME, ToolErrorKind.RESERVED_NAME)
        elif operation == "remove" and existing:
            store.remove_instance(rng.choice(existing))
        elif operation == "move" and existing:
            store.move_instance(rng.choice(existing), rng.randint(-2, 6))
        elif operation == "transfer" and existing:
            try:
                store.transfer_instance(rng.choice(existing), rng.choice([None, *containers]), rng.randint(0, 4))
            except InvalidMoveError:
                pass
        _assert_invariants(store, catalog)

    rebuilt = build(flatten(store.tool_instances), catalog)
    assert rebuilt == list(store.tool_instances)
