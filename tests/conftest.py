"""Shared pytest fixtures."""

from __future__ import annotations

import itertools
from copy import deepcopy
from typing import Callable

import pytest

from formcraft.core.catalog import ToolCatalog
from formcraft.editor.events import EventBus
from formcraft.editor.tool_store import ToolStore

from helpers import SAMPLE_ITEMS, make_catalog


@pytest.fixture
def catalog() -> ToolCatalog:
    return make_catalog()


@pytest.fixture
def sample_items() -> list[dict]:
    return deepcopy(SAMPLE_ITEMS)


@pytest.fixture
def name_factory() -> Callable[[], str]:
    counter = itertools.count(1)
    return lambda: f"auto-{next(counter)}"


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def store(catalog: ToolCatalog, sample_items: list[dict], name_factory: Callable[[], str]) -> ToolStore:
    return ToolStore(catalog, sample_items, name_factory=name_factory)
