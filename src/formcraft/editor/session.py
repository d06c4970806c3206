"""Editing session wiring a catalog, an initial form and the tool store."""

from __future__ import annotations

import logging
from copy import deepcopy
from typing import Any, Callable, Dict, Iterable, Mapping

from ..core.catalog import ToolCatalog
from ..core.models import Tool
from ..core.naming import generate_tool_name
from ..core.schema import validate_form_payload
from ..services.settings import EditorSettings
from .drop import DropHandler
from .events import EventBus, FormSaved
from .name_prompt import NamePrompt
from .tool_store import ToolStore

__all__ = ["FormEditorSession", "FormModifier", "SaveCallback"]

LOGGER = logging.getLogger(__name__)

FormModifier = Callable[[Dict[str, Any]], Mapping[str, Any]]
SaveCallback = Callable[[Dict[str, Any]], None]


class FormEditorSession:
    """One editing session over a form structure.

    The form is a mapping with an ``items`` list of flat records; any other
    keys (title, metadata) are carried through :meth:`save` untouched
    unless a modifier replaces them.
    """

    def __init__(
        self,
        tools: ToolCatalog | Iterable[Tool],
        initial_value: Mapping[str, Any] | None = None,
        *,
        on_save: SaveCallback | None = None,
        event_bus: EventBus | None = None,
        settings: EditorSettings | None = None,
        name_factory: Callable[[], str] = generate_tool_name,
    ) -> None:
        self._catalog = ToolCatalog.coerce(tools)
        self._settings = settings or EditorSettings()
        self._bus = event_bus or EventBus()
        self._on_save = on_save
        form = self._check_form(initial_value or {"items": []})
        self.store = ToolStore(
            self._catalog,
            form.get("items") or [],
            event_bus=self._bus,
            settings=self._settings,
            name_factory=name_factory,
        )
        self._initial_value = form
        self.name_prompt = NamePrompt(self.store, event_bus=self._bus)
        self.drop_handler = DropHandler(self.store)

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    @property
    def tools(self) -> ToolCatalog:
        return self._catalog

    @property
    def initial_value(self) -> Dict[str, Any]:
        return deepcopy(self._initial_value)

    def set_initial_value(self, form: Mapping[str, Any]) -> bool:
        """Rebuild the tree from ``form`` when it differs from the current initial value."""

        if dict(form) == self._initial_value:
            return False
        checked = self._check_form(form)
        self.store.load(checked.get("items") or [])
        self._initial_value = checked
        LOGGER.debug("FormEditorSession: initial value replaced (%d item(s))", len(checked.get("items") or []))
        return True

    def save(self, modifier: FormModifier | None = None) -> Dict[str, Any]:
        """Flatten the tree, let ``modifier`` shape the form, then hand it to ``on_save``."""

        items = [item.to_dict() for item in self.store.to_items()]
        draft: Dict[str, Any] = {"items": items}
        if modifier is not None:
            form = dict(modifier(draft))
        else:
            form = {**deepcopy(self._initial_value), **draft}
        LOGGER.debug("FormEditorSession.save: %d item(s)", len(items))
        self._bus.publish(FormSaved(item_count=len(items), form=form))
        if self._on_save is not None:
            self._on_save(form)
        return form

    def _check_form(self, form: Mapping[str, Any]) -> Dict[str, Any]:
        if self._settings.validate_payloads:
            validate_form_payload(form)
        return deepcopy(dict(form))
