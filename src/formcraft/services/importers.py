"""Load tool catalogs and flat form payloads from YAML or JSON."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Mapping

from ruamel.yaml import YAML
from ruamel.yaml.error import MarkedYAMLError, YAMLError

from ..core.catalog import ToolCatalog, tool_from_dict
from ..core.convert import build
from ..core.errors import PayloadValidationError
from ..core.models import Tool
from ..core.schema import validate_catalog_payload, validate_form_payload

__all__ = ["load_catalog", "load_form", "parse_document"]

LOGGER = logging.getLogger(__name__)

Source = str | Path | Mapping[str, Any] | list


def parse_document(text: str) -> Any:
    """Parse YAML (or JSON, which the YAML loader accepts) into plain data."""

    parser = _create_yaml_parser()
    try:
        return parser.load(text)
    except MarkedYAMLError as exc:
        mark = exc.problem_mark or exc.context_mark
        line = f" (line {mark.line + 1})" if mark is not None else ""
        detail = exc.problem or str(exc)
        raise PayloadValidationError.from_messages([f"{detail}{line}"], subject="document") from exc
    except YAMLError as exc:
        raise PayloadValidationError.from_messages([str(exc)], subject="document") from exc


def load_catalog(source: Source) -> ToolCatalog:
    """Load a catalog given as ``{"tools": [...]}`` or a bare list of tools."""

    payload = _resolve(source)
    if isinstance(payload, list):
        payload = {"tools": payload}
    validate_catalog_payload(payload)
    tools = [tool_from_dict(entry) for entry in payload["tools"]]
    try:
        catalog = ToolCatalog(tools)
    except ValueError as exc:
        raise PayloadValidationError.from_messages([str(exc)], subject="catalog") from exc
    LOGGER.debug("Loaded catalog with %d tool(s)", len(catalog))
    return catalog


def load_form(source: Source, catalog: ToolCatalog | Iterable[Tool] | None = None) -> dict[str, Any]:
    """Load a form given as ``{"items": [...]}`` or a bare list of items.

    When ``catalog`` is supplied the items are also built once so unknown
    tool types and broken parent references surface at load time.
    """

    payload = _resolve(source)
    if isinstance(payload, list):
        payload = {"items": payload}
    validate_form_payload(payload)
    form = dict(payload)
    if catalog is not None:
        build(form["items"], catalog)
    LOGGER.debug("Loaded form with %d item(s)", len(form["items"]))
    return form


def _resolve(source: Source) -> Any:
    if isinstance(source, Path):
        return parse_document(source.read_text(encoding="utf-8"))
    if isinstance(source, str):
        return parse_document(source)
    return source


def _create_yaml_parser() -> YAML:
    parser = YAML(typ="safe")
    parser.allow_duplicate_keys = False
    return parser
