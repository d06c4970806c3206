"""JSON Schemas for flat form payloads and tool catalogs."""

from __future__ import annotations

from typing import Any, Sequence

from jsonschema import Draft7Validator

from .errors import PayloadValidationError

__all__ = [
    "ITEM_SCHEMA",
    "FORM_SCHEMA",
    "TOOL_SCHEMA",
    "CATALOG_SCHEMA",
    "MAX_SCHEMA_ERRORS",
    "collect_errors",
    "validate_form_payload",
    "validate_catalog_payload",
]

MAX_SCHEMA_ERRORS = 25

ITEM_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["toolType", "name"],
    "properties": {
        "toolType": {"type": "string", "minLength": 1},
        "name": {"type": "string", "minLength": 1},
        "options": {"type": "object"},
        "parent": {"type": ["string", "null"]},
    },
}

FORM_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["items"],
    "properties": {
        "items": {"type": "array", "items": ITEM_SCHEMA},
    },
}

TOOL_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["toolType"],
    "properties": {
        "toolType": {"type": "string", "minLength": 1},
        "title": {"type": "string"},
        "options": {"type": "object"},
        "requireName": {"type": "boolean"},
        "container": {"type": "boolean"},
    },
}

CATALOG_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["tools"],
    "properties": {
        "tools": {"type": "array", "items": TOOL_SCHEMA},
    },
}

_FORM_VALIDATOR = Draft7Validator(FORM_SCHEMA)
_CATALOG_VALIDATOR = Draft7Validator(CATALOG_SCHEMA)


def collect_errors(validator: Draft7Validator, payload: Any) -> list[str]:
    """Return readable messages for every schema violation, capped."""

    errors: list[str] = []
    for issue in validator.iter_errors(payload):
        path = _format_schema_path(issue.absolute_path)
        message = issue.message
        if path:
            message = f"{path}: {message}"
        errors.append(message)
        if len(errors) >= MAX_SCHEMA_ERRORS:
            errors.append("Too many validation errors; stopping early.")
            break
    return errors


def validate_form_payload(payload: Any) -> None:
    """Raise :class:`PayloadValidationError` unless ``payload`` is a valid form."""

    errors = collect_errors(_FORM_VALIDATOR, payload)
    if errors:
        raise PayloadValidationError.from_messages(errors, subject="form")


def validate_catalog_payload(payload: Any) -> None:
    """Raise :class:`PayloadValidationError` unless ``payload`` is a valid catalog."""

    errors = collect_errors(_CATALOG_VALIDATOR, payload)
    if errors:
        raise PayloadValidationError.from_messages(errors, subject="catalog")


def _format_schema_path(path: Sequence[Any]) -> str:
    if not path:
        return ""
    components: list[str] = []
    for segment in path:
        if isinstance(segment, int):
            if components:
                components[-1] = f"{components[-1]}[{segment}]"
            else:
                components.append(f"[{segment}]")
        else:
            components.append(str(segment))
    return ".".join(filter(None, components))
