"""Editor settings dataclass and JSON persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

__all__ = ["EditorSettings", "SettingsStore"]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".formcraft"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_ENV_OVERRIDES: Mapping[str, str] = {
    "FORMCRAFT_LOG_DIR": "log_dir",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "FORMCRAFT_AUTO_LABEL": "auto_label",
    "FORMCRAFT_VALIDATE_PAYLOADS": "validate_payloads",
    "FORMCRAFT_FULL_OPTIONS": "emit_full_options",
    "FORMCRAFT_DEBUG_LOGGING": "debug_logging",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}
_BOOL_FIELDS = frozenset(_BOOL_ENV_OVERRIDES.values())


@dataclass(slots=True)
class EditorSettings:
    """Behaviour toggles for an editing session."""

    auto_label: bool = True
    validate_payloads: bool = True
    emit_full_options: bool = False
    debug_logging: bool = False
    log_dir: str | None = None


class SettingsStore:
    """Persistence adapter for :class:`EditorSettings`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> EditorSettings:
        """Load settings from disk, then apply caller and environment overrides."""

        payload = self._read_payload()
        settings = EditorSettings()
        if payload:
            data = _normalize_fields(_filter_fields(payload))
            try:
                settings = EditorSettings(**data)
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = EditorSettings()
        LOGGER.debug("Settings loaded from %s: %s", self._path, sorted(payload))

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="runtime")
        return self._apply_env_overrides(settings)

    def save(self, settings: EditorSettings) -> Path:
        """Persist settings to disk with an atomic replace."""

        payload: Dict[str, Any] = asdict(settings)
        payload["version"] = _SETTINGS_VERSION
        body = json.dumps(payload, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s does not contain an object", self._path)
            return {}
        return payload

    def _apply_overrides(
        self,
        settings: EditorSettings,
        overrides: Mapping[str, Any],
        *,
        source: str,
    ) -> EditorSettings:
        allowed = {field.name for field in fields(EditorSettings)}
        filtered = _normalize_fields(
            {key: value for key, value in overrides.items() if key in allowed and value is not None}
        )
        if filtered:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
            settings = replace(settings, **filtered)
        return settings

    def _apply_env_overrides(self, settings: EditorSettings) -> EditorSettings:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value.strip().lower() in _TRUE_VALUES
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {field.name for field in fields(EditorSettings)}
    unknown = sorted(key for key in payload if key not in allowed and key != "version")
    if unknown:
        LOGGER.debug("Ignoring unknown settings keys: %s", unknown)
    return {key: value for key, value in payload.items() if key in allowed}


def _normalize_fields(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop values whose type does not fit the field, logging each one."""

    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        if key in _BOOL_FIELDS:
            flag = _normalize_bool_value(value)
            if flag is None:
                LOGGER.warning("Ignoring setting %s=%r; expected a boolean.", key, value)
                continue
            normalized[key] = flag
        elif key == "log_dir" and value is not None and not isinstance(value, str):
            LOGGER.warning("Ignoring setting log_dir=%r; expected a path string.", value)
        else:
            normalized[key] = value
    return normalized


def _normalize_bool_value(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUE_VALUES:
            return True
        if normalized in _FALSE_VALUES:
            return False
    return None
