"""Settings persistence and catalog/form importers."""

from .importers import load_catalog, load_form
from .settings import EditorSettings, SettingsStore

__all__ = ["EditorSettings", "SettingsStore", "load_catalog", "load_form"]
