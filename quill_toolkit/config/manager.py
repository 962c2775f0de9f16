from __future__ import annotations

"""Configuration loading and access helpers.

This module centralises the declarative settings of the converter (import
style aliases, export defaults, logging).  It loads YAML files packaged with
*quill_toolkit* and optionally merges them with user overrides.

On Windows: ``%LOCALAPPDATA%\\QuillToolkit\\config\\*.yml``
On Unix: ``~/.quill_toolkit/*.yml``

Missing or invalid files never break the converter: every consumer carries
built-in defaults and only reads overrides from here.
"""

import copy
import importlib.resources as pkg_resources
import logging
import os
from pathlib import Path
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)

__all__ = ["ConfigManager"]


def _get_user_config_dir() -> Path:
    """Get the user configuration directory."""
    if os.name == 'nt':  # Windows
        local_appdata = os.environ.get('LOCALAPPDATA')
        if local_appdata:
            return Path(local_appdata) / "QuillToolkit" / "config"
        return Path.home() / "AppData" / "Local" / "QuillToolkit" / "config"
    return Path.home() / ".quill_toolkit"


class _Singleton(type):
    _instance: "ConfigManager" | None = None

    def __call__(cls, *args, **kwargs):  # type: ignore[no-self-use]
        if cls._instance is None:
            cls._instance = super().__call__(*args, **kwargs)
        return cls._instance


class ConfigManager(metaclass=_Singleton):
    """Lazy-loads and exposes configuration sections as dictionaries."""

    _DEFAULT_FILENAMES = {
        "style_map": "default_style_map.yml",
        "export": "export_defaults.yml",
        "logging": "logging.yml",
    }

    def __init__(self, user_config_dir: Path | None = None) -> None:
        self._user_config_dir = Path(user_config_dir) if user_config_dir else _get_user_config_dir()
        self._data: Dict[str, Dict[str, Any]] = {}
        self._ensure_loaded()

    # ------------------------------------------------------------------
    # Public helpers
    # ------------------------------------------------------------------
    def get_style_map(self) -> Dict[str, Any]:
        return self._data.get("style_map", {})

    def get_export_defaults(self) -> Dict[str, Any]:
        return self._data.get("export", {})

    def get_logging_config(self) -> Dict[str, Any]:
        # dictConfig mutates nested dicts, hand out a copy
        return copy.deepcopy(self._data.get("logging", {}))

    # ------------------------------------------------------------------
    # Internal loading logic
    # ------------------------------------------------------------------
    def _ensure_loaded(self) -> None:
        if self._data:
            return

        states = []
        for key, filename in self._DEFAULT_FILENAMES.items():
            section, state = self._read_packaged(filename)
            overrides = self._read_user(filename)
            if overrides:
                section = _merge_sections(section, overrides)
                state += "+overrides"
            self._data[key] = section
            states.append(f"{key}: {state}")

        logger.info("Config startup: %s", " | ".join(states))

    @staticmethod
    def _read_packaged(filename: str) -> tuple[Dict[str, Any], str]:
        try:
            text = pkg_resources.files(__package__).joinpath(filename).read_text(encoding="utf-8")
        except OSError:
            logger.error("Packaged config %s is missing", filename)
            return {}, "missing"
        try:
            loaded = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            logger.error("Packaged config %s is invalid: %s", filename, exc)
            return {}, "invalid"
        if not isinstance(loaded, dict):
            logger.error("Packaged config %s is not a mapping", filename)
            return {}, "invalid"
        return loaded, "loaded"

    def _read_user(self, filename: str) -> Dict[str, Any]:
        path = self._user_config_dir / filename
        if not path.is_file():
            return {}
        try:
            loaded = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except Exception as exc:
            logger.error("Ignoring user config %s: %s", path, exc)
            return {}
        if not isinstance(loaded, dict):
            logger.warning("Ignoring user config %s: top level must be a mapping", path)
            return {}
        return loaded


def _merge_sections(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Return *base* updated with *overrides*; nested mappings merge key by key.

    User alias tables therefore extend the packaged ones instead of
    replacing them.
    """
    merged = dict(base)
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _merge_sections(current, value)
        else:
            merged[key] = value
    return merged
