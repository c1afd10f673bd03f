from __future__ import annotations

import json
from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

from quickhelp.settings_models import (
    SETTINGS_ROOT_KEY,
    QuickHelpSettings,
    default_quickhelp_settings,
    normalize_quickhelp_settings,
)


class SettingsStoreError(RuntimeError):
    """Raised when a settings file cannot be saved."""


_MISSING = object()


def deep_merge_defaults(data: Mapping[str, Any], defaults: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with absent keys, at any depth, taken from ``defaults``."""
    merged = deepcopy(dict(data))
    for key, fallback in defaults.items():
        present = merged.get(key, _MISSING)
        if present is _MISSING:
            merged[key] = deepcopy(fallback)
        elif isinstance(present, dict) and isinstance(fallback, Mapping):
            merged[key] = deep_merge_defaults(present, fallback)
    return merged


def _key_path(key: str) -> list[str]:
    parts = [part for part in str(key or "").split(".") if part]
    if not parts:
        raise ValueError("Settings key cannot be empty.")
    return parts


def dot_get(data: Mapping[str, Any], key: str, default: Any = None) -> Any:
    node: Any = data
    for part in _key_path(key):
        node = node.get(part, _MISSING) if isinstance(node, Mapping) else _MISSING
        if node is _MISSING:
            return default
    return node


def dot_set(data: dict[str, Any], key: str, value: Any) -> None:
    *parents, leaf = _key_path(key)
    node = data
    for part in parents:
        child = node.get(part)
        if not isinstance(child, dict):
            child = node[part] = {}
        node = child
    node[leaf] = value


class JsonSettingsStore:
    """JSON-backed store holding the quick-help settings under one root key."""

    def __init__(self, path: Path, *, persistent: bool = True) -> None:
        self.path = Path(path)
        self.defaults: dict[str, Any] = {SETTINGS_ROOT_KEY: dict(default_quickhelp_settings())}
        self.data: dict[str, Any] = {}
        self.dirty: bool = False
        self.last_error: str | None = None
        self.persistent: bool = bool(persistent)

    def load(self) -> dict[str, Any]:
        if not self.persistent:
            self.data = deep_merge_defaults({}, self.defaults)
            self.dirty = False
            self.last_error = None
            return self.data

        missing = not self.path.exists()
        loaded: dict[str, Any] = {}
        self.last_error = None

        if not missing:
            try:
                raw = json.loads(self.path.read_text(encoding="utf-8"))
            except Exception as exc:
                # Keep running on defaults without touching the broken file.
                self.last_error = str(exc)
                raw = {}
            if isinstance(raw, dict):
                loaded = raw
            elif self.last_error is None:
                self.last_error = (
                    f"Settings root in '{self.path}' must be a JSON object, "
                    f"found {type(raw).__name__}."
                )

        self.data = deep_merge_defaults(loaded, self.defaults)
        self.dirty = missing
        return self.data

    def save(self) -> None:
        if not self.persistent:
            self.dirty = False
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self.data, indent=2, sort_keys=True), encoding="utf-8")
            self.dirty = False
            self.last_error = None
        except Exception as exc:
            raise SettingsStoreError(
                f"Could not write settings file '{self.path}': {exc}"
            ) from exc

    def get(self, key: str, default: Any = None) -> Any:
        return dot_get(self.data, key, default)

    def set(self, key: str, value: Any) -> bool:
        if self.get(key) == value:
            return False
        dot_set(self.data, key, value)
        self.dirty = True
        return True

    def quickhelp_settings(self) -> QuickHelpSettings:
        return normalize_quickhelp_settings(self.get(SETTINGS_ROOT_KEY, {}))

    def store_quickhelp_settings(self, cfg: Mapping[str, Any]) -> bool:
        return self.set(SETTINGS_ROOT_KEY, dict(normalize_quickhelp_settings(cfg)))
