from __future__ import annotations

import re
from copy import deepcopy
from typing import Any, Mapping, TypedDict

SETTINGS_ROOT_KEY = "quickhelp"
MAX_DELAY_MS = 10000

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")


class QuickHelpSettings(TypedDict, total=False):
    enabled: bool
    delay_ms: int | None  # None disables the automatic popup
    max_lines: int | None  # None shows everything
    foreground: str
    background: str
    preserve_styling: bool


DEFAULTS: QuickHelpSettings = {
    "enabled": True,
    "delay_ms": 500,
    "max_lines": None,
    "foreground": "",
    "background": "",
    "preserve_styling": False,
}


def default_quickhelp_settings() -> QuickHelpSettings:
    return deepcopy(DEFAULTS)


def normalize_quickhelp_settings(raw: Mapping[str, Any] | None) -> QuickHelpSettings:
    merged: dict[str, Any] = default_quickhelp_settings()
    if isinstance(raw, Mapping):
        merged.update({key: value for key, value in raw.items() if key in DEFAULTS})

    merged["enabled"] = bool(merged.get("enabled", True))
    merged["preserve_styling"] = bool(merged.get("preserve_styling", False))
    merged["delay_ms"] = _normalize_delay(merged.get("delay_ms"))
    merged["max_lines"] = _normalize_max_lines(merged.get("max_lines"))
    merged["foreground"] = _normalize_color(merged.get("foreground"))
    merged["background"] = _normalize_color(merged.get("background"))
    return merged  # type: ignore[return-value]


def _normalize_delay(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        delay = int(value)
    except (TypeError, ValueError):
        return DEFAULTS["delay_ms"]
    if delay < 0:
        return None
    return min(MAX_DELAY_MS, delay)


def _normalize_max_lines(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        lines = int(value)
    except (TypeError, ValueError):
        return None
    return lines if lines > 0 else None


def _normalize_color(value: Any) -> str:
    text = str(value or "").strip()
    if _HEX_COLOR.match(text):
        return text
    return ""
