"""Where the quick-help popup goes relative to the caret."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# Rows taken by the completion menu and status chrome under the caret.
FIXED_CHROME_ROWS = 14
MIN_BELOW_ROWS = 20


class PlacementMode(str, Enum):
    BELOW = "below"
    OVERLAY = "overlay"


@dataclass(frozen=True)
class PlacementDecision:
    mode: PlacementMode
    rows: int
    dedicated: bool = True
    # True only for surfaces the controller creates itself; those must be
    # destroyed on hide. Overlays reuse a host region and are left to the host.
    owns_surface: bool = False


def decide_placement(cursor_screen_row: int, viewport_height: int) -> PlacementDecision:
    remaining = int(viewport_height) - int(cursor_screen_row) - FIXED_CHROME_ROWS
    if remaining < MIN_BELOW_ROWS:
        return PlacementDecision(mode=PlacementMode.OVERLAY, rows=0, dedicated=True, owns_surface=False)
    return PlacementDecision(mode=PlacementMode.BELOW, rows=remaining, dedicated=True, owns_surface=True)
