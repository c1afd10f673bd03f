"""Thin adapter between the popup controller and a rendering surface."""

from __future__ import annotations

from typing import Any

from quickhelp.services.completion_engine import RenderingSurface
from quickhelp.ui.placement import PlacementDecision, PlacementMode

DEFAULT_SURFACE_ID = "quickhelp"


class PopupRenderSink:
    def __init__(self, surface: RenderingSurface, surface_id: str = DEFAULT_SURFACE_ID):
        self._surface = surface
        self._surface_id = str(surface_id or DEFAULT_SURFACE_ID)
        self._handle: Any = None
        self._owns_surface = False

    @property
    def is_showing(self) -> bool:
        return self._handle is not None

    @property
    def owns_surface(self) -> bool:
        return self._owns_surface

    def show(self, text: str, placement: PlacementDecision) -> None:
        if self._handle is not None and self._owns_surface != bool(placement.owns_surface):
            # Ownership flips: destroy our split, or hand the host's overlay back.
            self.hide()

        handle = self._surface.create_or_reuse_surface(self._surface_id)
        self._handle = handle
        self._owns_surface = bool(placement.owns_surface)
        self._surface.write_text(handle, str(text or ""))
        if placement.mode is PlacementMode.BELOW:
            self._surface.place_below_cursor(handle, int(placement.rows))
        else:
            self._surface.place_as_dedicated_overlay(handle)

    def hide(self) -> None:
        handle = self._handle
        if handle is None:
            return
        owned = self._owns_surface
        self._handle = None
        self._owns_surface = False
        if owned:
            self._surface.destroy(handle)
        else:
            self._surface.release(handle)
