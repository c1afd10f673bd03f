"""Idle-timer driven lifecycle of the documentation popup.

One controller serves one editing session. The host completion engine and the
rendering surface are injected, the controller never reaches for global state.
The only timing primitive is a single-shot ``QTimer``: routine events arm it
when it is idle, the manual trigger always re-arms it with a short delay, and
every hide path stops it.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping

from PySide6.QtCore import QObject, QTimer, Signal

from quickhelp.services.completion_engine import (
    ChoiceStrategy,
    CompletionEngine,
    RenderingSurface,
    current_candidate,
    first_choice,
)
from quickhelp.services.doc_extractor import fetch_doc, format_for_display
from quickhelp.settings_models import QuickHelpSettings, normalize_quickhelp_settings
from quickhelp.ui.placement import decide_placement
from quickhelp.ui.render_sink import PopupRenderSink

MANUAL_DELAY_MS = 10

_ENGINE_SHOW_SIGNALS = ("postEdit", "selectionChanged")
_ENGINE_HIDE_SIGNALS = ("completed", "menuHidden")


class PopupState(str, Enum):
    HIDDEN = "hidden"
    TIMER_ARMED = "timer_armed"
    VISIBLE = "visible"


class QuickHelpController(QObject):
    stateChanged = Signal(str)
    docShown = Signal(str)
    statusMessage = Signal(str)

    def __init__(
            self,
            engine: CompletionEngine,
            surface: RenderingSurface,
            settings: Mapping[str, Any] | None = None,
            *,
            choose: ChoiceStrategy = first_choice,
            sink: PopupRenderSink | None = None,
            parent=None,
    ):
        super().__init__(parent)
        self._engine = engine
        self._surface = surface
        self._sink = sink or PopupRenderSink(surface)
        self._choose = choose
        self._state = PopupState.HIDDEN
        self._attached_engine: Any = None
        self._cfg: QuickHelpSettings = normalize_quickhelp_settings(None)

        self._idle_timer = QTimer(self)
        self._idle_timer.setSingleShot(True)
        self._idle_timer.timeout.connect(self._on_idle_timeout)

        self.update_settings(settings or {})

    # ---------- Public API ----------

    @property
    def state(self) -> PopupState:
        return self._state

    @property
    def settings(self) -> QuickHelpSettings:
        return dict(self._cfg)  # type: ignore[return-value]

    def is_timer_armed(self) -> bool:
        return self._idle_timer.isActive()

    def is_enabled(self) -> bool:
        return bool(self._cfg.get("enabled", True))

    def update_settings(self, cfg: Mapping[str, Any]):
        merged: dict[str, Any] = dict(self._cfg)
        if isinstance(cfg, Mapping):
            merged.update(cfg)
        self._cfg = normalize_quickhelp_settings(merged)
        if not self.is_enabled():
            self.on_hide_requested()
        elif self._cfg.get("delay_ms") is None and self._state is PopupState.TIMER_ARMED:
            self._cancel_timer()
            self._set_state(PopupState.VISIBLE if self._sink.is_showing else PopupState.HIDDEN)

    def set_enabled(self, enabled: bool):
        self.update_settings({"enabled": bool(enabled)})

    def attach(self, engine: CompletionEngine | None = None):
        if engine is not None and engine is not self._engine:
            self.detach()
            self._engine = engine
        if self._attached_engine is self._engine:
            return
        self.detach()
        for signal, slot in self._engine_connections(self._engine):
            signal.connect(slot)
        self._attached_engine = self._engine

    def detach(self):
        engine = self._attached_engine
        if engine is None:
            return
        self._attached_engine = None
        for signal, slot in self._engine_connections(engine):
            try:
                signal.disconnect(slot)
            except (RuntimeError, TypeError):
                pass

    def on_post_edit_or_selection_change(self, *_args, manual: bool = False):
        if not self.is_enabled():
            return
        if manual:
            self._arm_timer(MANUAL_DELAY_MS)
            return
        delay = self._cfg.get("delay_ms")
        if delay is None or self._idle_timer.isActive():
            return
        self._arm_timer(int(delay))

    def manual_begin(self):
        self.on_post_edit_or_selection_change(manual=True)

    def on_hide_requested(self, *_args):
        self._cancel_timer()
        self._hide_popup()
        self._set_state(PopupState.HIDDEN)

    def on_focus_lost(self):
        self.on_hide_requested()
        try:
            self._engine.cancel()
        except Exception as exc:
            self.statusMessage.emit(f"Quick help: completion cancel failed: {exc}")

    def shutdown(self):
        self.on_hide_requested()
        self.detach()

    # ---------- Timer ----------

    def _arm_timer(self, delay_ms: int):
        self._idle_timer.stop()
        self._idle_timer.start(max(0, int(delay_ms)))
        self._set_state(PopupState.TIMER_ARMED)

    def _cancel_timer(self):
        self._idle_timer.stop()

    def _on_idle_timeout(self):
        self._idle_timer.stop()
        try:
            # Selection may have moved while the timer was pending.
            candidate = current_candidate(self._engine)
            if candidate is None:
                self._hide_and_reset()
                return
            result = fetch_doc(
                self._engine,
                candidate,
                max_lines=self._cfg.get("max_lines"),
                choose=self._choose,
            )
            if result is None:
                self._hide_and_reset()
                return
            text = format_for_display(result)
            placement = decide_placement(self._surface.cursor_screen_row(), self._surface.viewport_height())
            self._sink.show(text, placement)
        except Exception as exc:
            self.statusMessage.emit(f"Quick help: could not show documentation: {exc}")
            self._hide_and_reset()
            return
        self._set_state(PopupState.VISIBLE)
        self.docShown.emit(candidate.label)

    # ---------- Helpers ----------

    def _engine_connections(self, engine) -> list[tuple[Any, Any]]:
        pairs: list[tuple[Any, Any]] = []
        for name in _ENGINE_SHOW_SIGNALS:
            signal = getattr(engine, name, None)
            if signal is not None:
                pairs.append((signal, self.on_post_edit_or_selection_change))
        for name in _ENGINE_HIDE_SIGNALS:
            signal = getattr(engine, name, None)
            if signal is not None:
                pairs.append((signal, self.on_hide_requested))
        return pairs

    def _hide_and_reset(self):
        self._hide_popup()
        self._set_state(PopupState.HIDDEN)

    def _hide_popup(self):
        try:
            self._sink.hide()
        except Exception as exc:
            self.statusMessage.emit(f"Quick help: popup teardown failed: {exc}")

    def _set_state(self, state: PopupState):
        if state is self._state:
            return
        self._state = state
        self.stateChanged.emit(state.value)
