from __future__ import annotations

import re
from typing import Mapping

from PySide6.QtCore import QObject, Qt
from PySide6.QtWidgets import QFrame, QPlainTextEdit, QTextEdit

from quickhelp.ui.placement import FIXED_CHROME_ROWS

DEDICATED_PROPERTY = "quickhelpDedicated"

_RICH_TEXT_HINT = re.compile(r"<\s*(?:html|body|p|div|span|b|i|code|pre|br|ul|ol|li|h[1-6])\b", re.IGNORECASE)
_POPUP_QSS = """
QTextEdit#QuickHelpPopup {{
    background-color: {background};
    color: {foreground};
    border: 1px solid #4a4a4a;
    padding: 4px;
}}
"""
_DEFAULT_FOREGROUND = "#e8e8e8"
_DEFAULT_BACKGROUND = "#2f2f2f"


class EditorDocSurface(QObject):
    """Rendering surface that floats read-only text panes over a plain-text editor."""

    def __init__(self, editor: QPlainTextEdit, settings: Mapping | None = None, parent=None):
        super().__init__(parent or editor)
        self._editor = editor
        self._panes: dict[str, QTextEdit] = {}
        self._foreground = ""
        self._background = ""
        self._preserve_styling = False
        self.apply_settings(settings or {})

    def apply_settings(self, settings: Mapping):
        self._foreground = str(settings.get("foreground") or "")
        self._background = str(settings.get("background") or "")
        self._preserve_styling = bool(settings.get("preserve_styling", False))
        for pane in self._panes.values():
            pane.setStyleSheet(self._stylesheet())

    # ---------- Geometry ----------

    def line_height(self) -> int:
        return max(1, self._editor.fontMetrics().height())

    def cursor_screen_row(self) -> int:
        return max(0, self._editor.cursorRect().top() // self.line_height())

    def viewport_height(self) -> int:
        return max(0, self._editor.viewport().height() // self.line_height())

    # ---------- Surface ----------

    def create_or_reuse_surface(self, surface_id: str) -> QTextEdit:
        pane = self._panes.get(surface_id)
        if pane is not None:
            return pane
        pane = QTextEdit(self._editor.viewport())
        pane.setObjectName("QuickHelpPopup")
        pane.setReadOnly(True)
        pane.setFocusPolicy(Qt.NoFocus)
        pane.setFrameShape(QFrame.Box)
        pane.setLineWrapMode(QTextEdit.WidgetWidth)
        pane.setStyleSheet(self._stylesheet())
        pane.hide()
        self._panes[surface_id] = pane
        return pane

    def write_text(self, handle: QTextEdit, text: str) -> None:
        value = str(text or "")
        if self._preserve_styling and _RICH_TEXT_HINT.search(value):
            handle.setHtml(value)
        else:
            handle.setPlainText(value)

    def place_below_cursor(self, handle: QTextEdit, rows: int) -> None:
        lh = self.line_height()
        cursor_rect = self._editor.cursorRect()
        viewport = self._editor.viewport()
        content_rows = handle.document().blockCount() + 1
        h = max(3, min(int(rows), content_rows)) * lh + 10
        w = self._pane_width()
        x = min(max(0, cursor_rect.left()), max(0, viewport.width() - w - 2))
        y = cursor_rect.bottom() + 2 + FIXED_CHROME_ROWS * lh
        handle.setProperty(DEDICATED_PROPERTY, True)
        handle.setGeometry(x, y, w, h)
        handle.show()
        handle.raise_()

    def place_as_dedicated_overlay(self, handle: QTextEdit) -> None:
        lh = self.line_height()
        viewport = self._editor.viewport()
        top_band = self._editor.cursorRect().top() - 2
        h = max(3 * lh, min(top_band, viewport.height() // 2))
        w = self._pane_width()
        x = max(0, viewport.width() - w - 2)
        handle.setProperty(DEDICATED_PROPERTY, True)
        handle.setGeometry(x, 0, w, h)
        handle.show()
        handle.raise_()

    def release(self, handle: QTextEdit) -> None:
        handle.clear()
        handle.hide()

    def destroy(self, handle: QTextEdit) -> None:
        for key, pane in list(self._panes.items()):
            if pane is handle:
                self._panes.pop(key, None)
        handle.hide()
        handle.deleteLater()

    def pane(self, surface_id: str) -> QTextEdit | None:
        return self._panes.get(surface_id)

    # ---------- Helpers ----------

    def _pane_width(self) -> int:
        return max(320, min(760, int(self._editor.viewport().width() * 0.78)))

    def _stylesheet(self) -> str:
        return _POPUP_QSS.format(
            foreground=self._foreground or _DEFAULT_FOREGROUND,
            background=self._background or _DEFAULT_BACKGROUND,
        )
