"""Small editor window that hosts the quick-help popup."""

from __future__ import annotations

import os
import re
import sys
from pathlib import Path

from PySide6.QtCore import Qt
from PySide6.QtGui import QKeyEvent, QKeySequence, QShortcut
from PySide6.QtWidgets import QApplication, QListWidget, QMainWindow, QPlainTextEdit

from quickhelp.services.python_doc_backend import BACKEND_NAME, PythonDocBackend
from quickhelp.settings_store import JsonSettingsStore, SettingsStoreError
from quickhelp.ui.controllers.quickhelp_controller import QuickHelpController
from quickhelp.ui.widgets.completion_list import CompletionListEngine
from quickhelp.ui.widgets.doc_popup_surface import EditorDocSurface

SETTINGS_ENV = "QUICKHELP_SETTINGS"
DEMO_MODULES = ("json", "math", "os", "re", "textwrap")

_WORD_BEFORE_CURSOR = re.compile(r"[A-Za-z_][A-Za-z0-9_]*$")


def default_settings_path() -> Path:
    override = str(os.environ.get(SETTINGS_ENV) or "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "quickhelp" / "settings.json"


class DemoEditor(QPlainTextEdit):
    def __init__(self, parent=None):
        super().__init__(parent)
        self.backend = PythonDocBackend(modules=DEMO_MODULES)
        self.menu = QListWidget(self.viewport())
        self.menu.setFocusPolicy(Qt.NoFocus)
        self.menu.hide()
        self.engine = CompletionListEngine(self.menu, {BACKEND_NAME: self.backend}, parent=self)
        self.engine.completed.connect(self._insert_completion)
        self.surface = EditorDocSurface(self)
        self.quickhelp = QuickHelpController(self.engine, self.surface, parent=self)
        self.quickhelp.attach()
        self.quickhelp.statusMessage.connect(lambda text: print(f"[quickhelp] {text}", file=sys.stderr))
        self.textChanged.connect(self._on_text_changed)

    def apply_settings(self, settings: dict):
        self.quickhelp.update_settings(settings)
        self.surface.apply_settings(self.quickhelp.settings)

    def open_completion(self):
        prefix = self._prefix()
        items = [c for c in self.backend.candidates() if c.label.startswith(prefix)]
        rect = self.cursorRect()
        self.menu.setGeometry(rect.left(), rect.bottom() + 2, 260, 10 * max(1, self.fontMetrics().height() + 4))
        self.engine.set_candidates(items)

    def keyPressEvent(self, event: QKeyEvent):
        key = event.key()
        if key == Qt.Key_Space and event.modifiers() & Qt.ControlModifier:
            self.open_completion()
            return
        if key == Qt.Key_F1:
            self.quickhelp.manual_begin()
            return
        if self.engine.is_active():
            if key == Qt.Key_Down:
                self.engine.move_selection(1)
                return
            if key == Qt.Key_Up:
                self.engine.move_selection(-1)
                return
            if key in (Qt.Key_Return, Qt.Key_Enter, Qt.Key_Tab):
                self.engine.commit()
                return
            if key == Qt.Key_Escape:
                self.engine.hide_menu()
                return
        super().keyPressEvent(event)

    def focusOutEvent(self, event):
        self.quickhelp.on_focus_lost()
        super().focusOutEvent(event)

    def _on_text_changed(self):
        if self.engine.is_active():
            self.open_completion()

    def _prefix(self) -> str:
        cursor = self.textCursor()
        line = cursor.block().text()[: cursor.positionInBlock()]
        match = _WORD_BEFORE_CURSOR.search(line)
        return match.group(0) if match else ""

    def _insert_completion(self, label: str):
        prefix = self._prefix()
        cursor = self.textCursor()
        self.blockSignals(True)
        cursor.insertText(label[len(prefix):] if label.startswith(prefix) else label)
        self.blockSignals(False)
        self.setTextCursor(cursor)


class DemoWindow(QMainWindow):
    def __init__(self, store: JsonSettingsStore):
        super().__init__()
        self.setWindowTitle("QuickHelp demo")
        self.store = store
        self.editor = DemoEditor(self)
        self.editor.apply_settings(dict(store.quickhelp_settings()))
        self.setCentralWidget(self.editor)
        self.resize(960, 900)
        self._toggle_shortcut = QShortcut(QKeySequence("Ctrl+Shift+H"), self)
        self._toggle_shortcut.activated.connect(self.toggle_quickhelp)
        if store.last_error:
            self.statusBar().showMessage(f"Settings: {store.last_error}", 6000)
        else:
            self.statusBar().showMessage(
                "Ctrl+Space: complete   F1: docs now   Ctrl+Shift+H: toggle docs   Esc: close",
                6000,
            )

    def toggle_quickhelp(self):
        enabled = not self.editor.quickhelp.is_enabled()
        self.editor.apply_settings({"enabled": enabled})
        self.statusBar().showMessage(f"Quick help {'on' if enabled else 'off'}", 2000)

    def persist_settings(self) -> bool:
        self.store.store_quickhelp_settings(self.editor.quickhelp.settings)
        if not self.store.dirty:
            return False
        try:
            self.store.save()
        except SettingsStoreError as exc:
            self.statusBar().showMessage(str(exc), 6000)
            return False
        return True

    def closeEvent(self, event):
        self.persist_settings()
        self.editor.quickhelp.shutdown()
        super().closeEvent(event)


def run(argv: list[str] | None = None) -> int:
    app = QApplication.instance() or QApplication(list(argv if argv is not None else sys.argv))
    store = JsonSettingsStore(default_settings_path())
    store.load()
    window = DemoWindow(store)
    window.show()
    return app.exec()
