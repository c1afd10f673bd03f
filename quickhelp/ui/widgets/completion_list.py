from __future__ import annotations

from typing import Mapping, Protocol, Sequence

from PySide6.QtCore import QObject, Qt, Signal
from PySide6.QtWidgets import QListWidget, QListWidgetItem

from quickhelp.services.completion_engine import Candidate, ChoiceStrategy, DocResponse, first_choice

_CANDIDATE_ROLE = int(Qt.UserRole)


class DocumentationBackend(Protocol):
    def documentation(self, candidate: Candidate, capability: str, choose: ChoiceStrategy) -> DocResponse:
        ...


class CompletionListEngine(QObject):
    """Completion engine over a ``QListWidget`` menu.

    Candidates are dispatched to documentation backends by ``Candidate.backend``.
    """

    postEdit = Signal()
    selectionChanged = Signal(int)
    completed = Signal(str)
    menuHidden = Signal()

    def __init__(self, menu: QListWidget, backends: Mapping[str, DocumentationBackend] | None = None, parent=None):
        super().__init__(parent or menu)
        self._menu = menu
        self._backends: dict[str, DocumentationBackend] = dict(backends or {})
        self._candidates: list[Candidate] = []
        self._menu.currentRowChanged.connect(self._on_row_changed)
        self._menu.itemClicked.connect(lambda _item: self.commit())

    # ---------- CompletionEngine ----------

    def candidates(self) -> list[Candidate]:
        return list(self._candidates)

    def selected_index(self) -> int:
        if not self.is_active():
            return -1
        return int(self._menu.currentRow())

    def invoke_capability(self, candidate: Candidate, capability: str, *, choose: ChoiceStrategy = first_choice) -> DocResponse:
        backend = self._backends.get(candidate.backend)
        if backend is None:
            return None
        return backend.documentation(candidate, capability, choose)

    def cancel(self) -> None:
        self.hide_menu()

    # ---------- Menu ----------

    def register_backend(self, name: str, backend: DocumentationBackend):
        self._backends[str(name)] = backend

    def is_active(self) -> bool:
        return bool(self._candidates) and not self._menu.isHidden()

    def set_candidates(self, candidates: Sequence[Candidate]):
        self._candidates = [c for c in candidates if isinstance(c, Candidate)]
        self._menu.blockSignals(True)
        self._menu.clear()
        for candidate in self._candidates:
            item = QListWidgetItem(candidate.label)
            item.setData(_CANDIDATE_ROLE, candidate)
            self._menu.addItem(item)
        self._menu.blockSignals(False)
        if not self._candidates:
            self.hide_menu()
            return
        self._menu.show()
        self._menu.raise_()
        self._menu.setCurrentRow(0)
        self.postEdit.emit()

    def move_selection(self, delta: int):
        count = self._menu.count()
        if not self.is_active() or count <= 0:
            return
        row = self._menu.currentRow()
        if row < 0:
            row = 0
        self._menu.setCurrentRow((row + int(delta)) % count)

    def commit(self) -> str:
        candidate = None
        index = self.selected_index()
        if 0 <= index < len(self._candidates):
            candidate = self._candidates[index]
        if candidate is None:
            return ""
        self._close_menu()
        self.completed.emit(candidate.label)
        return candidate.label

    def hide_menu(self):
        was_active = bool(self._candidates) or not self._menu.isHidden()
        self._close_menu()
        if was_active:
            self.menuHidden.emit()

    def _close_menu(self):
        self._candidates = []
        self._menu.blockSignals(True)
        self._menu.clear()
        self._menu.blockSignals(False)
        self._menu.hide()

    def _on_row_changed(self, row: int):
        if self.is_active():
            self.selectionChanged.emit(int(row))
