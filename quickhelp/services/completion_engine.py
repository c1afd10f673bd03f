"""Collaborator contracts for the documentation popup (pure Python).

The completion engine and the rendering surface live outside this package.
These contracts keep the popup controller independent of any concrete editor
widget or completion backend.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol, Sequence, Union

CAPABILITY_QUICKHELP_STRING = "quickhelp-string"
CAPABILITY_DOC_BUFFER = "doc-buffer"

ChoiceStrategy = Callable[[str, Sequence[str]], str]


def first_choice(prompt: str, choices: Sequence[str]) -> str:
    """Pick the first offered choice without prompting."""
    for choice in choices:
        return str(choice)
    return ""


@dataclass(frozen=True)
class Candidate:
    label: str
    backend: str = ""
    data: Any = None


class DocBuffer:
    """Transient text handle handed out by a ``doc-buffer`` capability."""

    def __init__(self, text: str = "", *, name: str = "", on_release: Callable[[], None] | None = None):
        self.text = str(text or "")
        self.name = str(name or "")
        self._on_release = on_release
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        callback, self._on_release = self._on_release, None
        if callback is not None:
            callback()

    def __enter__(self) -> "DocBuffer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self._released else f"{len(self.text)} chars"
        return f"DocBuffer({self.name!r}, {state})"


DocResponse = Union[str, DocBuffer, tuple[DocBuffer, int], None]


class CompletionEngine(Protocol):
    """What the popup needs from the host completion engine.

    Concrete engines are QObjects that also expose the ``postEdit``,
    ``selectionChanged``, ``completed`` and ``menuHidden`` signals.
    """

    def candidates(self) -> list[Candidate]:
        ...

    def selected_index(self) -> int:
        ...

    def invoke_capability(
        self,
        candidate: Candidate,
        capability: str,
        *,
        choose: ChoiceStrategy = first_choice,
    ) -> DocResponse:
        ...

    def cancel(self) -> None:
        ...


class RenderingSurface(Protocol):
    """Floating text region primitive plus the geometry queries placement needs."""

    def create_or_reuse_surface(self, surface_id: str) -> Any:
        ...

    def write_text(self, handle: Any, text: str) -> None:
        ...

    def place_below_cursor(self, handle: Any, rows: int) -> None:
        ...

    def place_as_dedicated_overlay(self, handle: Any) -> None:
        ...

    def release(self, handle: Any) -> None:
        ...

    def destroy(self, handle: Any) -> None:
        ...

    def cursor_screen_row(self) -> int:
        ...

    def viewport_height(self) -> int:
        ...


def current_candidate(engine: CompletionEngine) -> Candidate | None:
    """Resolve the engine's selected candidate right now, or ``None``."""
    items = list(engine.candidates() or [])
    index = int(engine.selected_index())
    if index < 0 or index >= len(items):
        return None
    return items[index]
