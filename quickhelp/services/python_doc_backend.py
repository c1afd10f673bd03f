"""Documentation provider for Python builtins, keywords and allow-listed modules."""

from __future__ import annotations

import builtins as py_builtins
import importlib
import inspect
import keyword
import pydoc
from typing import Iterable

from quickhelp.services.completion_engine import (
    CAPABILITY_DOC_BUFFER,
    CAPABILITY_QUICKHELP_STRING,
    Candidate,
    ChoiceStrategy,
    DocBuffer,
    DocResponse,
    first_choice,
)

BACKEND_NAME = "python"

SOURCE_BUILTIN = "builtin"
SOURCE_KEYWORD = "keyword"
SOURCE_MODULE = "module"


class PythonDocBackend:
    def __init__(self, modules: Iterable[str] = ()):
        self._modules = {str(name).strip() for name in modules if str(name or "").strip()}
        self.open_buffers = 0

    def candidates(self) -> list[Candidate]:
        names = {name for name in dir(py_builtins) if not name.startswith("_")}
        names.update(keyword.kwlist)
        names.update(self._modules)
        return [Candidate(label=name, backend=BACKEND_NAME) for name in sorted(names, key=str.lower)]

    def sources_for(self, label: str) -> list[str]:
        sources: list[str] = []
        if keyword.iskeyword(label):
            sources.append(SOURCE_KEYWORD)
        if not label.startswith("_") and hasattr(py_builtins, label):
            sources.append(SOURCE_BUILTIN)
        if label in self._modules:
            sources.append(SOURCE_MODULE)
        return sources

    def documentation(
            self,
            candidate: Candidate,
            capability: str,
            choose: ChoiceStrategy = first_choice,
    ) -> DocResponse:
        label = str(candidate.label or "").strip()
        sources = self.sources_for(label)
        if not sources:
            return None
        source = sources[0]
        if len(sources) > 1:
            picked = choose(f"Documentation for {label}: ", sources)
            source = picked if picked in sources else sources[0]

        if capability == CAPABILITY_QUICKHELP_STRING:
            if source == SOURCE_BUILTIN:
                return _first_line(inspect.getdoc(getattr(py_builtins, label)) or "")
            # Keywords and modules only have long-form docs.
            return None
        if capability == CAPABILITY_DOC_BUFFER:
            return self._doc_buffer(label, source)
        return None

    def _doc_buffer(self, label: str, source: str) -> DocResponse:
        if source == SOURCE_KEYWORD:
            text = _keyword_topic_text(label)
            if not text:
                return None
            return self._open_buffer(text, label)

        if source == SOURCE_MODULE:
            try:
                module = importlib.import_module(label)
            except ImportError:
                return None
            text = pydoc.render_doc(module, renderer=pydoc.plaintext)
            # Skip the "Python Library Documentation: ..." banner.
            header_end = text.find("\n\n")
            start = header_end + 2 if header_end >= 0 else 0
            return self._open_buffer(text, label), start

        return None

    def _open_buffer(self, text: str, label: str) -> DocBuffer:
        self.open_buffers += 1
        return DocBuffer(text, name=f"*python-doc {label}*", on_release=self._buffer_released)

    def _buffer_released(self):
        self.open_buffers = max(0, self.open_buffers - 1)


def _first_line(doc: str) -> str | None:
    for line in doc.splitlines():
        if line.strip():
            return line.strip()
    return None


def _keyword_topic_text(label: str) -> str:
    try:
        from pydoc_data.topics import topics
    except ImportError:
        return ""

    target = pydoc.Helper.keywords.get(label)
    seen: set[str] = set()
    while target:
        if isinstance(target, tuple):
            target = target[0]
        target = str(target)
        if target in seen:
            break
        seen.add(target)
        if target in topics:
            return str(topics[target])
        target = pydoc.Helper.topics.get(target)
    return ""
