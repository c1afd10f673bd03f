"""PySide widgets implementing the popup collaborators."""

from .completion_list import CompletionListEngine
from .doc_popup_surface import EditorDocSurface

__all__ = ["CompletionListEngine", "EditorDocSurface"]
