"""Idle documentation popup for completion menus."""

from .services.completion_engine import Candidate, DocBuffer, first_choice
from .services.doc_extractor import DocResult, fetch_doc, format_for_display
from .ui.placement import PlacementDecision, PlacementMode, decide_placement

__all__ = [
    "Candidate",
    "DocBuffer",
    "DocResult",
    "PlacementDecision",
    "PlacementMode",
    "decide_placement",
    "fetch_doc",
    "first_choice",
    "format_for_display",
]
