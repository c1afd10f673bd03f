"""Qt-aware controllers for the quick-help popup."""

from .quickhelp_controller import MANUAL_DELAY_MS, PopupState, QuickHelpController

__all__ = [
    "MANUAL_DELAY_MS",
    "PopupState",
    "QuickHelpController",
]
