import time

import pytest
from PySide6.QtCore import QCoreApplication
from fakes import FakeEngine, FakeSurface

from quickhelp.services.completion_engine import Candidate
from quickhelp.services.doc_extractor import TRUNCATION_MARKER
from quickhelp.ui.controllers.quickhelp_controller import MANUAL_DELAY_MS, PopupState, QuickHelpController

A = Candidate("alpha")
B = Candidate("beta")


@pytest.fixture
def engine():
    return FakeEngine([A, B], docs={"alpha": "Alpha docs.", "beta": "Beta docs."})


@pytest.fixture
def surface():
    return FakeSurface(cursor_row=10, viewport_height=80)


@pytest.fixture
def controller(qapp, engine, surface):
    ctrl = QuickHelpController(engine, surface, {"delay_ms": 500})
    yield ctrl
    ctrl.shutdown()


def _fire(controller):
    # Stand-in for the QTimer timeout.
    controller._on_idle_timeout()


def test_starts_hidden_without_timer(controller):
    assert controller.state is PopupState.HIDDEN
    assert not controller.is_timer_armed()


def test_routine_event_arms_single_timer(controller):
    controller.on_post_edit_or_selection_change()

    assert controller.state is PopupState.TIMER_ARMED
    assert controller.is_timer_armed()
    assert controller._idle_timer.interval() == 500


def test_routine_event_while_armed_does_not_rearm(controller):
    controller.on_post_edit_or_selection_change()
    controller.update_settings({"delay_ms": 2000})

    controller.on_post_edit_or_selection_change()

    assert controller._idle_timer.interval() == 500
    assert controller.is_timer_armed()


def test_manual_trigger_forces_short_rearm(controller):
    controller.on_post_edit_or_selection_change()

    controller.manual_begin()

    assert controller.is_timer_armed()
    assert controller._idle_timer.interval() == MANUAL_DELAY_MS
    assert controller.state is PopupState.TIMER_ARMED


def test_disabled_delay_only_allows_manual_trigger(qapp, engine, surface):
    controller = QuickHelpController(engine, surface, {"delay_ms": None})

    controller.on_post_edit_or_selection_change()
    assert not controller.is_timer_armed()

    controller.manual_begin()
    assert controller.is_timer_armed()
    controller.shutdown()


def test_timer_fire_shows_docs_below_cursor(controller, surface):
    shown = []
    controller.docShown.connect(shown.append)
    controller.on_post_edit_or_selection_change()

    _fire(controller)

    assert controller.state is PopupState.VISIBLE
    assert not controller.is_timer_armed()
    assert surface.texts["quickhelp"] == "Alpha docs."
    assert ("below", "quickhelp", 56) in surface.events
    assert shown == ["alpha"]


def test_selection_is_reread_when_timer_fires(controller, engine, surface):
    engine.index = 0
    controller.on_post_edit_or_selection_change()

    engine.index = 1
    controller.on_post_edit_or_selection_change()
    _fire(controller)

    assert surface.texts["quickhelp"] == "Beta docs."
    assert all(label == "beta" for label, _ in engine.calls)


def test_no_docs_hides_silently(qapp, surface):
    engine = FakeEngine([A], docs={})
    controller = QuickHelpController(engine, surface, {"delay_ms": 0})

    controller.on_post_edit_or_selection_change()
    _fire(controller)

    assert controller.state is PopupState.HIDDEN
    assert surface.count("write") == 0
    controller.shutdown()


def test_no_selection_hides(controller, engine, surface):
    engine.index = -1
    controller.on_post_edit_or_selection_change()
    _fire(controller)

    assert controller.state is PopupState.HIDDEN
    assert engine.calls == []


def test_render_failure_is_swallowed_and_hidden(controller, surface):
    messages = []
    controller.statusMessage.connect(messages.append)
    surface.fail_write = True

    controller.on_post_edit_or_selection_change()
    _fire(controller)

    assert controller.state is PopupState.HIDDEN
    assert surface.count("destroy") == 1
    assert len(messages) == 1
    assert "surface unavailable" in messages[0]


def test_backend_failure_is_swallowed(qapp, surface):
    def broken(_choose):
        raise ValueError("backend exploded")

    engine = FakeEngine([A], docs={"alpha": broken})
    controller = QuickHelpController(engine, surface)

    controller.manual_begin()
    _fire(controller)

    assert controller.state is PopupState.HIDDEN
    controller.shutdown()


def test_hide_request_cancels_timer_and_is_idempotent(controller, surface):
    controller.on_post_edit_or_selection_change()
    _fire(controller)

    controller.on_hide_requested()
    controller.on_hide_requested()

    assert controller.state is PopupState.HIDDEN
    assert not controller.is_timer_armed()
    assert surface.count("destroy") == 1


def test_hide_request_while_armed_stops_timer(controller, surface):
    controller.on_post_edit_or_selection_change()

    controller.on_hide_requested()

    assert not controller.is_timer_armed()
    assert controller.state is PopupState.HIDDEN
    assert surface.events == []


def test_focus_lost_while_visible_cancels_everything(controller, engine):
    controller.on_post_edit_or_selection_change()
    _fire(controller)
    assert controller.state is PopupState.VISIBLE

    controller.on_focus_lost()

    assert controller.state is PopupState.HIDDEN
    assert not controller.is_timer_armed()
    assert engine.cancelled == 1


def test_manual_trigger_while_visible_refetches(controller, engine, surface):
    controller.on_post_edit_or_selection_change()
    _fire(controller)
    engine.docs["alpha"] = "Fresh alpha docs."

    controller.manual_begin()
    assert controller.state is PopupState.TIMER_ARMED
    _fire(controller)

    assert controller.state is PopupState.VISIBLE
    assert surface.texts["quickhelp"] == "Fresh alpha docs."


def test_long_docs_are_truncated_with_marker(qapp, surface):
    body = "\n".join(f"line {n}" for n in range(100))
    engine = FakeEngine([A], docs={"alpha": body})
    controller = QuickHelpController(engine, surface, {"max_lines": 10})

    controller.manual_begin()
    _fire(controller)

    text = surface.texts["quickhelp"]
    assert text.endswith(TRUNCATION_MARKER)
    assert text[: -len(TRUNCATION_MARKER)].count("\n") == 9
    controller.shutdown()


def test_low_cursor_uses_overlay_released_on_hide(qapp, engine):
    surface = FakeSurface(cursor_row=30, viewport_height=50)
    controller = QuickHelpController(engine, surface)

    controller.manual_begin()
    _fire(controller)
    controller.on_hide_requested()

    assert surface.count("overlay") == 1
    assert surface.count("release") == 1
    assert surface.count("destroy") == 0
    controller.shutdown()


def test_disabling_hides_and_ignores_events(controller, surface):
    controller.on_post_edit_or_selection_change()
    _fire(controller)

    controller.set_enabled(False)
    controller.on_post_edit_or_selection_change()
    controller.manual_begin()

    assert controller.state is PopupState.HIDDEN
    assert not controller.is_timer_armed()
    assert surface.count("destroy") == 1


def test_state_changes_are_signalled(controller):
    states = []
    controller.stateChanged.connect(states.append)

    controller.on_post_edit_or_selection_change()
    _fire(controller)
    controller.on_hide_requested()

    assert states == ["timer_armed", "visible", "hidden"]


def _wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        QCoreApplication.processEvents()
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


def test_idle_timer_shows_docs_from_the_event_loop(qapp, engine, surface):
    ctrl = QuickHelpController(engine, surface, {"delay_ms": 20})
    try:
        ctrl.on_post_edit_or_selection_change()

        assert _wait_until(lambda: ctrl.state is PopupState.VISIBLE)
        assert surface.texts["quickhelp"] == "Alpha docs."
        assert not ctrl.is_timer_armed()
    finally:
        ctrl.shutdown()


def test_selection_change_during_delay_shows_new_candidate(qapp, engine, surface):
    ctrl = QuickHelpController(engine, surface, {"delay_ms": 50})
    try:
        ctrl.on_post_edit_or_selection_change()
        engine.index = 1
        ctrl.on_post_edit_or_selection_change()

        assert _wait_until(lambda: ctrl.state is PopupState.VISIBLE)
        assert surface.texts["quickhelp"] == "Beta docs."
        assert not any(label == "alpha" for label, _ in engine.calls)
    finally:
        ctrl.shutdown()
