import pytest

from quickhelp.demo import DemoWindow
from quickhelp.settings_store import JsonSettingsStore


@pytest.fixture
def store(tmp_path):
    settings = JsonSettingsStore(tmp_path / "quickhelp" / "settings.json")
    settings.load()
    return settings


@pytest.fixture
def window(qapp, store):
    win = DemoWindow(store)
    yield win
    win.editor.quickhelp.shutdown()
    win.deleteLater()


def test_persist_settings_writes_current_values(window, store):
    window.editor.apply_settings({"max_lines": 7})

    assert window.persist_settings() is True
    assert window.persist_settings() is False

    reloaded = JsonSettingsStore(store.path)
    reloaded.load()
    assert reloaded.quickhelp_settings()["max_lines"] == 7


def test_toggle_quickhelp_flips_enabled(window):
    assert window.editor.quickhelp.is_enabled()

    window.toggle_quickhelp()
    assert not window.editor.quickhelp.is_enabled()

    window.toggle_quickhelp()
    assert window.editor.quickhelp.is_enabled()
