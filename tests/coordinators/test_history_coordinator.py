#!/usr/bin/env python3
"""
Tests for HistoryCoordinator - validates history panel actions and wiring.
"""

from unittest.mock import MagicMock

import pytest
from PySide6.QtWidgets import QApplication

from archive_gallery.coordinators import HistoryCoordinator
from archive_gallery.core import HistoryEntry
from archive_gallery.core.archive_urls import archive_id_from_url
from archive_gallery.services import HistoryError
from archive_gallery.ui import HistoryPanel


def ensure_qt_app():
    if QApplication.instance() is None:
        QApplication([])


ENTRY = HistoryEntry(
    id="h1",
    name="Trip.zip",
    url="file:///lib/abc/Trip.zip",
    image_count=12,
    last_accessed="2024-01-01T00:00:00+00:00",
)


@pytest.fixture
def coordinator():
    ensure_qt_app()
    repository = MagicMock()
    repository.get_entry.return_value = ENTRY
    return HistoryCoordinator(
        history_panel=HistoryPanel(),
        history_repository=repository,
        library=MagicMock(),
        session_controller=MagicMock(),
        main_window=MagicMock(),
    )


def test_history_coordinator_fails_fast_on_none_panel():
    """HistoryCoordinator should raise on None panel."""
    ensure_qt_app()

    with pytest.raises(ValueError, match="HistoryPanel must not be None"):
        HistoryCoordinator(
            history_panel=None,
            history_repository=MagicMock(),
            library=MagicMock(),
            session_controller=MagicMock(),
            main_window=MagicMock(),
        )


def test_history_coordinator_fails_fast_on_none_controller():
    """HistoryCoordinator should raise on None session controller."""
    ensure_qt_app()

    with pytest.raises(ValueError, match="SessionController must not be None"):
        HistoryCoordinator(
            history_panel=HistoryPanel(),
            history_repository=MagicMock(),
            library=MagicMock(),
            session_controller=None,
            main_window=MagicMock(),
        )


def test_show_history_refreshes_panel_and_usage(coordinator):
    coordinator.show_history()

    coordinator.session_controller.refresh_history.assert_called_once()
    coordinator.session_controller.update_library_info.assert_called_once()


def test_item_activated_signal_reaches_controller(coordinator):
    """A single click toggles the entry through the session controller."""
    coordinator.history_panel.item_activated.emit(ENTRY)

    coordinator.session_controller.handle_history_item_activated.assert_called_once_with(ENTRY)


def test_item_opened_loads_from_history(coordinator):
    coordinator.history_panel.item_opened.emit(ENTRY)

    coordinator.session_controller.load_from_history.assert_called_once_with(ENTRY)


def test_star_toggle_mirrors_library_flag(coordinator):
    coordinator.history_repository.toggle_star.return_value = True

    coordinator.history_panel.star_toggled.emit("h1")

    coordinator.history_repository.toggle_star.assert_called_once_with("h1")
    coordinator.library.set_starred.assert_called_once_with(archive_id_from_url(ENTRY.url), True)
    coordinator.session_controller.refresh_history.assert_called_once_with(select_id="h1")
    coordinator.session_controller.update_library_info.assert_called_once()


def test_star_toggle_failure_shows_error(coordinator):
    coordinator.history_repository.get_entry.side_effect = HistoryError("History item not found: h1")

    coordinator.handle_star_toggled("h1")

    coordinator.main_window.show_error.assert_called_once_with("Star Error", "History item not found: h1")
    coordinator.library.set_starred.assert_not_called()


def test_rename(coordinator):
    coordinator.history_repository.rename.return_value = True

    coordinator.history_panel.rename_requested.emit("h1", "Holiday")

    coordinator.history_repository.rename.assert_called_once_with("h1", "Holiday")
    coordinator.session_controller.refresh_history.assert_called_once_with(select_id="h1")


def test_ignored_rename_does_not_refresh(coordinator):
    coordinator.history_repository.rename.return_value = False

    coordinator.handle_rename_requested("h1", "  ")

    coordinator.session_controller.refresh_history.assert_not_called()


def test_delete_unloads_before_removing(coordinator):
    """A deleted entry's archive leaves the session first."""
    calls = []
    coordinator.session_controller.unload_archive_from_collection.side_effect = lambda entry: calls.append("unload")
    coordinator.history_repository.delete.side_effect = lambda entry_id: calls.append("delete")

    coordinator.history_panel.delete_requested.emit("h1")

    assert calls == ["unload", "delete"]
    coordinator.session_controller.unload_archive_from_collection.assert_called_once_with(ENTRY)
    coordinator.session_controller.refresh_history.assert_called_once()


def test_delete_failure_shows_error(coordinator):
    coordinator.history_repository.delete.side_effect = HistoryError("disk full")

    coordinator.handle_delete_requested("h1")

    coordinator.main_window.show_error.assert_called_once_with("Delete Error", "disk full")
    coordinator.session_controller.refresh_history.assert_not_called()


def test_clear(coordinator):
    coordinator.history_panel.clear_requested.emit()

    coordinator.history_repository.clear.assert_called_once()
    coordinator.session_controller.refresh_history.assert_called_once()


def test_dragged_order_is_persisted_then_refreshed(coordinator):
    """Dropping an entry in a new place stores the new order and redraws the panel from it."""
    calls = MagicMock()
    coordinator.history_repository.reorder = calls.reorder
    coordinator.session_controller.refresh_history = calls.refresh_history
    calls.reorder.return_value = True

    coordinator.history_panel.reorder_requested.emit(["h2", "h1", "h3"])

    assert [c[0] for c in calls.mock_calls] == ["reorder", "refresh_history"]
    calls.reorder.assert_called_once_with(["h2", "h1", "h3"])
    coordinator.main_window.show_error.assert_not_called()


def test_panel_drag_reaches_repository(coordinator):
    entries = [
        HistoryEntry(id=f"h{i}", name=f"{i}.zip", url=f"https://host/{i}.zip", image_count=1, last_accessed="t")
        for i in (1, 2, 3)
    ]
    panel = coordinator.history_panel
    panel.refresh_history(entries)

    panel.list_widget.insertItem(0, panel.list_widget.takeItem(2))
    panel._on_rows_moved()

    coordinator.history_repository.reorder.assert_called_once_with(["h3", "h1", "h2"])


def test_rejected_order_still_refreshes(coordinator):
    """A stale order is dropped and the panel snaps back to what storage holds."""
    coordinator.history_repository.reorder.return_value = False

    coordinator.handle_reorder_requested(["h1"])

    coordinator.session_controller.refresh_history.assert_called_once_with()
    coordinator.main_window.show_error.assert_not_called()


def test_reorder_failure_shows_error(coordinator):
    coordinator.history_repository.reorder.side_effect = HistoryError("locked")

    coordinator.handle_reorder_requested(["h1"])

    coordinator.main_window.show_error.assert_called_once_with("Reorder Error", "locked")
    coordinator.session_controller.refresh_history.assert_called_once_with()
