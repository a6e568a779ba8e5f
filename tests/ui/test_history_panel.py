"""Tests for HistoryPanel rendering and signals."""

from unittest.mock import MagicMock, patch

import pytest
from PySide6.QtCore import QModelIndex, Qt
from PySide6.QtWidgets import QAbstractItemView, QApplication

from archive_gallery.core import HistoryEntry
from archive_gallery.services import HistoryView
from archive_gallery.ui import HistoryPanel


def ensure_qt_app():
    if QApplication.instance() is None:
        QApplication([])


def make_entry(key, starred=False):
    return HistoryEntry(
        id=f"h-{key}",
        name=f"{key}.zip",
        url=f"https://host/{key}.zip",
        image_count=4,
        last_accessed="2024-01-01T00:00:00+00:00",
        starred=starred,
    )


@pytest.fixture
def panel():
    ensure_qt_app()
    return HistoryPanel()


def test_panel_is_a_history_view(panel):
    assert isinstance(panel, HistoryView)


def test_empty_history_shows_placeholder(panel):
    panel.refresh_history([])

    assert panel.list_widget.count() == 0
    assert not panel.empty_label.isHidden()


def test_refresh_lists_entries_with_star_and_bold_selection(panel):
    entries = [make_entry("a", starred=True), make_entry("b")]

    panel.refresh_history(entries, selected_ids=["h-b"])

    assert panel.list_widget.count() == 2
    assert panel.list_widget.item(0).text() == "★ a.zip (4 images)"
    assert panel.list_widget.item(1).text() == "b.zip (4 images)"
    assert not panel.list_widget.item(0).font().bold()
    assert panel.list_widget.item(1).font().bold()
    assert panel.empty_label.isHidden()


def test_refresh_selects_highlighted_entry(panel):
    entries = [make_entry("a"), make_entry("b")]

    panel.refresh_history(entries, highlight_url="https://host/b.zip")

    assert panel.current_entry() == entries[1]


def test_click_emits_item_activated_after_double_click_interval(panel):
    entries = [make_entry("a")]
    panel.refresh_history(entries)
    received = MagicMock()
    panel.item_activated.connect(received)

    panel._on_item_clicked(panel.list_widget.item(0))

    received.assert_not_called()
    assert panel._click_timer.isActive()
    assert panel._click_timer.interval() == QApplication.doubleClickInterval()

    panel._click_timer.stop()
    panel._emit_pending_click()

    received.assert_called_once_with(entries[0])


def test_double_click_does_not_activate(panel):
    """The click that starts a double click never toggles the entry."""
    entries = [make_entry("a")]
    panel.refresh_history(entries)
    activated, opened = MagicMock(), MagicMock()
    panel.item_activated.connect(activated)
    panel.item_opened.connect(opened)

    panel._on_item_clicked(panel.list_widget.item(0))
    panel._on_item_double_clicked(panel.list_widget.item(0))
    panel._emit_pending_click()

    assert not panel._click_timer.isActive()
    activated.assert_not_called()
    opened.assert_called_once_with(entries[0])


def test_double_click_emits_item_opened(panel):
    entries = [make_entry("a")]
    panel.refresh_history(entries)
    received = MagicMock()
    panel.item_opened.connect(received)

    panel._on_item_double_clicked(panel.list_widget.item(0))

    received.assert_called_once_with(entries[0])


def test_star_and_delete_use_current_entry(panel):
    panel.refresh_history([make_entry("a")], select_id="h-a")
    starred, deleted = MagicMock(), MagicMock()
    panel.star_toggled.connect(starred)
    panel.delete_requested.connect(deleted)

    panel._on_star_clicked()
    panel._on_delete_clicked()

    starred.assert_called_once_with("h-a")
    deleted.assert_called_once_with("h-a")


def test_rename_emits_trimmed_name(panel):
    panel.refresh_history([make_entry("a")], select_id="h-a")
    renamed = MagicMock()
    panel.rename_requested.connect(renamed)

    with patch("archive_gallery.ui.history_panel.QInputDialog.getText", return_value=("  Trip  ", True)):
        panel._on_rename_clicked()

    renamed.assert_called_once_with("h-a", "Trip")


def test_actions_without_selection_do_nothing(panel):
    panel.refresh_history([make_entry("a")])
    panel.list_widget.setCurrentRow(-1)
    starred = MagicMock()
    panel.star_toggled.connect(starred)

    panel._on_star_clicked()

    starred.assert_not_called()


def test_entry_id_stored_on_items(panel):
    panel.refresh_history([make_entry("a")])

    assert panel.list_widget.item(0).data(Qt.UserRole) == "h-a"


def test_list_accepts_internal_drag(panel):
    assert panel.list_widget.dragDropMode() == QAbstractItemView.InternalMove


def test_moved_rows_emit_new_order(panel):
    panel.refresh_history([make_entry("a"), make_entry("b"), make_entry("c")])
    received = MagicMock()
    panel.reorder_requested.connect(received)

    moved = panel.list_widget.model().moveRows(QModelIndex(), 2, 1, QModelIndex(), 0)

    assert moved
    received.assert_called_once_with(["h-c", "h-a", "h-b"])
    assert panel.entry_ids() == ["h-c", "h-a", "h-b"]
