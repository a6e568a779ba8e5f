"""History panel - List of previously opened archives."""

from typing import Dict, Iterable, List, Optional

from PySide6.QtCore import Qt, QTimer, Signal
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QAbstractItemView,
    QApplication,
    QHBoxLayout,
    QInputDialog,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from archive_gallery.core import HistoryEntry
from archive_gallery.services import HistoryView


class HistoryPanel(QWidget):
    """Shows history entries and marks the ones that are in the session.

    Signals:
        item_activated: Single click; toggles the entry in the session.
            Held back for the double-click interval so that a double click
            only opens the entry.
        item_opened: Double click; replaces the session with the entry.
        star_toggled: Star button with the entry id.
        rename_requested: Rename button with the entry id and new name.
        delete_requested: Remove button with the entry id.
        clear_requested: Clear button.
        reorder_requested: Entries dragged into a new order; all entry ids
            in their new top-to-bottom order.
    """

    item_activated = Signal(object)
    item_opened = Signal(object)
    star_toggled = Signal(str)
    rename_requested = Signal(str, str)
    delete_requested = Signal(str)
    clear_requested = Signal()
    reorder_requested = Signal(list)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._entries: Dict[str, HistoryEntry] = {}
        self._pending_click: Optional[HistoryEntry] = None
        self._click_timer = QTimer(self)
        self._click_timer.setSingleShot(True)
        self._click_timer.timeout.connect(self._emit_pending_click)
        self._setup_ui()

    def _setup_ui(self):
        layout = QVBoxLayout(self)
        layout.setContentsMargins(5, 5, 5, 5)

        title = QLabel("History")
        title.setStyleSheet("QLabel { color: #ddd; font-size: 14px; font-weight: bold; }")
        layout.addWidget(title)

        self.list_widget = QListWidget()
        self.list_widget.itemClicked.connect(self._on_item_clicked)
        self.list_widget.itemDoubleClicked.connect(self._on_item_double_clicked)
        self.list_widget.setDragDropMode(QAbstractItemView.InternalMove)
        self.list_widget.model().rowsMoved.connect(self._on_rows_moved)
        layout.addWidget(self.list_widget)

        self.empty_label = QLabel("No history yet")
        self.empty_label.setAlignment(Qt.AlignCenter)
        self.empty_label.setStyleSheet("QLabel { color: #888; }")
        layout.addWidget(self.empty_label)

        buttons = QHBoxLayout()
        star_btn = QPushButton("Star")
        star_btn.clicked.connect(self._on_star_clicked)
        rename_btn = QPushButton("Rename")
        rename_btn.clicked.connect(self._on_rename_clicked)
        delete_btn = QPushButton("Remove")
        delete_btn.clicked.connect(self._on_delete_clicked)
        clear_btn = QPushButton("Clear")
        clear_btn.clicked.connect(self.clear_requested.emit)
        for button in (star_btn, rename_btn, delete_btn, clear_btn):
            buttons.addWidget(button)
        layout.addLayout(buttons)

    def refresh_history(
        self,
        entries: List[HistoryEntry],
        *,
        highlight_url: Optional[str] = None,
        select_id: Optional[str] = None,
        selected_ids: Iterable[str] = (),
    ) -> None:
        """Rebuild the list. Entries in the session are shown in bold."""
        selected = set(selected_ids)
        self._entries = {entry.id: entry for entry in entries}
        self.list_widget.clear()

        current_item = None
        for entry in entries:
            item = QListWidgetItem(self._label_for(entry))
            item.setData(Qt.UserRole, entry.id)
            if entry.id in selected:
                font = QFont()
                font.setBold(True)
                item.setFont(font)
            self.list_widget.addItem(item)
            if entry.id == select_id or (highlight_url and entry.url == highlight_url):
                current_item = item

        if current_item is not None:
            self.list_widget.setCurrentItem(current_item)
            self.list_widget.scrollToItem(current_item)

        self.empty_label.setVisible(not entries)

    def current_entry(self) -> Optional[HistoryEntry]:
        item = self.list_widget.currentItem()
        if item is None:
            return None
        return self._entries.get(item.data(Qt.UserRole))

    @staticmethod
    def _label_for(entry: HistoryEntry) -> str:
        star = "★ " if entry.starred else ""
        return f"{star}{entry.name} ({entry.image_count} images)"

    def entry_ids(self) -> List[str]:
        """Entry ids in the order they are currently listed."""
        return [self.list_widget.item(row).data(Qt.UserRole) for row in range(self.list_widget.count())]

    def _on_item_clicked(self, item: QListWidgetItem):
        entry = self._entries.get(item.data(Qt.UserRole))
        if entry is None:
            return
        self._pending_click = entry
        self._click_timer.start(QApplication.doubleClickInterval())

    def _emit_pending_click(self):
        entry, self._pending_click = self._pending_click, None
        if entry is not None:
            self.item_activated.emit(entry)

    def _on_item_double_clicked(self, item: QListWidgetItem):
        self._click_timer.stop()
        self._pending_click = None
        entry = self._entries.get(item.data(Qt.UserRole))
        if entry is not None:
            self.item_opened.emit(entry)

    def _on_rows_moved(self, *args):
        self.reorder_requested.emit(self.entry_ids())

    def _on_star_clicked(self):
        entry = self.current_entry()
        if entry is not None:
            self.star_toggled.emit(entry.id)

    def _on_rename_clicked(self):
        entry = self.current_entry()
        if entry is None:
            return
        new_name, ok = QInputDialog.getText(self, "Rename", "Archive name:", text=entry.name)
        if ok and new_name.strip():
            self.rename_requested.emit(entry.id, new_name.strip())

    def _on_delete_clicked(self):
        entry = self.current_entry()
        if entry is not None:
            self.delete_requested.emit(entry.id)


HistoryView.register(HistoryPanel)
