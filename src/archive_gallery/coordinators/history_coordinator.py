"""History Coordinator - Orchestrates history panel actions and their persistence."""

import logging

from PySide6.QtCore import QObject, Slot

from archive_gallery.core import HistoryEntry
from archive_gallery.core.archive_urls import archive_id_from_url
from archive_gallery.io import ArchiveLibrary, HistoryRepository
from archive_gallery.ui import HistoryPanel, MainWindow

from .session_controller import SessionController

logger = logging.getLogger(__name__)


class HistoryCoordinator(QObject):
    """Manages the history panel.

    Responsibilities:
    - Toggle entries in and out of the session (single click)
    - Replace the session with an entry (double click)
    - Star, rename, remove and clear entries
    - Persist the order entries are dragged into
    - Keep the library star flag in step with the history star
    """

    def __init__(
        self,
        history_panel: HistoryPanel,
        history_repository: HistoryRepository,
        library: ArchiveLibrary,
        session_controller: SessionController,
        main_window: MainWindow,
    ):
        super().__init__()

        if history_panel is None:
            raise ValueError("HistoryPanel must not be None")
        if history_repository is None:
            raise ValueError("HistoryRepository must not be None")
        if library is None:
            raise ValueError("ArchiveLibrary must not be None")
        if session_controller is None:
            raise ValueError("SessionController must not be None")
        if main_window is None:
            raise ValueError("MainWindow must not be None")

        self.history_panel = history_panel
        self.history_repository = history_repository
        self.library = library
        self.session_controller = session_controller
        self.main_window = main_window

        # Wire history panel signals
        self.history_panel.item_activated.connect(self.session_controller.handle_history_item_activated)
        self.history_panel.item_opened.connect(self.handle_item_opened)
        self.history_panel.star_toggled.connect(self.handle_star_toggled)
        self.history_panel.rename_requested.connect(self.handle_rename_requested)
        self.history_panel.delete_requested.connect(self.handle_delete_requested)
        self.history_panel.clear_requested.connect(self.handle_clear_requested)
        self.history_panel.reorder_requested.connect(self.handle_reorder_requested)

    def show_history(self):
        """Load history into the panel and show current library usage."""
        self.session_controller.refresh_history()
        self.session_controller.update_library_info()

    @Slot(object)
    def handle_item_opened(self, entry: HistoryEntry):
        """Replace the session with the double-clicked entry."""
        self.session_controller.load_from_history(entry)

    @Slot(str)
    def handle_star_toggled(self, entry_id: str):
        """Flip an entry's star and mirror it on the library archive.

        Args:
            entry_id: History entry id.
        """
        try:
            entry = self.history_repository.get_entry(entry_id)
            starred = self.history_repository.toggle_star(entry_id)
            self.library.set_starred(archive_id_from_url(entry.url), starred)
        except RuntimeError as e:
            self.main_window.show_error("Star Error", str(e))
            return

        self.session_controller.refresh_history(select_id=entry_id)
        self.session_controller.update_library_info()

    @Slot(str, str)
    def handle_rename_requested(self, entry_id: str, new_name: str):
        """Handle when user renames a history entry.

        Args:
            entry_id: History entry id.
            new_name: New display name.
        """
        try:
            renamed = self.history_repository.rename(entry_id, new_name)
        except RuntimeError as e:
            self.main_window.show_error("Rename Error", str(e))
            return
        if not renamed:
            logger.info("Rename of %s ignored", entry_id)
            return
        self.session_controller.refresh_history(select_id=entry_id)

    @Slot(str)
    def handle_delete_requested(self, entry_id: str):
        """Remove an entry from history, unloading its archive from the session first."""
        try:
            entry = self.history_repository.get_entry(entry_id)
        except RuntimeError as e:
            self.main_window.show_error("Delete Error", str(e))
            return

        self.session_controller.unload_archive_from_collection(entry)
        try:
            self.history_repository.delete(entry_id)
        except RuntimeError as e:
            self.main_window.show_error("Delete Error", str(e))
            return
        self.session_controller.refresh_history()

    @Slot()
    def handle_clear_requested(self):
        """Clear all non-starred history entries."""
        try:
            self.history_repository.clear()
        except RuntimeError as e:
            self.main_window.show_error("Clear History Error", str(e))
            return
        self.session_controller.refresh_history()

    @Slot(list)
    def handle_reorder_requested(self, entry_ids: list):
        """Persist the order the user dragged the entries into.

        History order also decides which archive navigation pulls in next.
        The panel is always rebuilt from storage, so a rejected order snaps back.
        """
        try:
            if not self.history_repository.reorder(entry_ids):
                logger.info("History reorder ignored, ids no longer match storage")
        except RuntimeError as e:
            self.main_window.show_error("Reorder Error", str(e))
        self.session_controller.refresh_history()
