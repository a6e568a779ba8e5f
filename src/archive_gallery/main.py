"""Main entry point for the archive gallery application."""

import logging
import os
import sys

from PySide6.QtWidgets import QApplication

from archive_gallery.coordinators import HistoryCoordinator, SessionController
from archive_gallery.core import SessionState
from archive_gallery.io import ArchiveLibrary, DatabaseManager, HistoryRepository
from archive_gallery.services import SettingsManager
from archive_gallery.ui import HistoryPanel, MainWindow


def main():
    """
    Bootstrap the application following the Composition Root pattern.
    This is the only place that knows how to instantiate and wire all components.
    """
    # 1. Configuration and logging
    settings_manager = SettingsManager()
    logging.basicConfig(
        level=os.getenv("ARCHIVE_GALLERY_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = settings_manager.load_settings()
    data_dir = settings_manager.data_dir()
    data_dir.mkdir(parents=True, exist_ok=True)

    # 2. Initialize Application
    app = QApplication(sys.argv)
    app.setApplicationName("Archive Gallery")
    app.setOrganizationName("ArchiveGallery")

    # 3. Initialize Infrastructure
    database = DatabaseManager(data_dir / "gallery.db")
    database.ensure_schema()
    history_repository = HistoryRepository(database.connection, max_items=settings.max_history_items)
    library = ArchiveLibrary(database.connection, data_dir / "library")

    # 4. Construct UI
    main_window = MainWindow()
    history_panel = HistoryPanel()
    main_window.set_history_panel(history_panel)

    # 5. Instantiate Coordinators (Dependency Injection)
    controller = SessionController(
        state=SessionState(settings=settings),
        library=library,
        history=history_repository,
        notifier=main_window,
        gallery=main_window,
        dialog=main_window,
        history_view=history_panel,
    )
    history_coordinator = HistoryCoordinator(
        history_panel=history_panel,
        history_repository=history_repository,
        library=library,
        session_controller=controller,
        main_window=main_window,
    )

    # 6. Signal Wiring (Connect UI signals to Controller slots)
    main_window.url_submitted.connect(controller.handle_url_submitted)
    main_window.local_archive_opened.connect(controller.handle_local_archive_dropped)
    main_window.navigate_requested.connect(controller.handle_navigate)

    # 7. Show UI and start event loop
    history_coordinator.show_history()
    main_window.show_welcome()
    main_window.show()

    try:
        return app.exec()
    finally:
        library.close()
        database.close()


if __name__ == "__main__":
    sys.exit(main())
