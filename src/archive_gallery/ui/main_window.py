"""Main Window - Application shell with URL bar, gallery and status area."""

from pathlib import Path
from typing import List, Optional

from PySide6.QtCore import QSize, Qt, Signal
from PySide6.QtGui import QAction, QDragEnterEvent, QDropEvent, QIcon, QKeyEvent
from PySide6.QtWidgets import (
    QApplication,
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListView,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QProgressBar,
    QProgressDialog,
    QPushButton,
    QSplitter,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from archive_gallery.core import ImageRecord, UserCancelled
from archive_gallery.core.archive_urls import format_bytes
from archive_gallery.services import (
    DownloadProgress,
    GalleryView,
    LibraryUsageDisplay,
    LocalArchiveDialog,
    StatusNotifier,
)

THUMBNAIL_SIZE = 160


class MainWindow(QMainWindow):
    """Provides the application shell and implements the controller's view interfaces."""

    # Signal emitted when the user submits an archive URL
    url_submitted = Signal(str)
    # Signal emitted when an archive file is dropped or picked
    local_archive_opened = Signal(Path)
    # Signal for image navigation (+1 / -1)
    navigate_requested = Signal(int)

    def __init__(self):
        super().__init__()
        self.setWindowTitle("Archive Gallery")
        self.setGeometry(100, 100, 1200, 800)
        self.setAcceptDrops(True)

        self._loading_dialog: Optional[QProgressDialog] = None
        self._setup_ui()
        self._create_menu_bar()

    def _setup_ui(self):
        """Initialize the main UI layout."""
        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        layout = QVBoxLayout(central_widget)
        layout.setContentsMargins(5, 5, 5, 5)

        # URL bar
        url_row = QHBoxLayout()
        self.url_input = QLineEdit()
        self.url_input.setPlaceholderText("Archive URL (.zip, .rar, .7z)")
        self.url_input.returnPressed.connect(self._on_load_clicked)
        self.load_btn = QPushButton("Load")
        self.load_btn.clicked.connect(self._on_load_clicked)
        url_row.addWidget(self.url_input)
        url_row.addWidget(self.load_btn)
        layout.addLayout(url_row)

        self.splitter = QSplitter(Qt.Horizontal)
        layout.addWidget(self.splitter, stretch=1)

        # Welcome / gallery stack
        self.stack = QStackedWidget()
        self.welcome_label = QLabel("Drop an archive here or enter a URL above")
        self.welcome_label.setAlignment(Qt.AlignCenter)
        self.welcome_label.setStyleSheet("QLabel { color: #888; font-size: 18px; }")

        gallery_page = QWidget()
        gallery_layout = QVBoxLayout(gallery_page)
        gallery_layout.setContentsMargins(0, 0, 0, 0)
        self.gallery_title = QLabel()
        self.gallery_title.setStyleSheet("QLabel { font-size: 16px; font-weight: bold; }")
        self.gallery_list = QListWidget()
        self.gallery_list.setViewMode(QListView.IconMode)
        self.gallery_list.setIconSize(QSize(THUMBNAIL_SIZE, THUMBNAIL_SIZE))
        self.gallery_list.setResizeMode(QListView.Adjust)
        gallery_layout.addWidget(self.gallery_title)
        gallery_layout.addWidget(self.gallery_list)

        self.stack.addWidget(self.welcome_label)
        self.stack.addWidget(gallery_page)
        self._gallery_page = gallery_page
        self.splitter.addWidget(self.stack)

        # Status row: text, busy indicator, library usage
        status_row = QHBoxLayout()
        self.status_label = QLabel("Ready")
        self.archive_loading_label = QLabel("Loading archive...")
        self.archive_loading_label.hide()
        self.library_label = QLabel()
        self.library_bar = QProgressBar()
        self.library_bar.setRange(0, 100)
        self.library_bar.setMaximumWidth(200)
        self.library_bar.setTextVisible(False)
        status_row.addWidget(self.status_label, stretch=1)
        status_row.addWidget(self.archive_loading_label)
        status_row.addWidget(self.library_label)
        status_row.addWidget(self.library_bar)
        layout.addLayout(status_row)

    def _create_menu_bar(self):
        """Create the application menu bar."""
        menu_bar = self.menuBar()
        file_menu = menu_bar.addMenu("&File")

        open_action = QAction("&Open Archive...", self)
        open_action.setShortcut("Ctrl+O")
        open_action.triggered.connect(self._on_open_archive)
        file_menu.addAction(open_action)

        file_menu.addSeparator()

        exit_action = QAction("E&xit", self)
        exit_action.setShortcut("Ctrl+Q")
        exit_action.triggered.connect(self.close)
        file_menu.addAction(exit_action)

    def set_history_panel(self, panel: QWidget):
        """Place the history panel beside the gallery."""
        self.splitter.insertWidget(0, panel)
        self.splitter.setStretchFactor(1, 1)

    # ------------------------------------------------------------------
    # StatusNotifier
    # ------------------------------------------------------------------

    def update_status(self, message: str, is_error: bool = False) -> None:
        self.status_label.setText(message)
        self.status_label.setStyleSheet(f"QLabel {{ color: {'#ff6b6b' if is_error else '#ccc'}; }}")

    def show_loading(self, title: str, text: str, show_progress: bool = False) -> None:
        if self._loading_dialog is None:
            self._loading_dialog = QProgressDialog(self)
            self._loading_dialog.setWindowModality(Qt.WindowModal)
            self._loading_dialog.setCancelButton(None)
            self._loading_dialog.setMinimumDuration(0)
        self._loading_dialog.setWindowTitle(title)
        self._loading_dialog.setLabelText(text)
        # A 0..0 range shows an indeterminate bar.
        self._loading_dialog.setRange(0, 100 if show_progress else 0)
        self._loading_dialog.setValue(0)
        self._loading_dialog.show()
        self.load_btn.setEnabled(False)

    def hide_loading(self) -> None:
        if self._loading_dialog is not None:
            self._loading_dialog.hide()
        self.load_btn.setEnabled(True)

    def update_download_progress(self, progress: DownloadProgress) -> None:
        if self._loading_dialog is None or not self._loading_dialog.isVisible():
            return
        self._loading_dialog.setValue(round(progress.progress))
        if progress.total:
            downloaded_mb = progress.downloaded / (1024 * 1024)
            total_mb = progress.total / (1024 * 1024)
            self._loading_dialog.setLabelText(f"Downloaded {downloaded_mb:.1f} MB of {total_mb:.1f} MB")
        else:
            self._loading_dialog.setLabelText(f"Downloaded {format_bytes(progress.downloaded)}")
        QApplication.processEvents()

    def show_archive_loading(self) -> None:
        self.archive_loading_label.show()

    def hide_archive_loading(self) -> None:
        self.archive_loading_label.hide()

    def show_library_usage(self, usage: LibraryUsageDisplay) -> None:
        self.library_label.setText(
            f"{usage.used_text} / {usage.limit_text} ({usage.starred_count} starred)"
        )
        self.library_bar.setValue(round(usage.used_percentage))

    # ------------------------------------------------------------------
    # GalleryView
    # ------------------------------------------------------------------

    def display_gallery(self, images: List[ImageRecord], display_name: str) -> None:
        self.gallery_title.setText(f"{display_name} ({len(images)} images)")
        self.gallery_list.clear()
        for image in images:
            label = image.name if image.error else f"{image.name}\n{image.width} x {image.height}"
            item = QListWidgetItem(label)
            if image.payload and not image.error:
                item.setIcon(QIcon(image.payload))
            item.setToolTip(image.archive_name or "")
            self.gallery_list.addItem(item)
        self.stack.setCurrentWidget(self._gallery_page)

    def show_welcome(self) -> None:
        self.gallery_list.clear()
        self.stack.setCurrentWidget(self.welcome_label)
        self.url_input.clear()
        self.update_status("Ready")

    def is_gallery_visible(self) -> bool:
        return self.stack.currentWidget() is self._gallery_page

    def scroll_to_image(self, index: int) -> None:
        item = self.gallery_list.item(index)
        if item is not None:
            self.gallery_list.setCurrentItem(item)
            self.gallery_list.scrollToItem(item, QListWidget.PositionAtCenter)

    # ------------------------------------------------------------------
    # LocalArchiveDialog
    # ------------------------------------------------------------------

    def ask_move_to_library(self, archive_name: str) -> bool:
        box = QMessageBox(self)
        box.setWindowTitle("Add to Library")
        box.setText(f"How should \"{archive_name}\" be added to the library?")
        move_btn = box.addButton("Move", QMessageBox.AcceptRole)
        copy_btn = box.addButton("Copy", QMessageBox.AcceptRole)
        box.addButton(QMessageBox.Cancel)
        box.exec()

        clicked = box.clickedButton()
        if clicked is move_btn:
            return True
        if clicked is copy_btn:
            return False
        raise UserCancelled()

    def show_error(self, title: str, message: str):
        """Display an error message to the user."""
        QMessageBox.critical(self, title, message)

    # ------------------------------------------------------------------
    # Qt events
    # ------------------------------------------------------------------

    def _on_load_clicked(self):
        self.url_submitted.emit(self.url_input.text())

    def _on_open_archive(self):
        file_path, _ = QFileDialog.getOpenFileName(
            self,
            "Open Archive",
            str(Path.home()),
            "Archives (*.zip *.rar *.7z)",
        )
        if file_path:
            self.local_archive_opened.emit(Path(file_path))

    def dragEnterEvent(self, event: QDragEnterEvent):
        if event.mimeData().hasUrls():
            event.acceptProposedAction()

    def dropEvent(self, event: QDropEvent):
        for url in event.mimeData().urls():
            if url.isLocalFile():
                self.local_archive_opened.emit(Path(url.toLocalFile()))
                break

    def keyPressEvent(self, event: QKeyEvent):
        """Left/right arrows step through images."""
        if event.key() == Qt.Key.Key_Left:
            self.navigate_requested.emit(-1)
        elif event.key() == Qt.Key.Key_Right:
            self.navigate_requested.emit(1)
        else:
            super().keyPressEvent(event)


StatusNotifier.register(MainWindow)
GalleryView.register(MainWindow)
LocalArchiveDialog.register(MainWindow)
