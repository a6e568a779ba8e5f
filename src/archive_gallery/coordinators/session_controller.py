"""Session Controller - Central coordinator for the multi-archive viewing session."""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple

from PySide6.QtCore import QObject, Slot

from archive_gallery.core import (
    EmptyUrlError,
    HistoryEntry,
    ImageRecord,
    NoImagesFoundError,
    NotAnArchiveError,
    SessionState,
    UnexpectedUserChoiceError,
    UserCancelled,
)
from archive_gallery.core.archive_urls import (
    archive_id_from_url,
    derive_filename_from_url,
    is_archive_file,
    is_archive_url,
    library_archive_id,
)
from archive_gallery.services import (
    ArchiveLoadResult,
    DisplayProjector,
    GalleryView,
    HistoryGateway,
    HistoryView,
    LibraryGateway,
    LibraryUsageDisplay,
    LocalArchiveDialog,
    StatusNotifier,
)

logger = logging.getLogger(__name__)

LOAD_ERRORS = (RuntimeError, OSError)


class SessionController(QObject):
    """
    Owns the viewing session.

    Decides which archives are loaded, merges their images into one
    collection, and loads neighbouring archives from history on demand.
    Every mutating operation is single-flight: while one load is running,
    further requests are dropped rather than queued.
    """

    def __init__(
        self,
        state: SessionState,
        library: LibraryGateway,
        history: HistoryGateway,
        notifier: StatusNotifier,
        gallery: GalleryView,
        dialog: LocalArchiveDialog,
        history_view: Optional[HistoryView] = None,
        projector: Optional[DisplayProjector] = None,
    ):
        super().__init__()

        if state is None:
            raise ValueError("SessionState must not be None")
        if library is None:
            raise ValueError("LibraryGateway must not be None")
        if history is None:
            raise ValueError("HistoryGateway must not be None")
        if notifier is None:
            raise ValueError("StatusNotifier must not be None")
        if gallery is None:
            raise ValueError("GalleryView must not be None")
        if dialog is None:
            raise ValueError("LocalArchiveDialog must not be None")

        self.state = state
        self.library = library
        self.history = history
        self.notifier = notifier
        self.gallery = gallery
        self.dialog = dialog
        self.history_view = history_view
        self.projector = projector or DisplayProjector(gallery)

    # ------------------------------------------------------------------
    # Single-flight guard
    # ------------------------------------------------------------------

    @property
    def is_loading(self) -> bool:
        return self.state.is_archive_loading

    @contextmanager
    def _archive_loading(self):
        self.state.is_archive_loading = True
        try:
            yield
        finally:
            self.state.is_archive_loading = False

    def _busy(self, operation: str) -> bool:
        if self.state.is_archive_loading:
            logger.debug("Dropping %s, another archive is loading", operation)
            return True
        return False

    # ------------------------------------------------------------------
    # Replace-the-session loads
    # ------------------------------------------------------------------

    def load_archive_by_url(
        self,
        url: str,
        *,
        update_history: bool = False,
        show_loading_overlay: bool = False,
    ) -> Optional[ArchiveLoadResult]:
        """
        Replace the session with the archive at a URL.

        Args:
            url: Archive URL.
            update_history: Append a history entry on success.
            show_loading_overlay: Show the download overlay with progress.

        Returns:
            The load result, or None if another load was in flight.

        Raises:
            EmptyUrlError, NotAnArchiveError, NoImagesFoundError, or the
            library's RuntimeError. The error is reported as status first.
        """
        if self._busy("URL load"):
            return None

        with self._archive_loading():
            try:
                url = (url or "").strip()
                if not url:
                    raise EmptyUrlError()
                if not is_archive_url(url):
                    raise NotAnArchiveError(url)

                capacity = self.state.settings.library_size_gb
                if show_loading_overlay:
                    self.notifier.show_loading(
                        "Downloading Archive",
                        "This may take a moment for large files...",
                        show_progress=True,
                    )
                    self.notifier.update_status("Downloading...")
                    with self.library.subscribe_progress(self.notifier.update_download_progress):
                        result = self.library.load_by_url(url, capacity)
                else:
                    result = self.library.load_by_url(url, capacity)

                filename = derive_filename_from_url(url)
                if not result.images:
                    raise NoImagesFoundError(filename)

                self._stamp(result.images, filename, result.archive_id)
                self.state.replace_with(result.archive_id, result.images)
                self.projector.refresh(self.state)

                if update_history:
                    self._add_to_history(filename, url, len(result.images))
                self.refresh_history(highlight_url=url)
                self.update_library_info()
                self.notifier.update_status(f"Loaded {len(result.images)} images")
                logger.info("Loaded %s (%d images)", url, len(result.images))
                return result
            except Exception as e:
                self.notifier.update_status(f"Error: {e}", is_error=True)
                raise
            finally:
                if show_loading_overlay:
                    self.notifier.hide_loading()

    def open_local_archive(
        self, path: Path, display_name: Optional[str] = None
    ) -> Optional[List[ImageRecord]]:
        """
        Replace the session with a dropped or picked archive file.

        The user first chooses whether the file is moved or copied into the
        library. Cancelling that prompt returns None without an error.

        Raises:
            UnexpectedUserChoiceError, NoImagesFoundError, OSError when the
            file cannot be read, or the library's RuntimeError.
        """
        if self._busy("local archive load"):
            return None

        path = Path(path)
        display_name = display_name or path.name

        with self._archive_loading():
            try:
                self.notifier.show_loading("Processing Archive", "Reading file data...")
                try:
                    move_to_library = self.dialog.ask_move_to_library(display_name)
                except UserCancelled:
                    self.notifier.update_status("Archive loading cancelled")
                    return None

                data = path.read_bytes()

                self.notifier.show_loading("Extracting Archive", "Processing archive data...")
                result = self.library.load_local_file(
                    data,
                    self.state.settings.library_size_gb,
                    copy_to_library=not move_to_library,
                    name=display_name,
                )

                if result.needs_user_choice:
                    raise UnexpectedUserChoiceError()

                images = result.images
                if not images:
                    raise NoImagesFoundError(display_name)

                # The original is only deleted once the stored copy is known to be viewable.
                if result.already_in_library:
                    self.notifier.update_status("Archive was already in library")
                else:
                    if move_to_library:
                        self._remove_moved_source(path)
                    self.notifier.update_status(
                        "Archive copied to library" if result.was_copied else "Archive moved to library"
                    )

                archive_id = result.archive_id or archive_id_from_url(f"file://{display_name}")
                self._stamp(images, display_name, archive_id)
                self.state.replace_with(archive_id, images)
                self.projector.refresh(self.state)

                if result.library_archive_path:
                    history_url = f"file://{result.library_archive_path}"
                else:
                    history_url = f"archive://{archive_id}"
                self._add_to_history(display_name, history_url, len(images))
                self.refresh_history(highlight_url=history_url)
                self.update_library_info()
                self.notifier.update_status(f"Loaded {len(images)} images from local file")
                return images
            except Exception as e:
                self.notifier.update_status(f"Error: {e}", is_error=True)
                raise
            finally:
                self.notifier.hide_loading()

    def load_from_history(self, entry: HistoryEntry) -> bool:
        """
        Replace the session with a history entry's archive.

        Library-resident entries load from disk; remote entries go through
        load_archive_by_url without adding a duplicate history record.
        Errors are reported as status and never raised.
        """
        if not entry.is_library_resident:
            try:
                result = self.load_archive_by_url(
                    entry.url, update_history=False, show_loading_overlay=True
                )
            except LOAD_ERRORS as e:
                logger.warning("Failed to load %s from history: %s", entry.url, e)
                return False
            return result is not None

        if self._busy("history load"):
            return False

        with self._archive_loading():
            try:
                result, _ = self._load_entry(entry)
                if not result.images:
                    raise NoImagesFoundError(entry.name)

                archive_id = archive_id_from_url(entry.url)
                self._stamp(result.images, entry.name, archive_id)
                self.state.replace_with(archive_id, result.images, history_id=entry.id)
                self.projector.refresh(self.state)
                self.refresh_history(select_id=entry.id)
                self.notifier.update_status(f"Loaded {len(result.images)} images from library")
                return True
            except LOAD_ERRORS as e:
                logger.warning("Failed to load %s from library: %s", entry.name, e)
                self.notifier.update_status(f"Error loading from library: {e}", is_error=True)
                return False

    # ------------------------------------------------------------------
    # Collection membership
    # ------------------------------------------------------------------

    def add_archive_to_collection(self, entry: HistoryEntry) -> bool:
        """
        Add a history entry's archive to the session.

        An empty (or hidden) session is replaced; otherwise the images are
        appended and the viewed position is left alone.

        Returns:
            True if images were added, False if the request was dropped or
            the archive is already part of the session.

        Raises:
            NoImagesFoundError or the library's RuntimeError; the session is
            left as it was.
        """
        if self._busy("add to collection"):
            return False
        if archive_id_from_url(entry.url) in self.state.loaded_archive_ids:
            logger.debug("%s is already in the session", entry.name)
            return False

        with self._archive_loading():
            self.notifier.show_archive_loading()
            self.notifier.update_status(f"Loading {entry.name}...")
            try:
                result, archive_id = self._load_entry(entry)
                images = result.images
                if not images:
                    raise NoImagesFoundError(entry.name)

                self._stamp(images, entry.name, archive_id)
                if self.state.is_empty or not self.gallery.is_gallery_visible():
                    self.state.replace_with(archive_id, images, history_id=entry.id)
                else:
                    self.state.append_images(images)
                    self.state.add_archive(archive_id, history_id=entry.id)

                self.projector.refresh(self.state)
                self.refresh_history(select_id=entry.id)
                self.notifier.update_status(f"Added {len(images)} images from {entry.name}")
                return True
            except Exception as e:
                logger.warning("Failed to load %s: %s", entry.name, e)
                self.notifier.update_status(f"Failed to load {entry.name}: {e}", is_error=True)
                raise
            finally:
                self.notifier.hide_archive_loading()

    def unload_archive_from_collection(self, entry: HistoryEntry) -> bool:
        """
        Remove a history entry's archive and all of its images from the session.

        Returns:
            True if the archive was part of the session and got removed.
        """
        if self._busy("unload"):
            return False

        archive_id = archive_id_from_url(entry.url)
        if archive_id not in self.state.loaded_archive_ids:
            return False

        removed = self.state.remove_archive(archive_id, history_id=entry.id)
        logger.debug("Unloaded %s (%d images)", entry.name, removed)

        self.projector.refresh(self.state)
        self.refresh_history()
        return True

    # ------------------------------------------------------------------
    # Adjacent archives
    # ------------------------------------------------------------------

    def find_adjacent_archive(self, direction: int) -> Optional[HistoryEntry]:
        """
        Find the history entry next to the loaded archives.

        With several archives loaded, the search starts from the most
        recently loaded one going forward, or the first loaded one going
        backward. Entries whose archive is already loaded are never returned.

        Args:
            direction: +1 for the next entry in history order, -1 for the previous.
        """
        step = 1 if direction > 0 else -1
        try:
            history = self.state.history_items or self.history.load_all()
        except LOAD_ERRORS as e:
            logger.warning("Failed to read history for adjacency: %s", e)
            return None
        if not history:
            return None

        loaded = self.state.loaded_archive_ids
        if len(loaded) > 1:
            anchor = loaded.last() if step > 0 else loaded.first()
        else:
            anchor = loaded.first()
        if anchor is None:
            return None

        history_ids = [archive_id_from_url(item.url) for item in history]
        try:
            position = history_ids.index(anchor)
        except ValueError:
            return None

        adjacent = position + step
        if not 0 <= adjacent < len(history):
            return None
        if history_ids[adjacent] in loaded:
            return None
        return history[adjacent]

    def load_adjacent_archive(self, direction: int) -> bool:
        """
        Load the neighbouring history archive into the session.

        Going backward prepends its images (and shifts current_index so the
        same image stays in view); going forward appends them.

        Returns:
            True if an archive was loaded. Failures are reported as status
            and treated like "nothing found".
        """
        if not self.state.settings.auto_load_adjacent_archives:
            return False
        if self._busy("adjacent load"):
            return False

        with self._archive_loading():
            try:
                item = self.find_adjacent_archive(direction)
                if item is None:
                    return False

                self.notifier.show_archive_loading()
                result, archive_id = self._load_entry(item)
                images = result.images
                if not images:
                    return False

                self._stamp(images, item.name, archive_id)
                if direction > 0:
                    self.state.append_images(images)
                else:
                    self.state.prepend_images(images)
                self.state.add_archive(archive_id, history_id=item.id)

                self.projector.refresh(self.state)
                self.refresh_history(highlight_url=item.url, select_id=item.id)
                self.notifier.update_status(f"Auto-loaded: {item.name} ({len(images)} images)")
                return True
            except Exception as e:
                logger.warning("Error in adjacent archive load: %s", e)
                self.notifier.update_status(f"Failed to load adjacent archive: {e}", is_error=True)
                return False
            finally:
                self.notifier.hide_archive_loading()

    def navigate(self, direction: int) -> bool:
        """
        Step to the next or previous image, pulling in an adjacent archive
        when stepping past either end of the collection.

        Returns:
            True if the viewed image changed.
        """
        step = 1 if direction > 0 else -1
        new_index = self.state.current_index + step
        auto_load = self.state.settings.auto_load_adjacent_archives

        if new_index < 0 and auto_load:
            if self.load_adjacent_archive(-1):
                # Prepending shifted current_index onto the same image.
                return self._show_index(self.state.current_index - 1)
        elif new_index >= len(self.state.current_images) and auto_load:
            if self.load_adjacent_archive(1):
                return self._show_index(new_index)

        return self._show_index(new_index)

    def _show_index(self, index: int) -> bool:
        if not 0 <= index < len(self.state.current_images):
            return False
        self.state.current_index = index
        self.gallery.scroll_to_image(index)
        self.notifier.update_status(f"Image {index + 1} of {len(self.state.current_images)}")
        return True

    # ------------------------------------------------------------------
    # History and library display
    # ------------------------------------------------------------------

    def refresh_history(
        self, highlight_url: Optional[str] = None, select_id: Optional[str] = None
    ) -> None:
        """Reload the cached history and redraw the history view."""
        try:
            self.state.history_items = self.history.load_all()
        except LOAD_ERRORS as e:
            logger.warning("Failed to refresh history: %s", e)
            return

        for item in self.state.history_items:
            if archive_id_from_url(item.url) in self.state.loaded_archive_ids:
                self.state.selected_history_items.add(item.id)

        if self.history_view is not None:
            self.history_view.refresh_history(
                self.state.history_items,
                highlight_url=highlight_url,
                select_id=select_id,
                selected_ids=list(self.state.selected_history_items),
            )

    def update_library_info(self) -> None:
        """Push current library usage to the notifier."""
        try:
            usage = self.library.usage_stats()
        except LOAD_ERRORS as e:
            logger.warning("Failed to update library info: %s", e)
            return
        self.notifier.show_library_usage(
            LibraryUsageDisplay(
                used_bytes=usage.total_archive_size,
                limit_bytes=self.state.settings.library_limit_bytes,
                starred_count=usage.starred_count,
            )
        )

    # ------------------------------------------------------------------
    # UI slots
    # ------------------------------------------------------------------

    @Slot(str)
    def handle_url_submitted(self, url: str):
        """Handle a URL typed or pasted by the user."""
        try:
            self.load_archive_by_url(url, update_history=True, show_loading_overlay=True)
        except LOAD_ERRORS as e:
            logger.info("URL load failed: %s", e)

    @Slot(Path)
    def handle_local_archive_dropped(self, path: Path):
        """Handle an archive file dropped on or picked in the main window."""
        if not is_archive_file(path.name):
            self.notifier.update_status(f"Not a supported archive: {path.name}", is_error=True)
            return
        try:
            self.open_local_archive(path)
        except LOAD_ERRORS as e:
            logger.info("Local archive load failed: %s", e)

    @Slot(object)
    def handle_history_item_activated(self, entry: HistoryEntry):
        """Add the activated history entry to the session, or drop it if present."""
        if archive_id_from_url(entry.url) in self.state.loaded_archive_ids:
            self.unload_archive_from_collection(entry)
            return
        try:
            self.add_archive_to_collection(entry)
        except LOAD_ERRORS as e:
            logger.info("Add to collection failed: %s", e)

    @Slot(int)
    def handle_navigate(self, direction: int):
        self.navigate(direction)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load_entry(self, entry: HistoryEntry) -> Tuple[ArchiveLoadResult, str]:
        capacity = self.state.settings.library_size_gb
        if entry.is_library_resident:
            result = self.library.load_local_file(
                Path(entry.library_path),
                capacity,
                copy_to_library=True,
                archive_id=library_archive_id(entry.url),
            )
        else:
            result = self.library.load_by_url(entry.url, capacity)
        return result, result.archive_id or archive_id_from_url(entry.url)

    @staticmethod
    def _stamp(images: List[ImageRecord], archive_name: str, archive_id: str) -> None:
        for image in images:
            image.stamp_provenance(archive_name, archive_id)

    def _add_to_history(self, name: str, url: str, image_count: int) -> None:
        try:
            self.history.append(
                name=name,
                url=url,
                image_count=image_count,
                last_accessed=datetime.now(timezone.utc).isoformat(),
            )
        except LOAD_ERRORS as e:
            logger.warning("Failed to add to history: %s", e)

    @staticmethod
    def _remove_moved_source(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Archive copied but original could not be removed: %s", e)
