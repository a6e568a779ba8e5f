"""Presentation-facing interfaces the session controller talks to."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

from archive_gallery.core import ImageRecord
from archive_gallery.core.archive_urls import format_bytes
from archive_gallery.services.library_gateway import DownloadProgress


@dataclass(frozen=True)
class LibraryUsageDisplay:
    """Library usage figures ready to show next to the capacity bar."""

    used_bytes: int
    limit_bytes: int
    starred_count: int

    @property
    def used_percentage(self) -> float:
        if self.limit_bytes <= 0:
            return 0.0
        return min(self.used_bytes / self.limit_bytes * 100, 100.0)

    @property
    def used_text(self) -> str:
        return format_bytes(self.used_bytes)

    @property
    def limit_text(self) -> str:
        return format_bytes(self.limit_bytes)


class StatusNotifier(ABC):
    """Receives status text and loading/progress events."""

    @abstractmethod
    def update_status(self, message: str, is_error: bool = False) -> None:
        pass

    @abstractmethod
    def show_loading(self, title: str, text: str, show_progress: bool = False) -> None:
        pass

    @abstractmethod
    def hide_loading(self) -> None:
        pass

    @abstractmethod
    def update_download_progress(self, progress: DownloadProgress) -> None:
        pass

    @abstractmethod
    def show_archive_loading(self) -> None:
        """Small busy indicator used for background loads."""

    @abstractmethod
    def hide_archive_loading(self) -> None:
        pass

    @abstractmethod
    def show_library_usage(self, usage: LibraryUsageDisplay) -> None:
        pass


class GalleryView(ABC):
    """Displays the merged image collection."""

    @abstractmethod
    def display_gallery(self, images: List[ImageRecord], display_name: str) -> None:
        pass

    @abstractmethod
    def show_welcome(self) -> None:
        pass

    @abstractmethod
    def is_gallery_visible(self) -> bool:
        pass

    @abstractmethod
    def scroll_to_image(self, index: int) -> None:
        pass


class LocalArchiveDialog(ABC):
    """Asks how a dropped archive should enter the library."""

    @abstractmethod
    def ask_move_to_library(self, archive_name: str) -> bool:
        """
        Ask whether to move (True) or copy (False) the archive into the library.

        Raises:
            UserCancelled: If the user dismissed the dialog.
        """
