"""Library Gateway - abstract access to the local archive library."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Union

from archive_gallery.core import ImageRecord


class LibraryError(RuntimeError):
    """Raised when the library cannot download, store or extract an archive."""


@dataclass
class ArchiveLoadResult:
    """Images extracted from one archive plus what the library did with it."""

    archive_id: str
    images: List[ImageRecord] = field(default_factory=list)
    was_copied: bool = False
    already_in_library: bool = False
    needs_user_choice: bool = False
    library_archive_path: Optional[str] = None


@dataclass(frozen=True)
class LibraryUsage:
    total_archive_size: int
    starred_count: int


@dataclass(frozen=True)
class DownloadProgress:
    """Download progress; total is None when the server sends no length."""

    progress: float
    downloaded: int
    total: Optional[int] = None


ProgressCallback = Callable[[DownloadProgress], None]


class ProgressSubscription:
    """Handle for a registered progress callback.

    Use it as a context manager so the callback is removed on every exit path.
    """

    def __init__(self, unsubscribe: Callable[[], None]):
        self._unsubscribe = unsubscribe
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def close(self) -> None:
        if self._active:
            self._active = False
            self._unsubscribe()

    def __enter__(self) -> "ProgressSubscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class ProgressBroadcaster:
    """Keeps the set of progress callbacks for a gateway implementation."""

    def __init__(self):
        self._callbacks: List[ProgressCallback] = []

    def subscribe(self, callback: ProgressCallback) -> ProgressSubscription:
        self._callbacks.append(callback)
        return ProgressSubscription(lambda: self._callbacks.remove(callback))

    def publish(self, progress: DownloadProgress) -> None:
        for callback in list(self._callbacks):
            callback(progress)

    def __len__(self) -> int:
        return len(self._callbacks)


class LibraryGateway(ABC):
    """
    Abstract archive library.

    Implementations own archive identity and on-disk capacity enforcement.
    All methods raise LibraryError (or another RuntimeError) on failure.
    """

    @abstractmethod
    def load_by_url(self, url: str, capacity_gb: float) -> ArchiveLoadResult:
        """
        Load a remote archive, downloading it into the library if needed.

        Args:
            url: Archive URL.
            capacity_gb: Library size limit in gigabytes.

        Returns:
            ArchiveLoadResult with the extracted images.
        """

    @abstractmethod
    def load_local_file(
        self,
        source: Union[Path, bytes],
        capacity_gb: float,
        *,
        copy_to_library: Optional[bool],
        archive_id: Optional[str] = None,
        name: Optional[str] = None,
    ) -> ArchiveLoadResult:
        """
        Load a local archive file or its raw bytes.

        Args:
            source: Path to the archive, or its content.
            capacity_gb: Library size limit in gigabytes.
            copy_to_library: True to copy, False to move, None if the user
                has not decided yet (the result then has needs_user_choice set).
            archive_id: Known library id, for archives already in the library.
            name: Filename to store the archive under.
        """

    @abstractmethod
    def usage_stats(self) -> LibraryUsage:
        """Current library usage."""

    @abstractmethod
    def subscribe_progress(self, callback: ProgressCallback) -> ProgressSubscription:
        """Register a download progress callback until the handle is closed."""
