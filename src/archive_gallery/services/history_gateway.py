"""History Gateway - persisted archive history and its presentation sink."""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from archive_gallery.core import HistoryEntry


class HistoryError(RuntimeError):
    """Raised when the history store cannot be read or written."""


class HistoryGateway(ABC):
    """
    Abstract history store.

    The order returned by load_all() is the adjacency axis used by the
    session; callers never sort it themselves.
    """

    @abstractmethod
    def append(self, name: str, url: str, image_count: int, last_accessed: str) -> None:
        """Record that an archive was opened."""

    @abstractmethod
    def load_all(self) -> List[HistoryEntry]:
        """Return every history entry in display order."""


class HistoryView(ABC):
    """Presentation of the history list."""

    @abstractmethod
    def refresh_history(
        self,
        entries: List[HistoryEntry],
        *,
        highlight_url: Optional[str] = None,
        select_id: Optional[str] = None,
        selected_ids: Iterable[str] = (),
    ) -> None:
        """Redraw the history list, marking archives that are in the session."""
