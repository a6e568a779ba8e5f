"""Domain layer - Pure entities and rules for archive sessions."""

from .errors import (
    ArchiveLoadError,
    EmptyUrlError,
    NoImagesFoundError,
    NotAnArchiveError,
    UnexpectedUserChoiceError,
    UserCancelled,
)
from .history_entry import HistoryEntry
from .image_record import ImageRecord, new_image_id
from .library_archive import LibraryArchive
from .session_state import OrderedIdSet, SessionState
from .settings import Settings

__all__ = [
    "ArchiveLoadError",
    "EmptyUrlError",
    "NotAnArchiveError",
    "NoImagesFoundError",
    "UnexpectedUserChoiceError",
    "UserCancelled",
    "HistoryEntry",
    "ImageRecord",
    "new_image_id",
    "LibraryArchive",
    "OrderedIdSet",
    "SessionState",
    "Settings",
]
