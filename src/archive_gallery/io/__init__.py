"""I/O layer - Data access for persistence and file operations."""

from .archive_library import ArchiveLibrary
from .database_manager import DatabaseManager
from .history_repository import HistoryRepository

__all__ = ["ArchiveLibrary", "DatabaseManager", "HistoryRepository"]
