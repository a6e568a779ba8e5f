"""
Archive Gallery - A viewer for image collections stored in archives.

This package provides a desktop application for browsing archives with:
- A size-bounded local library of downloaded and dropped archives
- Persisted history of opened archives
- Sessions that merge several archives into one collection
- Automatic loading of the previous/next archive in history order
"""

__version__ = "0.1.0"

# Make key components available at package level
from archive_gallery.core import HistoryEntry, ImageRecord, SessionState, Settings

__all__ = [
    "HistoryEntry",
    "ImageRecord",
    "SessionState",
    "Settings",
]
