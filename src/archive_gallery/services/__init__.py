"""Services layer - gateways, presentation interfaces and settings."""

from archive_gallery.services.display_projector import DisplayProjector, build_display_name
from archive_gallery.services.history_gateway import HistoryError, HistoryGateway, HistoryView
from archive_gallery.services.library_gateway import (
    ArchiveLoadResult,
    DownloadProgress,
    LibraryError,
    LibraryGateway,
    LibraryUsage,
    ProgressBroadcaster,
    ProgressSubscription,
)
from archive_gallery.services.settings_manager import SettingsManager
from archive_gallery.services.status_notifier import (
    GalleryView,
    LibraryUsageDisplay,
    LocalArchiveDialog,
    StatusNotifier,
)

__all__ = [
    "DisplayProjector",
    "build_display_name",
    "HistoryError",
    "HistoryGateway",
    "HistoryView",
    "ArchiveLoadResult",
    "DownloadProgress",
    "LibraryError",
    "LibraryGateway",
    "LibraryUsage",
    "ProgressBroadcaster",
    "ProgressSubscription",
    "SettingsManager",
    "GalleryView",
    "LibraryUsageDisplay",
    "LocalArchiveDialog",
    "StatusNotifier",
]
