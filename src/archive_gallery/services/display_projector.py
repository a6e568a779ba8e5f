"""Display Projector - derives the gallery title from the session."""

import logging
from typing import Iterable

from archive_gallery.core import ImageRecord, SessionState
from archive_gallery.core.archive_urls import DEFAULT_ARCHIVE_NAME
from archive_gallery.services.status_notifier import GalleryView

logger = logging.getLogger(__name__)


def build_display_name(images: Iterable[ImageRecord]) -> str:
    """Name for a collection: the archive name, or "<N> Archives" when mixed."""
    names = []
    for image in images:
        if image.archive_name and image.archive_name not in names:
            names.append(image.archive_name)
    if not names:
        return DEFAULT_ARCHIVE_NAME
    if len(names) == 1:
        return names[0]
    return f"{len(names)} Archives"


class DisplayProjector:
    """Pushes the current session to the gallery view."""

    def __init__(self, gallery: GalleryView):
        if gallery is None:
            raise ValueError("GalleryView must not be None")
        self.gallery = gallery

    def refresh(self, state: SessionState) -> None:
        """Redraw the gallery, falling back to the welcome screen when empty."""
        if not state.current_images or not state.is_consistent():
            if state.current_images:
                logger.warning("Session state inconsistent, resetting to welcome screen")
            state.reset()
            self.gallery.show_welcome()
            return

        display_name = build_display_name(state.current_images)
        logger.debug("Displaying %d images as '%s'", len(state.current_images), display_name)
        self.gallery.display_gallery(list(state.current_images), display_name)
