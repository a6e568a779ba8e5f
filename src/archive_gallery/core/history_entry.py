"""Domain entity for persisted archive history."""

from dataclasses import dataclass

LIBRARY_URL_PREFIX = "file://"


@dataclass(frozen=True)
class HistoryEntry:
    """Represents an archive the user has opened before.

    Attributes:
        id: Unique identifier assigned by the history store.
        name: Display name of the archive.
        url: Remote URL, or file:// URL for archives held in the library.
        image_count: Number of images found when the archive was last loaded.
        last_accessed: ISO-8601 timestamp of the last load.
        starred: Starred entries survive history trimming and library eviction.
    """

    id: str
    name: str
    url: str
    image_count: int
    last_accessed: str
    starred: bool = False

    @property
    def is_library_resident(self) -> bool:
        return self.url.startswith(LIBRARY_URL_PREFIX)

    @property
    def library_path(self) -> str:
        """Filesystem path of a library-resident archive."""
        return self.url[len(LIBRARY_URL_PREFIX):]
