"""Domain entity for an archive stored in the local library."""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class LibraryArchive:
    """Represents an archive file held in the library directory.

    Attributes:
        id: Content-addressed archive id, also the name of its directory.
        name: Filename the archive is stored under.
        archive_path: Absolute path to the archive file.
        source: URL or original path the archive came from.
        size: Size of the archive file in bytes.
        starred: Starred archives are never evicted.
        last_accessed: ISO-8601 timestamp of the last load.
    """

    id: str
    name: str
    archive_path: Path
    source: str
    size: int
    starred: bool
    last_accessed: str
