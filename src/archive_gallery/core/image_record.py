"""ImageRecord entity - a single image pulled out of an archive."""

import uuid
from dataclasses import dataclass, field
from typing import Optional


def new_image_id() -> str:
    """Return an opaque id that is unique for the lifetime of the process."""
    return uuid.uuid4().hex


@dataclass
class ImageRecord:
    """Represents one decoded image and, once merged, the archive it came from.

    The provenance fields (archive_name, original_archive_id) start empty and
    are stamped exactly once when the record is merged into a session.
    """

    name: str
    source: str
    width: int = 0
    height: int = 0
    payload: Optional[str] = None
    error: bool = False
    id: str = field(default_factory=new_image_id)
    archive_name: Optional[str] = None
    original_archive_id: Optional[str] = None

    @property
    def aspect_ratio(self) -> float:
        """Width divided by height, 0.0 for records without dimensions."""
        if self.height <= 0:
            return 0.0
        return self.width / self.height

    @property
    def is_stamped(self) -> bool:
        return self.original_archive_id is not None

    def stamp_provenance(self, archive_name: str, archive_id: str) -> None:
        """Link this record to its source archive.

        Raises:
            ValueError: if the record was already stamped.
        """
        if self.is_stamped:
            raise ValueError(
                f"Image '{self.name}' already belongs to archive {self.original_archive_id}"
            )
        self.archive_name = archive_name
        self.original_archive_id = archive_id
