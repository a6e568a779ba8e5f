"""Session state - the archives currently merged into the viewing collection."""

from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional

from .history_entry import HistoryEntry
from .image_record import ImageRecord
from .settings import Settings


class OrderedIdSet:
    """Set of string ids that remembers insertion order.

    Load order matters for adjacency: the first member is the earliest
    loaded archive, the last member the most recent one.
    """

    def __init__(self, ids: Iterable[str] = ()):
        self._order: List[str] = []
        self._members: set = set()
        for item in ids:
            self.add(item)

    def add(self, item: str) -> None:
        if item not in self._members:
            self._members.add(item)
            self._order.append(item)

    def discard(self, item: str) -> None:
        if item in self._members:
            self._members.remove(item)
            self._order.remove(item)

    def clear(self) -> None:
        self._order.clear()
        self._members.clear()

    def first(self) -> Optional[str]:
        return self._order[0] if self._order else None

    def last(self) -> Optional[str]:
        return self._order[-1] if self._order else None

    def __contains__(self, item: object) -> bool:
        return item in self._members

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._order))

    def __len__(self) -> int:
        return len(self._order)

    def __bool__(self) -> bool:
        return bool(self._order)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, OrderedIdSet):
            return self._order == other._order
        if isinstance(other, (set, frozenset)):
            return self._members == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"OrderedIdSet({self._order!r})"


@dataclass
class SessionState:
    """Canonical in-memory record of what is displayed and selected.

    Invariant: current_images is empty iff loaded_archive_ids is empty iff
    current_archive_id is None, and every image's original_archive_id is in
    loaded_archive_ids.
    """

    settings: Settings = field(default_factory=Settings)
    current_images: List[ImageRecord] = field(default_factory=list)
    current_index: int = 0
    loaded_archive_ids: OrderedIdSet = field(default_factory=OrderedIdSet)
    current_archive_id: Optional[str] = None
    selected_history_items: OrderedIdSet = field(default_factory=OrderedIdSet)
    history_items: List[HistoryEntry] = field(default_factory=list)
    is_archive_loading: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.current_images

    def replace_with(
        self,
        archive_id: str,
        images: List[ImageRecord],
        history_id: Optional[str] = None,
    ) -> None:
        """Make a single archive the whole session."""
        self.current_images = list(images)
        self.current_index = 0
        self.loaded_archive_ids.clear()
        self.selected_history_items.clear()
        self.loaded_archive_ids.add(archive_id)
        if history_id is not None:
            self.selected_history_items.add(history_id)
        self.current_archive_id = archive_id

    def append_images(self, images: List[ImageRecord]) -> None:
        self.current_images = self.current_images + list(images)

    def prepend_images(self, images: List[ImageRecord]) -> None:
        """Insert images at the head, keeping the viewed image in place."""
        self.current_images = list(images) + self.current_images
        self.current_index += len(images)

    def add_archive(self, archive_id: str, history_id: Optional[str] = None) -> None:
        self.loaded_archive_ids.add(archive_id)
        if history_id is not None:
            self.selected_history_items.add(history_id)
        self.current_archive_id = archive_id

    def image_archive_id(self, image: ImageRecord) -> Optional[str]:
        return image.original_archive_id or self.current_archive_id

    def remove_archive(self, archive_id: str, history_id: Optional[str] = None) -> int:
        """Drop an archive and every image stamped with it.

        Returns the number of images removed.
        """
        self.loaded_archive_ids.discard(archive_id)
        if history_id is not None:
            self.selected_history_items.discard(history_id)

        before = len(self.current_images)
        removed_before_index = sum(
            1
            for image in self.current_images[: self.current_index]
            if self.image_archive_id(image) == archive_id
        )
        self.current_images = [
            image for image in self.current_images if self.image_archive_id(image) != archive_id
        ]
        self.current_index = max(0, min(self.current_index - removed_before_index, len(self.current_images) - 1))

        if self.current_archive_id == archive_id:
            self.current_archive_id = self.loaded_archive_ids.first()
        return before - len(self.current_images)

    def reset(self) -> None:
        """Return to the empty (welcome) state."""
        self.current_images = []
        self.current_index = 0
        self.loaded_archive_ids.clear()
        self.selected_history_items.clear()
        self.current_archive_id = None

    def is_consistent(self) -> bool:
        has_images = bool(self.current_images)
        has_archives = bool(self.loaded_archive_ids)
        has_current = self.current_archive_id is not None
        if not (has_images == has_archives == has_current):
            return False
        if has_current and self.current_archive_id not in self.loaded_archive_ids:
            return False
        return all(image.original_archive_id in self.loaded_archive_ids for image in self.current_images)
