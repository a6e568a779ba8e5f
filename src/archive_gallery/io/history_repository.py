"""Data access layer for archive history persistence."""

import logging
import sqlite3
import uuid
from typing import List, Sequence

from archive_gallery.core import HistoryEntry
from archive_gallery.services.history_gateway import HistoryError, HistoryGateway

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITEMS = 100


class HistoryRepository(HistoryGateway):
    """Manages persistence of history entries in the database.

    Entries are unique by URL. load_all() returns the most recently added
    entry first; re-opening an archive updates its entry in place, so its
    position in that order does not change.

    All operations raise HistoryError on database failure.
    """

    def __init__(self, connection: sqlite3.Connection, max_items: int = DEFAULT_MAX_ITEMS) -> None:
        """Initialize repository with database connection.

        Args:
            connection: SQLite connection with the history schema created.
            max_items: Maximum number of entries kept (starred entries always stay).

        Raises:
            RuntimeError: If connection is None.
        """
        if connection is None:
            raise RuntimeError("Database connection required")
        self.connection = connection
        self.connection.row_factory = sqlite3.Row
        self.max_items = max_items

    def append(self, name: str, url: str, image_count: int, last_accessed: str) -> None:
        """Add an entry, or refresh the existing entry for the same URL.

        Raises:
            HistoryError: If the database write fails.
        """
        try:
            cur = self.connection.cursor()
            cur.execute(
                """
                INSERT INTO history (id, name, url, image_count, last_accessed, starred)
                VALUES (?, ?, ?, ?, ?, 0)
                ON CONFLICT(url) DO UPDATE SET
                    name = excluded.name,
                    image_count = excluded.image_count,
                    last_accessed = excluded.last_accessed
                """,
                (uuid.uuid4().hex, name, url, image_count, last_accessed),
            )
            self._trim(cur)
            self.connection.commit()
        except sqlite3.Error as e:
            raise HistoryError(f"Failed to add history entry: {e}") from e
        logger.debug("Recorded history entry for %s", url)

    def load_all(self) -> List[HistoryEntry]:
        """Retrieve all history entries, newest first.

        Raises:
            HistoryError: If the database query fails.
        """
        try:
            cur = self.connection.cursor()
            cur.execute(
                """
                SELECT id, name, url, image_count, last_accessed, starred
                FROM history
                ORDER BY position DESC
                """
            )
            return [self._row_to_entry(row) for row in cur.fetchall()]
        except sqlite3.Error as e:
            raise HistoryError(f"Failed to load history: {e}") from e

    def get_entry(self, entry_id: str) -> HistoryEntry:
        """Retrieve one entry by id.

        Raises:
            HistoryError: If the entry does not exist.
        """
        try:
            cur = self.connection.cursor()
            cur.execute(
                """
                SELECT id, name, url, image_count, last_accessed, starred
                FROM history
                WHERE id = ?
                """,
                (entry_id,),
            )
            row = cur.fetchone()
        except sqlite3.Error as e:
            raise HistoryError(f"Failed to retrieve history entry: {e}") from e
        if row is None:
            raise HistoryError(f"History item not found: {entry_id}")
        return self._row_to_entry(row)

    def toggle_star(self, entry_id: str) -> bool:
        """Flip the starred flag of an entry and return the new value.

        Raises:
            HistoryError: If the entry does not exist or the write fails.
        """
        entry = self.get_entry(entry_id)
        starred = not entry.starred
        self._execute(
            "UPDATE history SET starred = ? WHERE id = ?",
            (int(starred), entry_id),
            "Failed to update star",
        )
        return starred

    def rename(self, entry_id: str, new_name: str) -> bool:
        """Rename an entry. Returns False if the name is blank or the entry is unknown."""
        if not new_name or not new_name.strip():
            return False
        rowcount = self._execute(
            "UPDATE history SET name = ? WHERE id = ?",
            (new_name.strip(), entry_id),
            "Failed to rename history entry",
        )
        return rowcount > 0

    def reorder(self, entry_ids: Sequence[str]) -> bool:
        """Reorder history so load_all() returns entries in the given order.

        The ids must be a permutation of the stored ids; otherwise nothing
        changes and False is returned.
        """
        current = [entry.id for entry in self.load_all()]
        if len(entry_ids) != len(current) or set(entry_ids) != set(current):
            return False

        total = len(entry_ids)
        try:
            cur = self.connection.cursor()
            # Two passes keep the primary key unique while positions move.
            for offset, entry_id in enumerate(entry_ids):
                cur.execute(
                    "UPDATE history SET position = ? WHERE id = ?",
                    (-(offset + 1), entry_id),
                )
            for offset, entry_id in enumerate(entry_ids):
                cur.execute(
                    "UPDATE history SET position = ? WHERE id = ?",
                    (total - offset, entry_id),
                )
            self.connection.commit()
        except sqlite3.Error as e:
            self.connection.rollback()
            raise HistoryError(f"Failed to reorder history: {e}") from e
        return True

    def delete(self, entry_id: str) -> None:
        """Remove one entry.

        Raises:
            HistoryError: If the entry does not exist or the write fails.
        """
        rowcount = self._execute(
            "DELETE FROM history WHERE id = ?",
            (entry_id,),
            "Failed to delete history entry",
        )
        if rowcount == 0:
            raise HistoryError(f"History item not found: {entry_id}")

    def clear(self) -> None:
        """Remove every entry that is not starred."""
        self._execute("DELETE FROM history WHERE starred = 0", (), "Failed to clear history")

    def _trim(self, cur: sqlite3.Cursor) -> None:
        cur.execute("SELECT COUNT(*) FROM history")
        if cur.fetchone()[0] <= self.max_items:
            return
        cur.execute("SELECT COUNT(*) FROM history WHERE starred = 1")
        keep = max(self.max_items - cur.fetchone()[0], 0)
        cur.execute(
            """
            DELETE FROM history
            WHERE starred = 0 AND id NOT IN (
                SELECT id FROM history
                WHERE starred = 0
                ORDER BY last_accessed DESC, position DESC
                LIMIT ?
            )
            """,
            (keep,),
        )
        if cur.rowcount:
            logger.info("Trimmed %d history entries", cur.rowcount)

    def _execute(self, sql: str, params: tuple, failure: str) -> int:
        try:
            cur = self.connection.cursor()
            cur.execute(sql, params)
            self.connection.commit()
            return cur.rowcount
        except sqlite3.Error as e:
            raise HistoryError(f"{failure}: {e}") from e

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> HistoryEntry:
        """Convert database row to HistoryEntry entity."""
        return HistoryEntry(
            id=row["id"],
            name=row["name"],
            url=row["url"],
            image_count=row["image_count"],
            last_accessed=row["last_accessed"],
            starred=bool(row["starred"]),
        )
