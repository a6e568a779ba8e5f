"""SQLite connection and schema for history and the archive library index."""

import sqlite3
from pathlib import Path
from typing import Union


class DatabaseManager:
    """Owns the SQLite connection and schema shared by the repositories."""

    def __init__(self, db_path: Union[Path, str]) -> None:
        self.db_path = db_path if db_path == ":memory:" else Path(db_path)
        self.connection = sqlite3.connect(str(self.db_path))
        self.connection.row_factory = sqlite3.Row
        self.connection.execute("PRAGMA foreign_keys = ON;")

    def ensure_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        cur = self.connection.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS history (
                position INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                name TEXT NOT NULL,
                url TEXT NOT NULL UNIQUE,
                image_count INTEGER NOT NULL DEFAULT 0,
                last_accessed TEXT NOT NULL,
                starred INTEGER NOT NULL DEFAULT 0
            );
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS library_archives (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                archive_path TEXT NOT NULL,
                source TEXT NOT NULL DEFAULT '',
                size INTEGER NOT NULL DEFAULT 0,
                starred INTEGER NOT NULL DEFAULT 0,
                last_accessed TEXT NOT NULL
            );
            """
        )
        cur.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_history_last_accessed
            ON history(last_accessed);
            """
        )
        self.connection.commit()

    def close(self) -> None:
        self.connection.close()
