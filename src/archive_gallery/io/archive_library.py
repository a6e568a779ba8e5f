"""Archive Library - size-bounded local store of downloaded and dropped archives.

Archives live under <library_dir>/<archive_id>/<filename>. URL archives are
identified by the md5 of their URL, local archives by the md5 of their
content. An SQLite index tracks size, star flag and last access, which drive
eviction when the library grows past its capacity.

Fail-fast philosophy: methods raise LibraryError on failure.
"""

import hashlib
import logging
import lzma
import re
import shutil
import sqlite3
import tempfile
import zipfile
import zlib
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

import httpx
import py7zr
import rarfile
from py7zr.exceptions import ArchiveError as SevenZipError, PasswordRequired
from PySide6.QtGui import QImageReader

from archive_gallery.core import ImageRecord, LibraryArchive
from archive_gallery.core.archive_urls import derive_filename_from_url, is_archive_file, url_digest
from archive_gallery.core.settings import BYTES_PER_GB
from archive_gallery.services.library_gateway import (
    ArchiveLoadResult,
    DownloadProgress,
    LibraryError,
    LibraryGateway,
    LibraryUsage,
    ProgressBroadcaster,
    ProgressCallback,
    ProgressSubscription,
)

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp"}
DOWNLOAD_TIMEOUT = httpx.Timeout(30.0, read=120.0)
CHUNK_SIZE = 64 * 1024


def natural_sort_key(name: str):
    """Sort key that orders "page2" before "page10"."""
    return [int(part) if part.isdigit() else part.lower() for part in re.split(r"(\d+)", name)]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# Truncated or damaged member data surfaces as decompressor errors rather than
# as the container format's own exception.
CORRUPT_ARCHIVE_ERRORS = (
    zipfile.BadZipFile,
    rarfile.Error,
    SevenZipError,
    PasswordRequired,
    zlib.error,
    lzma.LZMAError,
    EOFError,
    NotImplementedError,
)

Member = Tuple[str, bytes]


def _is_image_member(name: str) -> bool:
    return not name.startswith("__MACOSX/") and Path(name).suffix.lower() in IMAGE_EXTENSIONS


def _read_zip_members(archive_path: Path) -> List[Member]:
    with zipfile.ZipFile(archive_path) as zf:
        return [
            (info.filename, zf.read(info))
            for info in zf.infolist()
            if not info.is_dir() and _is_image_member(info.filename)
        ]


def _read_rar_members(archive_path: Path) -> List[Member]:
    with rarfile.RarFile(str(archive_path)) as rf:
        return [
            (info.filename, rf.read(info))
            for info in rf.infolist()
            if not info.is_dir() and _is_image_member(info.filename)
        ]


def _read_7z_members(archive_path: Path) -> List[Member]:
    with tempfile.TemporaryDirectory(prefix="archive-gallery-7z-") as scratch:
        with py7zr.SevenZipFile(archive_path, mode="r") as sz:
            sz.extractall(path=scratch)
        root = Path(scratch)
        return [
            (path.relative_to(root).as_posix(), path.read_bytes())
            for path in root.rglob("*")
            if path.is_file() and _is_image_member(path.relative_to(root).as_posix())
        ]


_MEMBER_READERS: Dict[str, Callable[[Path], List[Member]]] = {
    ".zip": _read_zip_members,
    ".rar": _read_rar_members,
    ".7z": _read_7z_members,
}


class ArchiveLibrary(LibraryGateway):
    """Stores archives on disk and extracts their images on demand."""

    def __init__(
        self,
        connection: sqlite3.Connection,
        library_dir: Path,
        extract_dir: Optional[Path] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        if connection is None:
            raise RuntimeError("Database connection required")
        self.connection = connection
        self.connection.row_factory = sqlite3.Row
        self.library_dir = Path(library_dir)
        self.library_dir.mkdir(parents=True, exist_ok=True)
        self.extract_dir = (
            Path(extract_dir) if extract_dir else Path(tempfile.gettempdir()) / "archive-gallery"
        )
        self.extract_dir.mkdir(parents=True, exist_ok=True)
        self._client = client or httpx.Client(timeout=DOWNLOAD_TIMEOUT, follow_redirects=True)
        self._progress = ProgressBroadcaster()

    # ------------------------------------------------------------------
    # LibraryGateway
    # ------------------------------------------------------------------

    def load_by_url(self, url: str, capacity_gb: float) -> ArchiveLoadResult:
        archive_id = url_digest(url)
        existing = self._get_archive(archive_id)
        if existing is not None:
            if existing.archive_path.exists():
                logger.info("Loading %s from library", url)
                self._touch(archive_id)
                return ArchiveLoadResult(
                    archive_id=archive_id,
                    images=self._extract(archive_id, existing.archive_path),
                    already_in_library=True,
                    library_archive_path=str(existing.archive_path),
                )
            logger.warning("Library archive %s is missing on disk, downloading again", archive_id)
            self._delete_record(archive_id)

        filename = derive_filename_from_url(url)
        archive_path = self._archive_path(archive_id, filename)
        self._download(url, archive_path)

        return ArchiveLoadResult(
            archive_id=archive_id,
            images=self._store_new(archive_id, filename, archive_path, url, capacity_gb),
            library_archive_path=str(archive_path),
        )

    def load_local_file(
        self,
        source: Union[Path, bytes],
        capacity_gb: float,
        *,
        copy_to_library: Optional[bool],
        archive_id: Optional[str] = None,
        name: Optional[str] = None,
    ) -> ArchiveLoadResult:
        if archive_id:
            known = self._load_known(archive_id)
            if known is not None:
                return known

        if isinstance(source, Path) and self._is_inside_library(source):
            return self._register_library_file(source, capacity_gb)

        if copy_to_library is None:
            return ArchiveLoadResult(archive_id=archive_id or "", needs_user_choice=True)

        filename = name or (source.name if isinstance(source, Path) else "archive.zip")
        if not is_archive_file(filename):
            raise LibraryError(f"Not a supported archive file: {filename}")

        try:
            data = source.read_bytes() if isinstance(source, Path) else bytes(source)
        except OSError as e:
            raise LibraryError(f"Failed to read archive: {e}") from e

        content_id = hashlib.md5(data).hexdigest()
        known = self._load_known(content_id)
        if known is not None:
            return known

        archive_path = self._archive_path(content_id, filename)
        try:
            archive_path.write_bytes(data)
        except OSError as e:
            raise LibraryError(f"Failed to store archive in library: {e}") from e

        origin = str(source) if isinstance(source, Path) else filename
        images = self._store_new(content_id, filename, archive_path, origin, capacity_gb)
        if isinstance(source, Path) and not copy_to_library:
            try:
                source.unlink()
            except OSError as e:
                logger.warning("Could not remove moved archive %s: %s", source, e)
        logger.info("%s %s into library", "Copied" if copy_to_library else "Moved", filename)

        return ArchiveLoadResult(
            archive_id=content_id,
            images=images,
            was_copied=bool(copy_to_library),
            library_archive_path=str(archive_path),
        )

    def usage_stats(self) -> LibraryUsage:
        archives = self.list_archives()
        return LibraryUsage(
            total_archive_size=sum(archive.size for archive in archives if not archive.starred),
            starred_count=sum(1 for archive in archives if archive.starred),
        )

    def subscribe_progress(self, callback: ProgressCallback) -> ProgressSubscription:
        return self._progress.subscribe(callback)

    # ------------------------------------------------------------------
    # Library management
    # ------------------------------------------------------------------

    def list_archives(self) -> List[LibraryArchive]:
        """All indexed archives, most recently accessed first."""
        try:
            cur = self.connection.cursor()
            cur.execute(
                """
                SELECT id, name, archive_path, source, size, starred, last_accessed
                FROM library_archives
                ORDER BY last_accessed DESC
                """
            )
            return [self._row_to_archive(row) for row in cur.fetchall()]
        except sqlite3.Error as e:
            raise LibraryError(f"Failed to read library index: {e}") from e

    def set_starred(self, archive_id: str, starred: bool) -> bool:
        """Mark an archive as starred. Returns False if it is not in the library."""
        try:
            cur = self.connection.cursor()
            cur.execute(
                "UPDATE library_archives SET starred = ? WHERE id = ?",
                (int(starred), archive_id),
            )
            self.connection.commit()
            return cur.rowcount > 0
        except sqlite3.Error as e:
            raise LibraryError(f"Failed to update star: {e}") from e

    def clear(self) -> int:
        """Delete every non-starred archive. Returns how many were removed."""
        removed = 0
        for archive in self.list_archives():
            if not archive.starred:
                self._remove_archive(archive)
                removed += 1
        logger.info("Cleared %d archives from library", removed)
        return removed

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load_known(self, archive_id: str) -> Optional[ArchiveLoadResult]:
        archive = self._get_archive(archive_id)
        if archive is None or not archive.archive_path.exists():
            return None
        self._touch(archive_id)
        return ArchiveLoadResult(
            archive_id=archive_id,
            images=self._extract(archive_id, archive.archive_path),
            already_in_library=True,
            library_archive_path=str(archive.archive_path),
        )

    def _is_inside_library(self, path: Path) -> bool:
        try:
            path.resolve().relative_to(self.library_dir.resolve())
        except ValueError:
            return False
        return path.exists()

    def _register_library_file(self, path: Path, capacity_gb: float) -> ArchiveLoadResult:
        archive_id = path.parent.name
        images = self._extract(archive_id, path)
        if self._get_archive(archive_id) is None:
            logger.info("Re-indexing library archive %s", archive_id)
            self._insert_archive(archive_id, path.name, path, source=str(path))
            self._manage_capacity(capacity_gb)
        else:
            self._touch(archive_id)
        return ArchiveLoadResult(
            archive_id=archive_id,
            images=images,
            already_in_library=True,
            library_archive_path=str(path),
        )

    def _archive_path(self, archive_id: str, filename: str) -> Path:
        safe_name = Path(filename).name or "archive.zip"
        archive_dir = self.library_dir / archive_id
        try:
            archive_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LibraryError(f"Failed to create library directory: {e}") from e
        return archive_dir / safe_name

    def _download(self, url: str, target: Path) -> None:
        partial = target.with_name(target.name + ".part")
        try:
            with self._client.stream("GET", url) as response:
                response.raise_for_status()
                length = response.headers.get("Content-Length")
                total = int(length) if length and length.isdigit() else None
                downloaded = 0
                with open(partial, "wb") as f:
                    for chunk in response.iter_bytes(CHUNK_SIZE):
                        f.write(chunk)
                        downloaded += len(chunk)
                        percent = downloaded / total * 100 if total else 0.0
                        self._progress.publish(DownloadProgress(percent, downloaded, total))
            partial.replace(target)
        except httpx.HTTPError as e:
            partial.unlink(missing_ok=True)
            raise LibraryError(f"Download failed: {e}") from e
        except OSError as e:
            partial.unlink(missing_ok=True)
            raise LibraryError(f"Failed to save download: {e}") from e
        logger.info("Downloaded %s (%d bytes)", url, target.stat().st_size)

    def _store_new(
        self, archive_id: str, filename: str, archive_path: Path, source: str, capacity_gb: float
    ) -> List[ImageRecord]:
        """Extract a freshly stored archive, then index it and enforce capacity.

        An archive that fails to extract is deleted again, so it never counts
        toward the library size or causes eviction.
        """
        try:
            images = self._extract(archive_id, archive_path)
        except LibraryError:
            shutil.rmtree(archive_path.parent, ignore_errors=True)
            shutil.rmtree(self.extract_dir / archive_id, ignore_errors=True)
            raise
        self._insert_archive(archive_id, filename, archive_path, source=source)
        self._manage_capacity(capacity_gb)
        return images

    def _extract(self, archive_id: str, archive_path: Path) -> List[ImageRecord]:
        reader = _MEMBER_READERS.get(archive_path.suffix.lower())
        if reader is None:
            raise LibraryError(f"Unsupported archive format: {archive_path.suffix}")

        target_dir = self.extract_dir / archive_id
        shutil.rmtree(target_dir, ignore_errors=True)
        images: List[ImageRecord] = []
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            members = sorted(reader(archive_path), key=lambda member: natural_sort_key(member[0]))
            for index, (member_name, data) in enumerate(members):
                # Members are written under generated names so entries cannot escape target_dir.
                out_path = target_dir / f"{index:05d}{Path(member_name).suffix.lower()}"
                out_path.write_bytes(data)
                images.append(self._probe_image(member_name, out_path))
        except rarfile.RarCannotExec as e:
            raise LibraryError(f"No RAR extraction tool available for {archive_path.name}: {e}") from e
        except CORRUPT_ARCHIVE_ERRORS as e:
            raise LibraryError(f"Corrupt archive {archive_path.name}: {e}") from e
        except OSError as e:
            raise LibraryError(f"Failed to extract {archive_path.name}: {e}") from e

        logger.debug("Extracted %d images from %s", len(images), archive_path.name)
        return images

    @staticmethod
    def _probe_image(member_name: str, path: Path) -> ImageRecord:
        size = QImageReader(str(path)).size()
        name = Path(member_name).name
        if not size.isValid():
            logger.warning("Could not decode %s", member_name)
            return ImageRecord(name=name, source=member_name, error=True)
        return ImageRecord(
            name=name,
            source=member_name,
            payload=str(path),
            width=size.width(),
            height=size.height(),
        )

    def _manage_capacity(self, capacity_gb: float) -> None:
        """Evict old non-starred archives once the library exceeds its capacity.

        The most recently accessed archive is never evicted.
        """
        limit = int(capacity_gb * BYTES_PER_GB)
        candidates = [archive for archive in self.list_archives() if not archive.starred]
        total = sum(archive.size for archive in candidates)
        if total <= limit or not candidates:
            return

        current, older = candidates[0], candidates[1:]
        excess = total - current.size - limit
        if excess <= 0:
            return

        freed = 0
        for archive in reversed(older):
            if freed >= excess:
                break
            self._remove_archive(archive)
            freed += archive.size
        logger.info("Library over capacity, freed %d bytes", freed)

    def _remove_archive(self, archive: LibraryArchive) -> None:
        shutil.rmtree(archive.archive_path.parent, ignore_errors=True)
        shutil.rmtree(self.extract_dir / archive.id, ignore_errors=True)
        self._delete_record(archive.id)

    def _get_archive(self, archive_id: str) -> Optional[LibraryArchive]:
        try:
            cur = self.connection.cursor()
            cur.execute(
                """
                SELECT id, name, archive_path, source, size, starred, last_accessed
                FROM library_archives
                WHERE id = ?
                """,
                (archive_id,),
            )
            row = cur.fetchone()
        except sqlite3.Error as e:
            raise LibraryError(f"Failed to read library index: {e}") from e
        return self._row_to_archive(row) if row else None

    def _insert_archive(self, archive_id: str, name: str, archive_path: Path, source: str) -> None:
        try:
            size = archive_path.stat().st_size
            cur = self.connection.cursor()
            cur.execute(
                """
                INSERT INTO library_archives (id, name, archive_path, source, size, starred, last_accessed)
                VALUES (?, ?, ?, ?, ?, 0, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    archive_path = excluded.archive_path,
                    size = excluded.size,
                    last_accessed = excluded.last_accessed
                """,
                (archive_id, name, str(archive_path), source, size, _now()),
            )
            self.connection.commit()
        except (OSError, sqlite3.Error) as e:
            raise LibraryError(f"Failed to index archive: {e}") from e

    def _touch(self, archive_id: str) -> None:
        try:
            self.connection.execute(
                "UPDATE library_archives SET last_accessed = ? WHERE id = ?",
                (_now(), archive_id),
            )
            self.connection.commit()
        except sqlite3.Error as e:
            raise LibraryError(f"Failed to update library index: {e}") from e

    def _delete_record(self, archive_id: str) -> None:
        try:
            self.connection.execute("DELETE FROM library_archives WHERE id = ?", (archive_id,))
            self.connection.commit()
        except sqlite3.Error as e:
            raise LibraryError(f"Failed to update library index: {e}") from e

    @staticmethod
    def _row_to_archive(row: sqlite3.Row) -> LibraryArchive:
        """Convert database row to LibraryArchive entity."""
        return LibraryArchive(
            id=row["id"],
            name=row["name"],
            archive_path=Path(row["archive_path"]),
            source=row["source"],
            size=row["size"],
            starred=bool(row["starred"]),
            last_accessed=row["last_accessed"],
        )
