"""Helpers for archive URLs, filenames and archive identity."""

import hashlib
import math
import re
from typing import Optional
from urllib.parse import parse_qs, unquote, urlparse

from .history_entry import LIBRARY_URL_PREFIX

ARCHIVE_EXTENSIONS = (".zip", ".rar", ".7z")
DEFAULT_ARCHIVE_NAME = "Archive"

_ARCHIVE_URL_RE = re.compile(r"\.(zip|rar|7z)($|\?|#)", re.IGNORECASE)
_ARCHIVE_PARAM_RE = re.compile(r"f=[^&]*\.(zip|rar|7z)", re.IGNORECASE)
_ARCHIVE_FILE_RE = re.compile(r"\.(zip|rar|7z)$", re.IGNORECASE)


def is_archive_url(url: str) -> bool:
    """True for URLs that point at a supported archive.

    Besides plain archive URLs this accepts download endpoints of the form
    ``.../file.bin?f=name.zip``.
    """
    if _ARCHIVE_URL_RE.search(url):
        return True
    return ".bin?" in url and _ARCHIVE_PARAM_RE.search(url) is not None


def is_archive_file(filename: str) -> bool:
    return _ARCHIVE_FILE_RE.search(filename) is not None


def derive_filename_from_url(url: str) -> str:
    """Display filename for an archive URL.

    Prefers the ``f`` query parameter, then the last path segment, then the
    literal "Archive".
    """
    parsed = urlparse(url)
    f_values = parse_qs(parsed.query).get("f")
    if f_values and f_values[0]:
        return f_values[0]
    segment = parsed.path.rsplit("/", 1)[-1]
    return unquote(segment) or DEFAULT_ARCHIVE_NAME


def library_archive_id(file_url: str) -> Optional[str]:
    """Archive id encoded in a library file:// URL (the per-archive directory name)."""
    if not file_url.startswith(LIBRARY_URL_PREFIX):
        return None
    path = unquote(file_url[len(LIBRARY_URL_PREFIX):]).replace("\\", "/")
    parts = [part for part in path.split("/") if part]
    return parts[-2] if len(parts) >= 2 else None


def url_digest(url: str) -> str:
    return hashlib.md5(url.encode("utf-8")).hexdigest()


def archive_id_from_url(url: str) -> str:
    """Stable archive id for a history URL.

    Library URLs carry their id as the parent directory name; every other URL
    maps to the md5 digest the library uses for downloaded archives.
    """
    library_id = library_archive_id(url)
    if library_id:
        return library_id
    return url_digest(url)


def format_bytes(size: float) -> str:
    if size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    exponent = min(int(math.log(size, 1024)), len(units) - 1)
    return f"{size / 1024 ** exponent:.1f} {units[exponent]}"
