"""Errors raised while loading archives into a session.

All load failures derive from RuntimeError so callers can treat them like
the RuntimeErrors raised by the library and history stores.
"""


class ArchiveLoadError(RuntimeError):
    """Base class for load failures surfaced by the session controller."""


class EmptyUrlError(ArchiveLoadError):
    def __init__(self):
        super().__init__("Please enter an archive URL")


class NotAnArchiveError(ArchiveLoadError):
    def __init__(self, url: str):
        super().__init__(f"URL does not appear to be a supported archive format: {url}")
        self.url = url


class NoImagesFoundError(ArchiveLoadError):
    def __init__(self, archive_name: str = "archive"):
        super().__init__(f"No images found in {archive_name}")
        self.archive_name = archive_name


class UnexpectedUserChoiceError(ArchiveLoadError):
    def __init__(self):
        super().__init__("Unexpected user choice needed")


class UserCancelled(Exception):
    """The user dismissed a prompt. Not an error: the load simply does not happen."""
