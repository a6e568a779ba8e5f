"""Settings Manager - Loads viewer settings from the environment and .env."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from archive_gallery.core import Settings

logger = logging.getLogger(__name__)

ENV_PREFIX = "ARCHIVE_GALLERY_"
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class SettingsManager:
    """
    Manages viewer settings.

    Values come from ARCHIVE_GALLERY_* environment variables, populated from
    a .env file in the project root. LIBRARY_SIZE falls back to the legacy
    CACHE_SIZE key.
    """

    def __init__(self, project_root: Optional[Path] = None):
        """
        Initialize settings manager.

        Args:
            project_root: Path to project root where .env is located.
                         If None, searches upward from current file.
        """
        if project_root is None:
            current = Path(__file__).resolve()
            project_root = current.parent.parent.parent.parent

        env_path = project_root / ".env"
        load_dotenv(dotenv_path=env_path)

        self._project_root = project_root

    def load_settings(self) -> Settings:
        """Build a Settings object, using defaults for missing or invalid values."""
        defaults = Settings()
        return Settings(
            library_size=self._get_float("LIBRARY_SIZE"),
            cache_size=self._get_float("CACHE_SIZE"),
            auto_load_from_clipboard=self._get_bool(
                "AUTO_LOAD_CLIPBOARD", defaults.auto_load_from_clipboard
            ),
            max_history_items=self._get_int("MAX_HISTORY", defaults.max_history_items),
            allow_fullscreen_upscaling=self._get_bool(
                "ALLOW_UPSCALING", defaults.allow_fullscreen_upscaling
            ),
            auto_load_adjacent_archives=self._get_bool(
                "AUTO_LOAD_ADJACENT", defaults.auto_load_adjacent_archives
            ),
        )

    def data_dir(self) -> Path:
        """Directory holding the database and the archive library."""
        value = self._get("DATA_DIR")
        return Path(value).expanduser() if value else Path.home() / ".archive_gallery"

    def reload_env(self) -> None:
        """Reload environment variables from .env file."""
        env_path = self._project_root / ".env"
        load_dotenv(dotenv_path=env_path, override=True)

    @staticmethod
    def _get(key: str) -> Optional[str]:
        value = os.getenv(ENV_PREFIX + key)
        return value.strip() if value and value.strip() else None

    def _get_float(self, key: str) -> Optional[float]:
        value = self._get(key)
        if value is None:
            return None
        try:
            return float(value)
        except ValueError:
            logger.warning("Ignoring invalid %s%s=%r", ENV_PREFIX, key, value)
            return None

    def _get_int(self, key: str, default: int) -> int:
        value = self._get(key)
        if value is None:
            return default
        try:
            parsed = int(value)
        except ValueError:
            logger.warning("Ignoring invalid %s%s=%r", ENV_PREFIX, key, value)
            return default
        return parsed if parsed > 0 else default

    def _get_bool(self, key: str, default: bool) -> bool:
        value = self._get(key)
        if value is None:
            return default
        lowered = value.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        logger.warning("Ignoring invalid %s%s=%r", ENV_PREFIX, key, value)
        return default
