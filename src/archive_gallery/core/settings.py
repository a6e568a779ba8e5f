"""Application settings consumed by the session."""

import math
from dataclasses import dataclass
from typing import Optional

DEFAULT_LIBRARY_SIZE_GB = 2.0
BYTES_PER_GB = 1024 * 1024 * 1024


@dataclass
class Settings:
    """User-tunable settings.

    library_size is the library capacity in gigabytes. Older configurations
    stored the same value as cache_size, which is used when library_size is
    missing.
    """

    library_size: Optional[float] = DEFAULT_LIBRARY_SIZE_GB
    cache_size: Optional[float] = None
    auto_load_from_clipboard: bool = True
    max_history_items: int = 100
    allow_fullscreen_upscaling: bool = False
    auto_load_adjacent_archives: bool = True

    @property
    def library_size_gb(self) -> float:
        if _is_finite(self.library_size):
            return float(self.library_size)
        if _is_finite(self.cache_size):
            return float(self.cache_size)
        return DEFAULT_LIBRARY_SIZE_GB

    @property
    def library_limit_bytes(self) -> int:
        return int(self.library_size_gb * BYTES_PER_GB)


def _is_finite(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)
