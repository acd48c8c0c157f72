"""
WallkeepContext

This module defines the WallkeepContext dataclass, the object the 'cli' group stores on the click
context for its subcommands. It carries the loaded configuration and opens the wallpaper cache the
first time a subcommand asks for it, so commands that never touch the cache (e.g. --help) don't
create a database.
"""

from dataclasses import dataclass, field
from typing import Optional

from wallkeep.cache.wallpaper_cache import WallpaperCache
from wallkeep.config import WallkeepConfig


@dataclass
class WallkeepContext:
    """
    Used to store application data for subcommands: the config and the lazily opened cache.
    """

    config: WallkeepConfig = field(default_factory=WallkeepConfig)
    _cache: Optional[WallpaperCache] = None

    @property
    def cache(self) -> WallpaperCache:
        if self._cache is None:
            self._cache = WallpaperCache(
                self.config.WALLKEEP_CACHE_DIR,
                max_count=self.config.MAX_CACHE_COUNT,
                max_size_mb=self.config.MAX_CACHE_SIZE_MB,
                target_utilization=self.config.TARGET_UTILIZATION,
            )
        return self._cache

    def close(self):
        if self._cache is not None:
            self._cache.close()
            self._cache = None
