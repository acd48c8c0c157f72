"""
WallpaperCache

The one object the rest of wallkeep talks to. It owns the Store and wires the engines around it:

    HistoryNavigator   current / previous / next and the history listing
    EvictionEngine     keeps the cache under its count and size caps
    CuratorOps         favorites, ratings, tags, statistics

Adding a wallpaper is two separately locked steps: the insert (record plus its first usage event,
atomically) and then eviction. Eviction takes the store lock itself, so it must never run inside the
insert.
"""

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, Optional

from wallkeep import image_handler
from wallkeep.cache.clock import MonotonicClock
from wallkeep.cache.curator import CuratorOps
from wallkeep.cache.curator import normalize_tags
from wallkeep.cache.eviction import DEFAULT_MAX_COUNT
from wallkeep.cache.eviction import DEFAULT_MAX_SIZE_MB
from wallkeep.cache.eviction import DEFAULT_TARGET_UTILIZATION
from wallkeep.cache.eviction import EvictionEngine
from wallkeep.cache.hasher import generate_id
from wallkeep.cache.hasher import hash_file
from wallkeep.cache.history import DEFAULT_HISTORY_LIMIT
from wallkeep.cache.history import HistoryNavigator
from wallkeep.cache.store import DATABASE_FILENAME
from wallkeep.cache.store import Store
from wallkeep.errors import FileSystemError
from wallkeep.errors import InvalidArgumentError
from wallkeep.errors import NotFoundError
from wallkeep.models import CacheStatistics
from wallkeep.models import WallpaperRecord

logger = logging.getLogger(__name__)


class WallpaperCache:
    def __init__(
        self,
        cache_dir,
        max_count: int = DEFAULT_MAX_COUNT,
        max_size_mb: int = DEFAULT_MAX_SIZE_MB,
        target_utilization: int = DEFAULT_TARGET_UTILIZATION,
        clock=None,
    ):
        if max_count <= 0 or max_size_mb <= 0:
            raise InvalidArgumentError("cache limits must be positive")
        if not 0 < target_utilization <= 100:
            raise InvalidArgumentError(
                f"target utilization must be a percentage between 1 and 100, got {target_utilization}"
            )

        self.cache_dir = Path(cache_dir).expanduser()
        self.clock = MonotonicClock(clock) if clock else MonotonicClock()

        self.store = Store(self.cache_dir / DATABASE_FILENAME)
        self.navigator = HistoryNavigator(self.store)
        self.eviction = EvictionEngine(
            self.store,
            max_count=max_count,
            max_size_bytes=max_size_mb * 1024 * 1024,
            target_utilization=target_utilization,
        )
        self.curator = CuratorOps(self.store, self.navigator, self.clock)

    def close(self):
        self.store.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    """
    Add / update
    """

    def add_wallpaper(
        self,
        source_url: str,
        file_path,
        categories: str = "",
        purities: str = "",
        tags: Iterable[str] = (),
    ) -> WallpaperRecord:
        """
        Register a downloaded image. The record starts with use_count 1 and one usage event, since
        adding a wallpaper means it is about to be shown. Eviction runs afterwards and may remove
        other, older entries.
        """

        path = Path(file_path).expanduser().resolve()
        digest, size = hash_file(path)

        try:
            resolution = image_handler.get_resolution(path)
        except image_handler.InvalidImageError as error:
            logger.warning("could not read resolution of %s: %s", path, error)
            resolution = ""

        now = self.clock()
        record = WallpaperRecord(
            id=generate_id(source_url),
            path=path,
            source_url=source_url,
            hash=digest,
            size=size,
            downloaded_at=now,
            last_used_at=now,
            use_count=1,
            categories=categories,
            purities=purities,
            resolution=resolution,
            tags=normalize_tags(tags),
        )

        self.store.insert(record)
        logger.info("added %s to cache (%s)", record.id, path.name)

        self.enforce_cache_limits()
        return record

    def mark_as_used(self, wallpaper_id: str) -> None:
        self.store.append_usage(wallpaper_id, self.clock())

    def remove_wallpaper(self, wallpaper_id: str) -> WallpaperRecord:
        """Remove a wallpaper and delete its file. Unlike eviction, a failed delete is raised."""

        record = self.store.remove(wallpaper_id)
        logger.info("removed %s from cache", wallpaper_id)
        return record

    def cleanup_invalid_entries(self) -> int:
        """Drop every record whose image file is gone. Return how many were removed."""

        removed = 0
        for record in self.store.query_all(lambda record: not record.exists()):
            try:
                self.store.remove(record.id)

            except NotFoundError:
                continue

            except FileSystemError as error:
                logger.warning("could not clean up %s: %s", record.id, error)
                continue

            logger.info("removed invalid cache entry %s (%s)", record.id, record.path)
            removed += 1

        return removed

    def enforce_cache_limits(self) -> list[str]:
        return self.eviction.enforce()

    def toggle_favorite(self, wallpaper_id: str) -> bool:
        return self.curator.toggle_favorite(wallpaper_id)

    def set_rating(self, wallpaper_id: str, rating: int) -> None:
        self.curator.set_rating(wallpaper_id, rating)

    def add_tags(self, wallpaper_id: str, tags: Iterable[str]) -> None:
        self.curator.add_tags(wallpaper_id, tags)

    def remove_tags(self, wallpaper_id: str, tags: Iterable[str]) -> None:
        self.curator.remove_tags(wallpaper_id, tags)

    """
    Reads
    """

    def get_current(self) -> Optional[WallpaperRecord]:
        return self.navigator.get_current()

    def get_previous(self) -> Optional[WallpaperRecord]:
        return self.navigator.get_previous()

    def get_next(self) -> Optional[WallpaperRecord]:
        return self.navigator.get_next()

    def get_by_id(self, wallpaper_id: str) -> Optional[WallpaperRecord]:
        return self.navigator.get_by_id(wallpaper_id)

    def get_history(self, limit: int = DEFAULT_HISTORY_LIMIT) -> list[WallpaperRecord]:
        return self.navigator.get_history(limit)

    def get_usage_history(self, wallpaper_id: str, limit: int = 0) -> list[datetime]:
        return self.navigator.get_usage_history(wallpaper_id, limit)

    def find_duplicate(self, digest: str) -> Optional[WallpaperRecord]:
        """Return a cached wallpaper with identical content, if its file is still around."""

        for record in self.store.find_by_hash(digest):
            if record.exists():
                return record
        return None

    def get_statistics(self) -> CacheStatistics:
        return self.curator.get_statistics()

    def get_old_wallpapers(self, older_than: timedelta) -> list[WallpaperRecord]:
        return self.curator.get_old_wallpapers(older_than)

    def get_unused_wallpapers(self) -> list[WallpaperRecord]:
        return self.curator.get_unused_wallpapers()

    def get_favorites(self) -> list[WallpaperRecord]:
        return self.curator.get_favorites()

    def get_random_favorite(self) -> Optional[WallpaperRecord]:
        return self.curator.get_random_favorite()

    def get_by_rating(self, min_rating: int) -> list[WallpaperRecord]:
        return self.curator.get_by_rating(min_rating)

    def get_by_tags(self, tags: Iterable[str]) -> list[WallpaperRecord]:
        return self.curator.get_by_tags(tags)

    """
    View pointer
    """

    def set_current_view(self, wallpaper_id: str) -> None:
        """Record which wallpaper is on screen. Previous / next step from here. Falsy clears it."""

        self.store.set_view_pointer(wallpaper_id, self.clock())

    def get_current_view(self) -> str:
        return self.store.get_view_pointer()
