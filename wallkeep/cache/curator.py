"""
Curation

Everything the user does to a wallpaper beyond looking at it: favoriting, 1-5 star ratings and free
form tags, plus the derived queries built on top of them (favorites, tag search, stale or unused
wallpapers for cleanup) and the statistics summary.

Queries that hand wallpapers back to the user only return entries whose image file exists at call
time. A wallpaper deleted behind the cache's back stays invisible here until cleanup removes it.
"""

import logging
import random
from datetime import timedelta
from typing import Iterable, Optional

from wallkeep.errors import InvalidArgumentError
from wallkeep.models import CacheStatistics
from wallkeep.models import MAX_RATING
from wallkeep.models import MIN_RATING
from wallkeep.models import WallpaperRecord

logger = logging.getLogger(__name__)

TOP_USED = 5
TOP_TAGS = 10
TOP_RESOLUTIONS = 10


def normalize_tags(tags: Iterable[str]) -> set[str]:
    """
    Strip whitespace around each tag. Raise InvalidArgumentError for empty tags and for tags
    containing a comma, since tag lists are displayed comma separated.
    """

    if isinstance(tags, str):
        tags = [tags]

    normalized = set()
    for tag in tags:
        tag = str(tag).strip()
        if not tag:
            raise InvalidArgumentError("tags cannot be empty")
        if "," in tag:
            raise InvalidArgumentError(f"tags cannot contain commas: '{tag}'")
        normalized.add(tag)

    return normalized


def _is_valid(record: WallpaperRecord) -> bool:
    return record.exists()


class CuratorOps:
    def __init__(self, store, navigator, clock, rng: Optional[random.Random] = None):
        self.store = store
        self.navigator = navigator
        self.clock = clock
        self.rng = rng or random.Random()

    """
    Mutations
    """

    def toggle_favorite(self, wallpaper_id: str) -> bool:
        """Flip the favorite flag and return the new value."""

        def flip(record: WallpaperRecord):
            record.is_favorite = not record.is_favorite

        record = self.store.update(wallpaper_id, flip)
        logger.info("%s favorite: %s", wallpaper_id, record.is_favorite)
        return record.is_favorite

    def set_rating(self, wallpaper_id: str, rating: int) -> None:
        if isinstance(rating, bool) or not isinstance(rating, int):
            raise InvalidArgumentError(f"rating must be an integer, got {rating!r}")

        if not MIN_RATING <= rating <= MAX_RATING:
            raise InvalidArgumentError(
                f"rating must be between {MIN_RATING} and {MAX_RATING}, got {rating}"
            )

        def rate(record: WallpaperRecord):
            record.rating = rating

        self.store.update(wallpaper_id, rate)
        logger.info("%s rated %d", wallpaper_id, rating)

    def add_tags(self, wallpaper_id: str, tags: Iterable[str]) -> None:
        """Add tags to a wallpaper. Tags it already has are ignored."""

        new_tags = normalize_tags(tags)

        def tag(record: WallpaperRecord):
            record.tags |= new_tags

        self.store.update(wallpaper_id, tag)

    def remove_tags(self, wallpaper_id: str, tags: Iterable[str]) -> None:
        """Remove tags from a wallpaper. Tags it doesn't have are ignored."""

        old_tags = normalize_tags(tags)

        def untag(record: WallpaperRecord):
            record.tags -= old_tags

        self.store.update(wallpaper_id, untag)

    """
    Queries
    """

    def get_favorites(self) -> list[WallpaperRecord]:
        return self.store.query_all(
            lambda record: record.is_favorite and _is_valid(record), order_by="rating"
        )

    def get_by_rating(self, min_rating: int) -> list[WallpaperRecord]:
        return self.store.query_all(
            lambda record: record.rating >= min_rating and _is_valid(record),
            order_by="rating",
        )

    def get_by_tags(self, tags: Iterable[str]) -> list[WallpaperRecord]:
        """Wallpapers carrying *all* of the given tags, most recently used first."""

        wanted = normalize_tags(tags)
        if not wanted:
            return []

        return self.store.query_all(
            lambda record: wanted <= record.tags and _is_valid(record), order_by="recent"
        )

    def get_random_favorite(self) -> Optional[WallpaperRecord]:
        favorites = self.get_favorites()
        if not favorites:
            return None
        return self.rng.choice(favorites)

    def get_old_wallpapers(self, older_than: timedelta) -> list[WallpaperRecord]:
        """Wallpapers not used within 'older_than', least recently used first."""

        cutoff = self.clock() - older_than
        return self.store.query_all(
            lambda record: record.last_used_at < cutoff and _is_valid(record),
            order_by="last_used",
        )

    def get_unused_wallpapers(self) -> list[WallpaperRecord]:
        """Wallpapers shown only once (when they were downloaded), oldest download first."""

        return self.store.query_all(
            lambda record: record.use_count <= 1 and _is_valid(record),
            order_by="downloaded",
        )

    def get_statistics(self) -> CacheStatistics:
        records = self.store.query_all()
        valid = sum(1 for record in records if record.exists())
        rated = [record.rating for record in records if record.rating > 0]
        oldest, newest = self.store.download_range()

        current = self.navigator.get_current()
        previous = self.navigator.get_previous()

        now = self.clock()

        return CacheStatistics(
            total_wallpapers=len(records),
            valid_wallpapers=valid,
            invalid_wallpapers=len(records) - valid,
            total_size=sum(record.size for record in records),
            oldest_download=oldest,
            newest_download=newest,
            current_wallpaper_id=current.id if current else "",
            previous_wallpaper_id=previous.id if previous else "",
            favorite_count=sum(1 for record in records if record.is_favorite),
            average_rating=sum(rated) / len(rated) if rated else 0.0,
            most_used=self.store.most_used(TOP_USED),
            top_tags=self.store.tag_counts(TOP_TAGS),
            resolutions=self.store.resolution_counts(TOP_RESOLUTIONS),
            unique_wallpapers_last_week=self.store.distinct_used_since(now - timedelta(days=7)),
            unique_wallpapers_last_month=self.store.distinct_used_since(now - timedelta(days=30)),
            total_history_entries=self.store.history_count(),
        )
