"""
wallkeep models

Dataclasses shared by the cache, the fetcher and the command line. WallpaperRecord mirrors one row of
the 'wallpapers' table (plus its tags). CacheStatistics is the aggregate returned by
WallpaperCache.get_statistics() and replaces a loosely typed dict so that the command line can render
it (or dump it as JSON) without guessing at keys.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from pathlib import Path
from typing import Optional

MIN_RATING = 1
MAX_RATING = 5


@dataclass
class WallpaperRecord:
    """
    Metadata about a single cached wallpaper. The id is derived from the remote source url (see
    cache.hasher.generate_id) so the same url always maps to the same record, while 'hash' is the
    fingerprint of the bytes on disk and is what duplicate detection compares.
    """

    id: str
    path: Path
    source_url: str
    hash: str
    size: int
    downloaded_at: datetime
    last_used_at: datetime
    use_count: int = 1
    categories: str = ""
    purities: str = ""
    resolution: str = ""
    is_favorite: bool = False
    rating: int = 0
    tags: set[str] = field(default_factory=set)

    def __post_init__(self):
        self.path = Path(self.path)
        self.tags = set(self.tags)

    @property
    def size_mb(self) -> float:
        return self.size / 1024 / 1024

    @property
    def name(self) -> str:
        return self.path.name

    def exists(self) -> bool:
        """Check the backing file at call time. Never cached."""

        return self.path.is_file()

    def to_dict(self) -> dict:
        data = asdict(self)
        data["path"] = str(self.path)
        data["downloaded_at"] = self.downloaded_at.isoformat()
        data["last_used_at"] = self.last_used_at.isoformat()
        data["tags"] = sorted(self.tags)
        return data


@dataclass
class UsageCount:
    id: str
    path: str
    use_count: int


@dataclass
class TagCount:
    tag: str
    count: int


@dataclass
class ResolutionCount:
    resolution: str
    count: int


@dataclass
class CacheStatistics:
    """Aggregate view over the cache. Valid/invalid counts are computed from live file checks."""

    total_wallpapers: int = 0
    valid_wallpapers: int = 0
    invalid_wallpapers: int = 0
    total_size: int = 0
    oldest_download: Optional[datetime] = None
    newest_download: Optional[datetime] = None
    current_wallpaper_id: str = ""
    previous_wallpaper_id: str = ""
    favorite_count: int = 0
    average_rating: float = 0.0
    most_used: list[UsageCount] = field(default_factory=list)
    top_tags: list[TagCount] = field(default_factory=list)
    resolutions: list[ResolutionCount] = field(default_factory=list)
    unique_wallpapers_last_week: int = 0
    unique_wallpapers_last_month: int = 0
    total_history_entries: int = 0

    @property
    def total_size_mb(self) -> float:
        return self.total_size / 1024 / 1024

    def to_dict(self) -> dict:
        data = asdict(self)
        for key in ("oldest_download", "newest_download"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        data["total_size_mb"] = round(self.total_size_mb, 2)
        return data
