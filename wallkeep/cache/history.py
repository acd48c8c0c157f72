"""
History navigation

Answers "what was shown when". The usage log is collapsed into a timeline of distinct wallpapers,
each keyed by its most recent usage event (its "last seen" time), newest first. The view pointer,
stored separately, marks where in that timeline the user currently is:

    get_current()    newest entry, i.e. the last wallpaper applied
    get_previous()   step back in time from the view pointer
    get_next()       step forward in time from the view pointer

Entries whose image file has disappeared from disk are skipped rather than returned. File existence
is checked on every call; nothing here is cached.
"""

import logging
from datetime import datetime
from typing import Optional

from wallkeep.errors import NotFoundError
from wallkeep.models import WallpaperRecord

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


class HistoryNavigator:
    def __init__(self, store):
        self.store = store

    def _valid_timeline(self) -> list[tuple[WallpaperRecord, datetime]]:
        entries = []
        for record, last_seen in self.store.timeline():
            if record.exists():
                entries.append((record, last_seen))
            else:
                logger.debug("skipping stale history entry %s (%s)", record.id, record.path)
        return entries

    def _pointer_position(self, timeline) -> Optional[datetime]:
        """Return the last seen time of the wallpaper under the view pointer, None when unset."""

        pointer = self.store.get_view_pointer()
        if not pointer:
            return None

        for record, last_seen in timeline:
            if record.id == pointer:
                return last_seen

        # pointer at a wallpaper that is stale or has no usage events: behave as if unset
        logger.debug("view pointer %s not in history, ignoring it", pointer)
        return None

    def get_current(self) -> Optional[WallpaperRecord]:
        """The most recently used wallpaper whose file still exists."""

        timeline = self._valid_timeline()
        if not timeline:
            return None
        return timeline[0][0]

    def get_previous(self) -> Optional[WallpaperRecord]:
        """
        The entry immediately older than the view pointer. Without a pointer this is the second
        newest entry, since the newest one is what's on screen.
        """

        timeline = self._valid_timeline()
        position = self._pointer_position(timeline)

        if position is None:
            return timeline[1][0] if len(timeline) > 1 else None

        # timeline is newest first, so the first older entry is the greatest one below the pointer
        for record, last_seen in timeline:
            if last_seen < position:
                return record
        return None

    def get_next(self) -> Optional[WallpaperRecord]:
        """
        The entry immediately newer than the view pointer. Without a pointer this is the current
        wallpaper.
        """

        timeline = self._valid_timeline()
        position = self._pointer_position(timeline)

        if position is None:
            return timeline[0][0] if timeline else None

        for record, last_seen in reversed(timeline):
            if last_seen > position:
                return record
        return None

    def get_by_id(self, wallpaper_id: str) -> Optional[WallpaperRecord]:
        try:
            record = self.store.get(wallpaper_id)
        except NotFoundError:
            return None

        return record if record.exists() else None

    def get_history(self, limit: int = DEFAULT_HISTORY_LIMIT) -> list[WallpaperRecord]:
        """Distinct wallpapers, most recently used first. Stale entries are dropped before limiting."""

        if limit <= 0:
            limit = DEFAULT_HISTORY_LIMIT

        return [record for record, _ in self._valid_timeline()[:limit]]

    def get_usage_history(self, wallpaper_id: str, limit: int = 0) -> list[datetime]:
        """Every time a single wallpaper was used, newest first."""

        return self.store.usage_history(wallpaper_id, limit)
