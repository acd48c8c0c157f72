"""
Eviction

Keeps the cache inside two caps, a maximum number of wallpapers and a maximum total size. Once
either cap is exceeded, least recently used wallpapers are removed (file and row) until the cache
drops to a target utilization of both caps, 90% by default, so the next few additions don't trigger
another round straight away.

Favorites are never evicted. If favorites alone exceed the caps the cache simply stays over them.
"""

import logging

from wallkeep.errors import FileSystemError
from wallkeep.errors import NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_MAX_COUNT = 1000
DEFAULT_MAX_SIZE_MB = 5000
DEFAULT_TARGET_UTILIZATION = 90


class EvictionEngine:
    def __init__(
        self,
        store,
        max_count: int = DEFAULT_MAX_COUNT,
        max_size_bytes: int = DEFAULT_MAX_SIZE_MB * 1024 * 1024,
        target_utilization: int = DEFAULT_TARGET_UTILIZATION,
    ):
        self.store = store
        self.max_count = max_count
        self.max_size_bytes = max_size_bytes
        self.target_utilization = target_utilization

    @property
    def target_count(self) -> int:
        return self.max_count * self.target_utilization // 100

    @property
    def target_size_bytes(self) -> int:
        return self.max_size_bytes * self.target_utilization // 100

    def enforce(self) -> list[str]:
        """Evict until both targets are met. Return the ids removed, oldest first."""

        count, size = self.store.totals()

        if count <= self.max_count and size <= self.max_size_bytes:
            return []

        logger.info(
            "cache over limits (%d wallpapers, %.1f MB), evicting down to %d wallpapers / %.1f MB",
            count,
            size / 1024 / 1024,
            self.target_count,
            self.target_size_bytes / 1024 / 1024,
        )

        candidates = self.store.query_all(
            predicate=lambda record: not record.is_favorite, order_by="last_used"
        )

        evicted = []
        for record in candidates:
            if count <= self.target_count and size <= self.target_size_bytes:
                break

            try:
                self.store.remove(record.id)

            except NotFoundError:
                # removed by someone else since the scan; totals no longer include it
                logger.debug("%s already gone, skipping it", record.id)
                count, size = self.store.totals()
                continue

            except FileSystemError as error:
                logger.warning("could not evict %s, skipping it: %s", record.id, error)
                continue

            count -= 1
            size -= record.size
            evicted.append(record.id)
            logger.debug("evicted %s (%s)", record.id, record.path)

        if count > self.target_count or size > self.target_size_bytes:
            logger.warning(
                "cache still above target after eviction (%d wallpapers, %.1f MB), "
                "remaining entries are favorites or could not be removed",
                count,
                size / 1024 / 1024,
            )

        return evicted
