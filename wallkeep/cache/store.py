"""
Wallpaper Store

Durable storage for the wallpaper cache, backed by a single SQLite database file. The store holds
four things:

    wallpapers      one row per distinct remote image ever downloaded
    wallpaper_tags  the tag relation (wallpaper_id, tag)
    usage_history   append-only log of (wallpaper_id, used_at) events
    view_state      a single row pointing at the wallpaper the user is currently looking at

Referential integrity is left to SQLite: both child tables declare ON DELETE CASCADE, so deleting a
wallpaper row removes its tags and usage events in the same statement. Foreign key enforcement is
off by default in SQLite and has to be switched on per connection.

Every public method takes the store's reader/writer lock itself and runs its statements inside one
transaction, so a reader never sees half of a multi-row change (e.g. a new wallpaper without its
first usage event). The lock is not re-entrant: public methods must never call each other while
holding it.

Timestamps are stored as UTC ISO-8601 text with a fixed microsecond precision and offset. With a
fixed width the text ordering matches the time ordering, which is what the ORDER BY / MAX() queries
rely on.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from wallkeep.cache.clock import as_utc
from wallkeep.cache.locks import ReadWriteLock
from wallkeep.errors import DuplicateIDError
from wallkeep.errors import FileSystemError
from wallkeep.errors import InvalidArgumentError
from wallkeep.errors import NotFoundError
from wallkeep.errors import StorageError
from wallkeep.models import ResolutionCount
from wallkeep.models import TagCount
from wallkeep.models import UsageCount
from wallkeep.models import WallpaperRecord

logger = logging.getLogger(__name__)

DATABASE_FILENAME = "wallpapers.db"

SCHEMA = """
CREATE TABLE IF NOT EXISTS wallpapers (
    id TEXT PRIMARY KEY,
    path TEXT NOT NULL,
    source_url TEXT NOT NULL,
    hash TEXT NOT NULL,
    size INTEGER NOT NULL,
    downloaded_at TEXT NOT NULL,
    last_used_at TEXT NOT NULL,
    use_count INTEGER NOT NULL DEFAULT 1 CHECK (use_count >= 1),
    categories TEXT NOT NULL DEFAULT '',
    purities TEXT NOT NULL DEFAULT '',
    resolution TEXT NOT NULL DEFAULT '',
    is_favorite INTEGER NOT NULL DEFAULT 0,
    rating INTEGER NOT NULL DEFAULT 0 CHECK (rating BETWEEN 0 AND 5)
);

CREATE TABLE IF NOT EXISTS wallpaper_tags (
    wallpaper_id TEXT NOT NULL,
    tag TEXT NOT NULL,
    PRIMARY KEY (wallpaper_id, tag),
    FOREIGN KEY (wallpaper_id) REFERENCES wallpapers(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS usage_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    wallpaper_id TEXT NOT NULL,
    used_at TEXT NOT NULL,
    FOREIGN KEY (wallpaper_id) REFERENCES wallpapers(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS view_state (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    current_wallpaper_id TEXT,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_wallpapers_hash ON wallpapers(hash);
CREATE INDEX IF NOT EXISTS idx_wallpapers_last_used ON wallpapers(last_used_at);
CREATE INDEX IF NOT EXISTS idx_wallpapers_favorite ON wallpapers(is_favorite);
CREATE INDEX IF NOT EXISTS idx_usage_history_wallpaper_id ON usage_history(wallpaper_id);
CREATE INDEX IF NOT EXISTS idx_usage_history_used_at ON usage_history(used_at);
"""

COLUMNS = (
    "id, path, source_url, hash, size, downloaded_at, last_used_at, use_count, "
    "categories, purities, resolution, is_favorite, rating"
)

# named orderings accepted by query_all(). ties are always broken by id so scans are deterministic.
ORDERINGS = {
    "last_used": "last_used_at ASC, id ASC",
    "recent": "last_used_at DESC, id ASC",
    "rating": "rating DESC, last_used_at DESC, id ASC",
    "use_count": "use_count DESC, id ASC",
    "downloaded": "downloaded_at ASC, id ASC",
}


def to_timestamp(moment: datetime) -> str:
    return as_utc(moment).isoformat(timespec="microseconds")


def from_timestamp(text: str) -> datetime:
    moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class Store:
    """
    SQLite persistence for wallpaper records, tags, the usage log and the view pointer. Owned by
    WallpaperCache; nothing else in wallkeep should hold a Store directly.
    """

    def __init__(self, db_path):
        self.db_path = Path(db_path)
        self._lock = ReadWriteLock()

        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            # one connection shared by every thread. the reader/writer lock, not sqlite, serializes access.
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)

        except (OSError, sqlite3.Error) as error:
            raise StorageError(f"failed to open database {self.db_path}: {error}") from error

        self._conn.row_factory = sqlite3.Row

        with self._storage_errors("initialize database"):
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.execute("PRAGMA journal_mode = WAL")
            self._conn.executescript(SCHEMA)
            self._conn.commit()

        logger.debug("opened wallpaper store at %s", self.db_path)

    def close(self):
        with self._lock.write_lock():
            self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    """
    Locking and transactions
    """

    @contextmanager
    def _storage_errors(self, action: str):
        try:
            yield

        except sqlite3.Error as error:
            raise StorageError(f"failed to {action}: {error}") from error

    @contextmanager
    def _reading(self, action: str):
        with self._lock.read_lock(), self._storage_errors(action):
            yield self._conn

    @contextmanager
    def _writing(self, action: str):
        # the connection context manager commits on success and rolls back on *any* exception,
        # including NotFoundError raised half way through a mutation.
        with self._lock.write_lock(), self._storage_errors(action):
            with self._conn:
                yield self._conn

    """
    Row helpers (callers must already hold the lock)
    """

    def _tags(self, conn, wallpaper_id: str) -> set[str]:
        rows = conn.execute(
            "SELECT tag FROM wallpaper_tags WHERE wallpaper_id = ?", (wallpaper_id,)
        )
        return {row["tag"] for row in rows}

    def _all_tags(self, conn) -> dict[str, set[str]]:
        tags: dict[str, set[str]] = {}
        for row in conn.execute("SELECT wallpaper_id, tag FROM wallpaper_tags"):
            tags.setdefault(row["wallpaper_id"], set()).add(row["tag"])
        return tags

    def _record(self, row, tags) -> WallpaperRecord:
        return WallpaperRecord(
            id=row["id"],
            path=Path(row["path"]),
            source_url=row["source_url"],
            hash=row["hash"],
            size=row["size"],
            downloaded_at=from_timestamp(row["downloaded_at"]),
            last_used_at=from_timestamp(row["last_used_at"]),
            use_count=row["use_count"],
            categories=row["categories"],
            purities=row["purities"],
            resolution=row["resolution"],
            is_favorite=bool(row["is_favorite"]),
            rating=row["rating"],
            tags=tags,
        )

    def _get(self, conn, wallpaper_id: str) -> WallpaperRecord:
        row = conn.execute(
            f"SELECT {COLUMNS} FROM wallpapers WHERE id = ?", (wallpaper_id,)
        ).fetchone()

        if row is None:
            raise NotFoundError(wallpaper_id)

        return self._record(row, self._tags(conn, wallpaper_id))

    def _exists(self, conn, wallpaper_id: str) -> bool:
        row = conn.execute(
            "SELECT 1 FROM wallpapers WHERE id = ?", (wallpaper_id,)
        ).fetchone()
        return row is not None

    """
    Mutations
    """

    def insert(self, record: WallpaperRecord) -> None:
        """
        Insert a new wallpaper together with its tags and its first usage event (at
        record.last_used_at). All three land in one transaction. Raise DuplicateIDError if the id
        is already present.
        """

        with self._writing("insert wallpaper") as conn:
            if self._exists(conn, record.id):
                raise DuplicateIDError(record.id)

            conn.execute(
                f"INSERT INTO wallpapers ({COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record.id,
                    str(record.path),
                    record.source_url,
                    record.hash,
                    record.size,
                    to_timestamp(record.downloaded_at),
                    to_timestamp(record.last_used_at),
                    record.use_count,
                    record.categories,
                    record.purities,
                    record.resolution,
                    int(record.is_favorite),
                    record.rating,
                ),
            )
            conn.executemany(
                "INSERT INTO wallpaper_tags (wallpaper_id, tag) VALUES (?, ?)",
                [(record.id, tag) for tag in sorted(record.tags)],
            )
            conn.execute(
                "INSERT INTO usage_history (wallpaper_id, used_at) VALUES (?, ?)",
                (record.id, to_timestamp(record.last_used_at)),
            )

    def update(self, wallpaper_id: str, mutator) -> WallpaperRecord:
        """
        Atomic read-modify-write. 'mutator' receives the current WallpaperRecord and changes it in
        place. Only the curated fields (favorite, rating, resolution, tags) are written back; usage
        counters only ever move through append_usage(). Returns the updated record.
        """

        with self._writing("update wallpaper") as conn:
            record = self._get(conn, wallpaper_id)
            tags_before = set(record.tags)

            mutator(record)

            conn.execute(
                "UPDATE wallpapers SET is_favorite = ?, rating = ?, resolution = ? WHERE id = ?",
                (int(record.is_favorite), record.rating, record.resolution, wallpaper_id),
            )
            conn.executemany(
                "INSERT OR IGNORE INTO wallpaper_tags (wallpaper_id, tag) VALUES (?, ?)",
                [(wallpaper_id, tag) for tag in sorted(record.tags - tags_before)],
            )
            conn.executemany(
                "DELETE FROM wallpaper_tags WHERE wallpaper_id = ? AND tag = ?",
                [(wallpaper_id, tag) for tag in sorted(tags_before - record.tags)],
            )

        return record

    def remove(self, wallpaper_id: str) -> WallpaperRecord:
        """
        Delete the backing image file, then the wallpaper row. Tags and usage events go with the row
        (cascade) and a view pointer aimed at this wallpaper is cleared. A file that is already gone
        is fine; any other failure to delete it raises FileSystemError and leaves the row untouched.

        The file is deleted without holding the lock. Until the row goes, readers see a record whose
        file is missing and skip it like any other stale entry.
        """

        record = self.get(wallpaper_id)

        try:
            record.path.unlink()

        except FileNotFoundError:
            logger.debug("file for %s was already missing: %s", wallpaper_id, record.path)

        except OSError as error:
            raise FileSystemError(record.path, error) from error

        with self._writing("remove wallpaper") as conn:
            cursor = conn.execute("DELETE FROM wallpapers WHERE id = ?", (wallpaper_id,))
            if cursor.rowcount == 0:
                raise NotFoundError(wallpaper_id)

            conn.execute(
                "DELETE FROM view_state WHERE current_wallpaper_id = ?", (wallpaper_id,)
            )

        return record

    def append_usage(self, wallpaper_id: str, used_at: datetime) -> None:
        """Log a usage event and bump last_used_at / use_count in the same transaction."""

        with self._writing("record usage") as conn:
            cursor = conn.execute(
                "UPDATE wallpapers SET last_used_at = ?, use_count = use_count + 1 WHERE id = ?",
                (to_timestamp(used_at), wallpaper_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(wallpaper_id)

            conn.execute(
                "INSERT INTO usage_history (wallpaper_id, used_at) VALUES (?, ?)",
                (wallpaper_id, to_timestamp(used_at)),
            )

    def set_view_pointer(self, wallpaper_id, updated_at: datetime) -> None:
        """Point the view at wallpaper_id. A falsy id clears the pointer."""

        with self._writing("update view state") as conn:
            if not wallpaper_id:
                conn.execute("DELETE FROM view_state")
                return

            if not self._exists(conn, wallpaper_id):
                raise NotFoundError(wallpaper_id)

            conn.execute(
                """
                INSERT INTO view_state (id, current_wallpaper_id, updated_at)
                VALUES (1, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    current_wallpaper_id = excluded.current_wallpaper_id,
                    updated_at = excluded.updated_at
                """,
                (wallpaper_id, to_timestamp(updated_at)),
            )

    """
    Reads
    """

    def get(self, wallpaper_id: str) -> WallpaperRecord:
        with self._reading("read wallpaper") as conn:
            return self._get(conn, wallpaper_id)

    def get_view_pointer(self) -> str:
        with self._reading("read view state") as conn:
            row = conn.execute(
                "SELECT current_wallpaper_id FROM view_state WHERE id = 1"
            ).fetchone()

        if row is None or row["current_wallpaper_id"] is None:
            return ""
        return row["current_wallpaper_id"]

    def query_all(self, predicate=None, order_by: str = "last_used") -> list[WallpaperRecord]:
        """
        Return every record matching 'predicate' (a callable taking a WallpaperRecord), sorted by one
        of the named ORDERINGS. The predicate runs after the lock is released, so it is free to
        touch the filesystem.
        """

        try:
            ordering = ORDERINGS[order_by]
        except KeyError:
            raise InvalidArgumentError(
                f"unknown ordering '{order_by}', expected one of: {', '.join(ORDERINGS)}"
            )

        with self._reading("query wallpapers") as conn:
            rows = conn.execute(
                f"SELECT {COLUMNS} FROM wallpapers ORDER BY {ordering}"
            ).fetchall()
            tags = self._all_tags(conn)

        records = [self._record(row, tags.get(row["id"], set())) for row in rows]

        if predicate is None:
            return records
        return [record for record in records if predicate(record)]

    def timeline(self) -> list[tuple[WallpaperRecord, datetime]]:
        """
        Distinct wallpapers paired with the time of their most recent usage event ("last seen"),
        most recent first. Ties are broken by id.
        """

        with self._reading("read usage history") as conn:
            rows = conn.execute(
                f"""
                SELECT {', '.join('w.' + column.strip() for column in COLUMNS.split(','))},
                       MAX(u.used_at) AS last_seen
                FROM wallpapers w
                JOIN usage_history u ON u.wallpaper_id = w.id
                GROUP BY w.id
                ORDER BY last_seen DESC, w.id ASC
                """
            ).fetchall()
            tags = self._all_tags(conn)

        return [
            (self._record(row, tags.get(row["id"], set())), from_timestamp(row["last_seen"]))
            for row in rows
        ]

    def usage_history(self, wallpaper_id: str, limit: int = 0) -> list[datetime]:
        query = "SELECT used_at FROM usage_history WHERE wallpaper_id = ? ORDER BY used_at DESC, id DESC"
        params: tuple = (wallpaper_id,)
        if limit > 0:
            query += " LIMIT ?"
            params += (limit,)

        with self._reading("read usage history") as conn:
            rows = conn.execute(query, params).fetchall()

        return [from_timestamp(row["used_at"]) for row in rows]

    def find_by_hash(self, digest: str) -> list[WallpaperRecord]:
        with self._reading("query wallpapers by hash") as conn:
            rows = conn.execute(
                f"SELECT {COLUMNS} FROM wallpapers WHERE hash = ? ORDER BY downloaded_at ASC, id ASC",
                (digest,),
            ).fetchall()
            return [self._record(row, self._tags(conn, row["id"])) for row in rows]

    """
    Aggregates (statistics and eviction bookkeeping)
    """

    def totals(self) -> tuple[int, int]:
        """Return (number of wallpapers, sum of their sizes in bytes)."""

        with self._reading("count wallpapers") as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS total, COALESCE(SUM(size), 0) AS size FROM wallpapers"
            ).fetchone()

        return row["total"], row["size"]

    def download_range(self) -> tuple:
        with self._reading("read download range") as conn:
            row = conn.execute(
                "SELECT MIN(downloaded_at) AS oldest, MAX(downloaded_at) AS newest FROM wallpapers"
            ).fetchone()

        if row["oldest"] is None:
            return None, None
        return from_timestamp(row["oldest"]), from_timestamp(row["newest"])

    def most_used(self, limit: int) -> list[UsageCount]:
        with self._reading("read usage counts") as conn:
            rows = conn.execute(
                "SELECT id, path, use_count FROM wallpapers ORDER BY use_count DESC, id ASC LIMIT ?",
                (limit,),
            ).fetchall()

        return [UsageCount(row["id"], row["path"], row["use_count"]) for row in rows]

    def tag_counts(self, limit: int) -> list[TagCount]:
        with self._reading("read tag counts") as conn:
            rows = conn.execute(
                """
                SELECT tag, COUNT(*) AS count FROM wallpaper_tags
                GROUP BY tag ORDER BY count DESC, tag ASC LIMIT ?
                """,
                (limit,),
            ).fetchall()

        return [TagCount(row["tag"], row["count"]) for row in rows]

    def resolution_counts(self, limit: int) -> list[ResolutionCount]:
        with self._reading("read resolution counts") as conn:
            rows = conn.execute(
                """
                SELECT CASE WHEN resolution = '' THEN 'unknown' ELSE resolution END AS label,
                       COUNT(*) AS count
                FROM wallpapers
                GROUP BY label ORDER BY count DESC, label ASC LIMIT ?
                """,
                (limit,),
            ).fetchall()

        return [ResolutionCount(row["label"], row["count"]) for row in rows]

    def distinct_used_since(self, cutoff: datetime) -> int:
        with self._reading("read recent usage") as conn:
            row = conn.execute(
                "SELECT COUNT(DISTINCT wallpaper_id) AS count FROM usage_history WHERE used_at > ?",
                (to_timestamp(cutoff),),
            ).fetchone()

        return row["count"]

    def history_count(self) -> int:
        with self._reading("count usage history") as conn:
            row = conn.execute("SELECT COUNT(*) AS count FROM usage_history").fetchone()

        return row["count"]
