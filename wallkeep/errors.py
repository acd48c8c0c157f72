"""
wallkeep errors

Exceptions raised by the wallpaper cache. Everything derives from CacheError so that the command
line layer can catch a single type, while callers that care about a particular failure (say, a
missing id) can still catch the narrower class. NotFoundError and InvalidArgumentError also
inherit from the builtin they most resemble so that generic handlers (KeyError / ValueError)
keep working.
"""


class CacheError(Exception):
    """Base class for errors raised by the wallpaper cache."""

    pass


class NotFoundError(CacheError, KeyError):
    """Raise when an operation references a wallpaper id that is not in the cache."""

    def __init__(self, wallpaper_id: str):
        self.wallpaper_id = wallpaper_id
        super().__init__(f"wallpaper not found in cache: {wallpaper_id}")

    def __str__(self):
        # KeyError quotes its argument, we want the plain message
        return self.args[0]


class DuplicateIDError(CacheError):
    """
    Raise when inserting a wallpaper whose id already exists. Duplicates are filtered upstream
    by content hash, so seeing this usually means the add path was called twice for one url.
    """

    def __init__(self, wallpaper_id: str):
        self.wallpaper_id = wallpaper_id
        super().__init__(f"wallpaper already in cache: {wallpaper_id}")


class InvalidArgumentError(CacheError, ValueError):
    """Raise for out-of-range ratings, malformed tags and similar caller mistakes."""

    pass


class StorageError(CacheError):
    """Raise when the underlying SQLite database fails (disk full, corruption, permissions)."""

    pass


class FileSystemError(CacheError, OSError):
    """Raise when the image file backing a wallpaper cannot be read or deleted."""

    def __init__(self, path, error: OSError):
        self.path = path
        super().__init__(f"could not access wallpaper file {path}: {error}")
