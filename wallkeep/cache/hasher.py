"""
Content hashing

Fingerprints for files on disk and stable ids for remote urls. Both use sha256. The file digest is
what duplicate detection compares, the url digest (truncated) is the wallpaper id.
"""

import hashlib
from pathlib import Path

from wallkeep.errors import FileSystemError

CHUNK_SIZE = 64 * 1024
ID_LENGTH = 16


def hash_file(file_path) -> tuple[str, int]:
    """
    Return the hex sha256 digest of the file contents along with its size in bytes. The file is
    read in chunks so large wallpapers don't have to fit in memory.
    """

    digest = hashlib.sha256()
    size = 0

    try:
        with Path(file_path).open("rb") as file:
            while chunk := file.read(CHUNK_SIZE):
                digest.update(chunk)
                size += len(chunk)

    except OSError as error:
        raise FileSystemError(file_path, error) from error

    return digest.hexdigest(), size


def generate_id(url: str) -> str:
    """Derive a wallpaper id from its remote url. Same url, same id, regardless of content."""

    return hashlib.sha256(url.encode("utf-8")).hexdigest()[:ID_LENGTH]
