"""
wallkeep search

This module defines the 'search' subcommand. It searches wallhaven for wallpapers matching the
query and filters, picks one of the results at random, makes sure it is in the cache (downloading it
only when needed) and applies it.

A random page between 1 and --page is requested so repeated searches don't keep landing on the same
first page of results.

The downloaded file is fingerprinted before it is added: wallhaven sometimes serves identical bytes
under different urls, and when the cache already holds the same content the fresh download is deleted
and the cached copy is used instead.
"""

import random
from pathlib import Path

import click

from wallkeep import wallhaven_handler
from wallkeep.cache.hasher import generate_id
from wallkeep.cache.hasher import hash_file
from wallkeep.errors import CacheError
from wallkeep.models import WallpaperRecord
from wallkeep.wallhaven_handler import RemoteWallpaper
from wallkeep.wallhaven_handler import SearchCriteria
from wallkeep.wallhaven_handler import VALID_ORDERS
from wallkeep.wallhaven_handler import VALID_RANGES
from wallkeep.wallhaven_handler import VALID_SORTS
from wallkeep.WallkeepContext import WallkeepContext

from wallkeep.cli_utils.console import confirm_success
from wallkeep.cli_utils.console import describe
from wallkeep.cli_utils.console import warn
from wallkeep.cli_utils.decorators import catch_errors
from wallkeep.cli_utils.decorators import pass_wallkeep
from wallkeep.cli_utils.utils import apply_wallpaper


def validate_flags(ctx, param, value):
    """click callback for the 3-digit category / purity bitmasks, e.g. '110'."""

    if value is None:
        return value

    if len(value) != 3 or set(value) - {"0", "1"}:
        raise click.BadParameter("must be 3 characters of '0' or '1', e.g. 110")

    return value


@click.command(name="search")
@click.argument("query", required=False, default="")
@click.option(
    "--categories",
    "-c",
    callback=validate_flags,
    help="Category filter, 3 flags for general|anime|people, e.g. '010' for anime only.",
)
@click.option(
    "--purity",
    "-p",
    callback=validate_flags,
    help="Purity filter, 3 flags for sfw|sketchy|nsfw, e.g. '110' for sfw and sketchy.",
)
@click.option("--sort", "-s", "sorting", type=click.Choice(VALID_SORTS), help="Sort results by.")
@click.option("--order", "-o", type=click.Choice(VALID_ORDERS), help="Sort order.")
@click.option(
    "--range",
    "-r",
    "top_range",
    type=click.Choice(VALID_RANGES),
    help="Time range for toplist sorting.",
)
@click.option(
    "--page",
    "max_pages",
    type=click.IntRange(1, 100),
    help="Pick a random results page between 1 and this number.",
)
@click.option(
    "--ratio",
    "ratios",
    multiple=True,
    help="Aspect ratio to allow, e.g. --ratio 16x9 --ratio 21x9.",
)
@click.option("--at-least", help="Minimum resolution, e.g. 2560x1440.")
@click.option(
    "--download-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory to save wallpapers in.",
)
@click.option(
    "--script",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Script that sets the wallpaper. Receives the image path as its argument.",
)
@pass_wallkeep
@catch_errors
def cli(
    obj: WallkeepContext,
    query,
    categories,
    purity,
    sorting,
    order,
    top_range,
    max_pages,
    ratios,
    at_least,
    download_dir,
    script,
):
    """
    Search wallhaven and set a random result as your wallpaper.
    """

    config = obj.config
    cache = obj.cache

    categories = categories or config.CATEGORIES
    purity = purity or config.PURITY
    download_dir = (download_dir or config.WALLKEEP_DOWNLOAD_DIR).expanduser()

    try:
        removed = cache.cleanup_invalid_entries()
        if removed:
            describe(f":broom-emoji: removed {removed} cache entries whose files are gone")

    except CacheError as error:
        warn(f"could not clean up invalid cache entries: {error}")

    criteria = SearchCriteria(
        tags=[query] if query else [],
        categories=categories,
        purity=purity,
        sorting=sorting or config.SORTING,
        order=order or config.ORDER,
        top_range=top_range or config.TOP_RANGE,
        at_least=at_least or config.AT_LEAST,
        ratios=list(ratios) or config.ratios,
        page=random.randint(1, max_pages or config.MAX_PAGES),
    )

    describe(
        f":mag-emoji: searching wallhaven{f' for {query!r}' if query else ''} (page {criteria.page}) ...",
    )
    results = wallhaven_handler.search(criteria)

    if not results:
        raise Exception("no wallpapers found, try a different query or filters.")

    item = random.choice(results)
    record = get_or_download(obj, item, download_dir, categories, purity)

    apply_wallpaper(obj, record, script)


def get_or_download(
    obj: WallkeepContext, item: RemoteWallpaper, download_dir: Path, categories: str, purity: str
) -> WallpaperRecord:
    """
    Return the cache record for a search result, reusing whatever is already on disk. Reusing a
    cached wallpaper counts as a use, a freshly added one already starts with one.
    """

    cache = obj.cache
    download_dir.mkdir(parents=True, exist_ok=True)
    local_path = download_dir / item.file_name

    if local_path.is_file():
        record = cache.get_by_id(generate_id(item.url))

        if record is None:
            describe(f":floppy_disk-emoji: found '{local_path.name}' on disk, adding it to the cache")
            return cache.add_wallpaper(item.url, local_path, categories, purity)

        describe(f":recycle-emoji: using cached '{record.name}'")
        cache.mark_as_used(record.id)
        return record

    describe(f":earth_asia-emoji: downloading {item.url} ...")
    local_path = wallhaven_handler.download(item, download_dir)

    digest, _ = hash_file(local_path)
    duplicate = cache.find_duplicate(digest)

    if duplicate is not None and duplicate.path != local_path.resolve():
        local_path.unlink()
        describe(f":recycle-emoji: '{item.file_name}' is a duplicate of cached '{duplicate.name}'")
        cache.mark_as_used(duplicate.id)
        return duplicate

    record = cache.add_wallpaper(item.url, local_path, categories, purity)
    confirm_success(
        f":floppy_disk-emoji: saved '{record.name}' to {record.path.parent} ({record.size_mb:.2f} MB)"
    )
    return record
