"""
wallkeep cleanup

This module defines the 'cleanup' subcommand for freeing disk space by hand. Three modes:

    unused    wallpapers that were only ever shown once, when they were downloaded
    old       wallpapers not used within --older-than (e.g. 30d, 2w, 6M, 1y)
    invalid   cache entries whose image file was deleted outside of wallkeep

Use --dry-run to see what would be removed first.
"""

import click

from wallkeep.errors import CacheError
from wallkeep.WallkeepContext import WallkeepContext
from wallkeep.cli_utils.console import confirm_success
from wallkeep.cli_utils.console import describe
from wallkeep.cli_utils.console import warn
from wallkeep.cli_utils.decorators import catch_errors
from wallkeep.cli_utils.decorators import pass_wallkeep
from wallkeep.cli_utils.utils import parse_duration

CLEANUP_MODES = ["unused", "old", "invalid"]


@click.command(name="cleanup")
@click.option(
    "--mode",
    type=click.Choice(CLEANUP_MODES),
    default="unused",
    show_default=True,
    help="Which wallpapers to remove.",
)
@click.option(
    "--older-than",
    default="30d",
    show_default=True,
    help="For --mode old: remove wallpapers not used within this long (e.g. 30d, 2w, 6M, 1y).",
)
@click.option("--dry-run", is_flag=True, help="Show what would be removed without removing it.")
@pass_wallkeep
@catch_errors
def cli(obj: WallkeepContext, mode, older_than, dry_run):
    """Remove unused, old or invalid wallpapers from the cache."""

    cache = obj.cache

    if mode == "invalid":
        if dry_run:
            invalid = cache.get_statistics().invalid_wallpapers
            describe(f"would remove {invalid} invalid cache entries")
            return

        removed = cache.cleanup_invalid_entries()
        confirm_success(f":broom-emoji: removed {removed} invalid cache entries")
        return

    if mode == "old":
        to_remove = cache.get_old_wallpapers(parse_duration(older_than))
        describe(f"found {len(to_remove)} wallpapers not used in {older_than}")

    else:
        to_remove = cache.get_unused_wallpapers()
        describe(f"found {len(to_remove)} unused wallpapers")

    if not to_remove:
        describe("nothing to remove")
        return

    freed = 0
    for record in to_remove:
        last_used = record.last_used_at.astimezone().strftime("%Y-%m-%d %H:%M:%S")

        if dry_run:
            describe(f"would remove {record.path} ({record.size_mb:.2f} MB, last used {last_used})")
            freed += record.size
            continue

        try:
            cache.remove_wallpaper(record.id)

        except CacheError as error:
            warn(f"could not remove {record.path}: {error}")
            continue

        describe(f"removed {record.path}")
        freed += record.size

    if dry_run:
        describe(f"\nwould free {freed / 1024 / 1024:.2f} MB. Run without --dry-run to remove them.")
    else:
        confirm_success(f":broom-emoji: freed {freed / 1024 / 1024:.2f} MB")
