"""
wallkeep tag

This module defines the 'tag' command group: free form labels on wallpapers. 'add' and 'remove' act on
the current wallpaper, 'list' finds wallpapers carrying every one of the given tags.
"""

import click

from wallkeep.models import WallpaperRecord
from wallkeep.WallkeepContext import WallkeepContext
from wallkeep.cli_utils.console import confirm_success
from wallkeep.cli_utils.console import describe
from wallkeep.cli_utils.decorators import catch_errors
from wallkeep.cli_utils.decorators import pass_wallkeep
from wallkeep.cli_utils.decorators import require_current
from wallkeep.cli_utils.utils import print_wallpapers


@click.group(name="tag")
def cli():
    """Tag wallpapers and find them by tag."""


@cli.command(name="add")
@click.argument("tags", nargs=-1, required=True)
@pass_wallkeep
@catch_errors
@require_current
def add(obj: WallkeepContext, current: WallpaperRecord, tags):
    """Tag the current wallpaper."""

    obj.cache.add_tags(current.id, tags)
    confirm_success(f":label-emoji: tagged '{current.name}': {', '.join(tags)}")


@cli.command(name="remove")
@click.argument("tags", nargs=-1, required=True)
@pass_wallkeep
@catch_errors
@require_current
def remove(obj: WallkeepContext, current: WallpaperRecord, tags):
    """Remove tags from the current wallpaper."""

    obj.cache.remove_tags(current.id, tags)
    confirm_success(f"removed tags from '{current.name}': {', '.join(tags)}")


@cli.command(name="list")
@click.argument("tags", nargs=-1, required=True)
@pass_wallkeep
@catch_errors
def list_tagged(obj: WallkeepContext, tags):
    """List wallpapers that have all of the given tags."""

    records = obj.cache.get_by_tags(tags)
    if not records:
        describe(f"no wallpapers tagged {', '.join(tags)}")
        return

    print_wallpapers(records, title=f"Tagged {', '.join(tags)} ({len(records)})")
