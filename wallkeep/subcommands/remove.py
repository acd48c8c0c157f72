"""
wallkeep remove

This module defines the 'remove' subcommand, which deletes a wallpaper from the cache together with its
image file, tags and history.
"""

import click

from wallkeep.WallkeepContext import WallkeepContext
from wallkeep.cli_utils.console import confirm_success
from wallkeep.cli_utils.decorators import catch_errors
from wallkeep.cli_utils.decorators import pass_wallkeep


@click.command(name="remove")
@click.argument("wallpaper_id")
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation.")
@pass_wallkeep
@catch_errors
def cli(obj: WallkeepContext, wallpaper_id, yes):
    """Remove a wallpaper and delete its file. Find ids with 'wallkeep history'."""

    if not yes:
        click.confirm(f"Delete wallpaper {wallpaper_id} and its file?", abort=True)

    record = obj.cache.remove_wallpaper(wallpaper_id)
    confirm_success(f":wastebasket-emoji: removed '{record.name}' ({record.path})")
