"""
wallkeep previous

This module defines the 'previous' subcommand, which steps one wallpaper back in history from the one
currently on screen and applies it. Stepping back doesn't count as using the wallpaper, so history
keeps its order and 'next' can walk forward again.
"""

from pathlib import Path

import click

from wallkeep.WallkeepContext import WallkeepContext
from wallkeep.cli_utils.console import describe
from wallkeep.cli_utils.decorators import catch_errors
from wallkeep.cli_utils.decorators import pass_wallkeep
from wallkeep.cli_utils.utils import apply_wallpaper


@click.command(name="previous")
@click.option(
    "--script",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Script that sets the wallpaper. Receives the image path as its argument.",
)
@pass_wallkeep
@catch_errors
def cli(obj: WallkeepContext, script):
    """Go back to the previous wallpaper in your history."""

    record = obj.cache.get_previous()
    if record is None:
        raise Exception("no previous wallpaper available.")

    describe(f":arrow_left-emoji: going back to '{record.name}'")
    apply_wallpaper(obj, record, script)
