"""
wallkeep next

This module defines the 'next' subcommand, the counterpart of 'previous'. It steps one wallpaper
forward in history from the one currently on screen and applies it.
"""

from pathlib import Path

import click

from wallkeep.WallkeepContext import WallkeepContext
from wallkeep.cli_utils.console import describe
from wallkeep.cli_utils.decorators import catch_errors
from wallkeep.cli_utils.decorators import pass_wallkeep
from wallkeep.cli_utils.utils import apply_wallpaper


@click.command(name="next")
@click.option(
    "--script",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Script that sets the wallpaper. Receives the image path as its argument.",
)
@pass_wallkeep
@catch_errors
def cli(obj: WallkeepContext, script):
    """Go forward to the next wallpaper in your history."""

    record = obj.cache.get_next()
    if record is None:
        raise Exception("no next wallpaper available.")

    describe(f":arrow_right-emoji: going forward to '{record.name}'")
    apply_wallpaper(obj, record, script)
