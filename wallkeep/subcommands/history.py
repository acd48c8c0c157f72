"""
wallkeep history

This module defines the 'history' subcommand. It lists the wallpapers you've used, most recent
first, one row per wallpaper. When a wallpaper script is configured it also offers to jump straight
back to one of them.
"""

from pathlib import Path

import click

from wallkeep.cache.history import DEFAULT_HISTORY_LIMIT
from wallkeep.WallkeepContext import WallkeepContext
from wallkeep.cli_utils.console import describe
from wallkeep.cli_utils.decorators import catch_errors
from wallkeep.cli_utils.decorators import pass_wallkeep
from wallkeep.cli_utils.utils import apply_wallpaper
from wallkeep.cli_utils.utils import print_wallpapers


@click.command(name="history")
@click.option(
    "--limit",
    "-n",
    type=int,
    default=DEFAULT_HISTORY_LIMIT,
    show_default=True,
    help="Number of wallpapers to list.",
)
@click.option(
    "--script",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Script that sets the wallpaper. Receives the image path as its argument.",
)
@pass_wallkeep
@catch_errors
def cli(obj: WallkeepContext, limit, script):
    """Show your wallpaper history and optionally switch to one of them."""

    records = obj.cache.get_history(limit)
    if not records:
        describe("no wallpaper history yet. Run 'wallkeep search' to get started.")
        return

    print_wallpapers(
        records,
        title=f"Wallpaper history ({len(records)} shown)",
        current_id=obj.cache.get_current_view() or records[0].id,
    )

    script = script or obj.config.SCRIPT_PATH
    if not script:
        return

    choice = click.prompt(
        "Apply wallpaper # (0 to keep the current one)",
        type=click.IntRange(0, len(records)),
        default=0,
    )
    if choice == 0:
        return

    apply_wallpaper(obj, records[choice - 1], script)
