"""
wallkeep

Fetch wallpapers from wallhaven.cc, keep every one you've seen in a local cache, and step back and
forth through what was on your screen.

This module defines the entry point to the wallkeep CLI, a 'cli' command group. The group callback
loads the configuration, sets up logging and console output, and stores a WallkeepContext on the
click context for the subcommands. The wallpaper cache is opened lazily by the first subcommand that
needs it and closed when the command finishes.

Subcommands live in the subcommands/ directory, one module per command, each defining a 'cli'
command. They are discovered and attached at startup by main().
"""

import click

from wallkeep.config import init
from wallkeep.WallkeepContext import WallkeepContext

from wallkeep.cli_utils.decorators import catch_errors
from wallkeep.cli_utils.utils import import_commands
from wallkeep.cli_utils.utils import attach_commands
from wallkeep.cli_utils.console import console
from wallkeep.cli_utils.console import setup_logging


@click.group()
@catch_errors
@click.pass_context
@click.option(
    "--verbose",
    "verbosity",
    flag_value="verbose",
    help="Log what wallkeep is doing (cache additions, evictions, downloads) to stderr.",
)
@click.option(
    "--quiet",
    "verbosity",
    flag_value="quiet",
    help="Silence all output printed to stdout.",
)
@click.version_option()  # reads version from the installed package metadata
def cli(ctx: click.Context, verbosity):
    """
    wallkeep

    fetch wallpapers from wallhaven.cc and keep a browsable history of everything you've seen.


    ====================
    Quickstart
    ====================

    Point wallkeep at a script that sets your wallpaper (it receives the image path as its only
    argument) by editing SCRIPT_PATH in ~/.config/wallkeep/config.json, then:

        $ wallkeep search nature

    Changed your mind? Step back through your history:

        $ wallkeep previous

        $ wallkeep next


    ====================
    Curating
    ====================

        $ wallkeep favorite add          (toggle favorite on the current wallpaper)

        $ wallkeep rate 5

        $ wallkeep tag add forest mist

        $ wallkeep favorite random


    ====================
    Housekeeping
    ====================

        $ wallkeep history

        $ wallkeep stats

        $ wallkeep cleanup --mode old --older-than 3M --dry-run

    The cache evicts least recently used wallpapers on its own once it grows past MAX_CACHE_COUNT
    wallpapers or MAX_CACHE_SIZE_MB megabytes. Favorites are never evicted.
    """

    config = init()

    level = "INFO" if verbosity == "verbose" else config.LOG_LEVEL
    setup_logging(level)

    # quiet silences regular output only, errors still go to stderr
    console.quiet = verbosity == "quiet"

    ctx.obj = WallkeepContext(config=config)
    ctx.call_on_close(ctx.obj.close)


def main():

    commands = import_commands()
    attach_commands(cli, commands)
    cli()


if __name__ == "__main__":
    main()
