"""
wallkeep CLI Utilities

This module contains utilities shared across the click subcommands: applying a wallpaper from the
cache, parsing durations, rendering lists of wallpapers, and importing subcommands from the
subcommands directory.
"""

import re
import sys
import inspect
import importlib.util

from datetime import timedelta
from pathlib import Path
from collections.abc import Iterable
from typing import Optional

import click
from rich.table import Table

from wallkeep import wallpaper_handler
from wallkeep.models import WallpaperRecord
from wallkeep.WallkeepContext import WallkeepContext
from wallkeep.cli_utils.console import console
from wallkeep.cli_utils.console import confirm_success
from wallkeep.cli_utils.console import warn

DURATION_UNITS = {
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
    "M": timedelta(days=30),
    "y": timedelta(days=365),
}

DURATION_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)([smhdwMy])$")

SUBCOMMANDS_DIR = Path(__file__).resolve().parent.parent / "subcommands"


def parse_duration(text: str) -> timedelta:
    """
    Parse durations like "30d", "2w", "6M" or "1y". M is a 30 day month and y a 365 day year;
    lowercase m means minutes.
    """

    match = DURATION_PATTERN.match(text.strip())
    if match is None:
        raise click.BadParameter(
            f"'{text}' is not a valid duration. Use a number followed by one of "
            f"{', '.join(DURATION_UNITS)}, e.g. 30d or 2w."
        )

    value, unit = match.groups()
    return float(value) * DURATION_UNITS[unit]


def apply_wallpaper(obj: WallkeepContext, record: WallpaperRecord, script: Optional[str] = None):
    """
    Put a cached wallpaper on screen: run the configured script on it (if any) and move the view
    pointer to it. Doesn't count as a use; callers that want that call mark_as_used themselves.
    """

    script = script or obj.config.SCRIPT_PATH

    if script:
        wallpaper_handler.run_script(script, record.path)
        confirm_success(f":white_check_mark-emoji: wallpaper set to '{record.name}'")

    else:
        warn("no script configured, set SCRIPT_PATH in the config or pass --script to apply wallpapers")

    obj.cache.set_current_view(record.id)


def stars(rating: int) -> str:
    return "★" * rating if rating else ""


def wallpaper_table(records: Iterable[WallpaperRecord], title: str = None, current_id: str = "") -> Table:
    table = Table(title=title)
    table.add_column("#", justify="right")
    table.add_column("ID")
    table.add_column("File")
    table.add_column("Last used")
    table.add_column("Uses", justify="right")
    table.add_column("Rating")
    table.add_column("Tags")

    for index, record in enumerate(records, start=1):
        name = record.name
        if record.is_favorite:
            name = f":heart-emoji: {name}"
        if record.id == current_id:
            name = f"[bold]{name}[/]"

        table.add_row(
            str(index),
            record.id,
            name,
            record.last_used_at.astimezone().strftime("%Y-%m-%d %H:%M:%S"),
            str(record.use_count),
            stars(record.rating),
            ", ".join(sorted(record.tags)),
        )

    return table


def print_wallpapers(records: list[WallpaperRecord], title: str = None, current_id: str = ""):
    console.print(wallpaper_table(records, title=title, current_id=current_id))


def import_commands(module_paths: Iterable = None) -> list[click.Command]:
    """
    Retrieve a set of click Commands from module_paths. Default directory is the built in subcommands
    directory for commands that come pre-installed with wallkeep.

    A valid wallkeep command should define a "cli" function that is wrapped as a click Command
    object. This function will be exposed as a command to the end user. Set the 'name' keyword
    argument in the @click.command decorator to set the name of the command intended for the end user.
    """

    if module_paths is None:
        module_paths = sorted(SUBCOMMANDS_DIR.glob("*.py"))

    commands = []

    for path in module_paths:
        name = inspect.getmodulename(path)
        if name is None or name == "__init__":
            continue

        # Recipe for loading and executing modules from given filepath comes from importlib docs:
        # https://docs.python.org/3/library/importlib.html#importing-a-source-file-directly
        module_name = f"wallkeep.subcommands.{name}"
        spec = importlib.util.spec_from_file_location(module_name, path)
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        spec.loader.exec_module(module)

        try:
            cli = getattr(module, "cli")
            commands.append(cli)

        except AttributeError:
            warn(f"Cannot add command {name}: no 'cli' function found.")

    return commands


def attach_commands(group: click.Group, commands: list[click.Command]):
    """
    Attach each command in a list of click Command objects to a provided group. Useful when
    retrieving a dynamic list of subcommands with import_commands().
    """

    for command in commands:
        group.add_command(command)
