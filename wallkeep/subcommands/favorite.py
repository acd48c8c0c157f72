"""
wallkeep favorite

This module defines the 'favorite' command group. Favorites are never evicted from the cache, and
'favorite random' puts one of them back on screen.
"""

from pathlib import Path

import click

from wallkeep.models import WallpaperRecord
from wallkeep.WallkeepContext import WallkeepContext
from wallkeep.cli_utils.console import confirm_success
from wallkeep.cli_utils.console import describe
from wallkeep.cli_utils.decorators import catch_errors
from wallkeep.cli_utils.decorators import pass_wallkeep
from wallkeep.cli_utils.decorators import require_current
from wallkeep.cli_utils.utils import apply_wallpaper
from wallkeep.cli_utils.utils import print_wallpapers


@click.group(name="favorite")
def cli():
    """Manage favorite wallpapers."""


@cli.command(name="add")
@pass_wallkeep
@catch_errors
@require_current
def add(obj: WallkeepContext, current: WallpaperRecord):
    """Toggle favorite on the current wallpaper."""

    if obj.cache.toggle_favorite(current.id):
        confirm_success(f":heart-emoji: added '{current.name}' to favorites")
    else:
        confirm_success(f":broken_heart-emoji: removed '{current.name}' from favorites")


@cli.command(name="list")
@pass_wallkeep
@catch_errors
def list_favorites(obj: WallkeepContext):
    """List favorite wallpapers, best rated first."""

    favorites = obj.cache.get_favorites()
    if not favorites:
        describe("no favorite wallpapers yet. Use 'wallkeep favorite add' to add the current one.")
        return

    print_wallpapers(favorites, title=f"Favorites ({len(favorites)})")


@cli.command(name="random")
@click.option(
    "--script",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Script that sets the wallpaper. Receives the image path as its argument.",
)
@pass_wallkeep
@catch_errors
def random_favorite(obj: WallkeepContext, script):
    """Set a random favorite as your wallpaper."""

    favorite = obj.cache.get_random_favorite()
    if favorite is None:
        raise Exception("no favorite wallpapers available.")

    describe(f":game_die-emoji: picked '{favorite.name}'")
    obj.cache.mark_as_used(favorite.id)
    apply_wallpaper(obj, favorite, script)
