"""
wallkeep rate

This module defines the 'rate' subcommand, which gives the current wallpaper 1 to 5 stars.
"""

import click

from wallkeep.models import WallpaperRecord
from wallkeep.WallkeepContext import WallkeepContext
from wallkeep.cli_utils.console import confirm_success
from wallkeep.cli_utils.decorators import catch_errors
from wallkeep.cli_utils.decorators import pass_wallkeep
from wallkeep.cli_utils.decorators import require_current
from wallkeep.cli_utils.utils import stars


@click.command(name="rate")
@click.argument("rating", type=int)
@pass_wallkeep
@catch_errors
@require_current
def cli(obj: WallkeepContext, current: WallpaperRecord, rating: int):
    """Rate the current wallpaper from 1 to 5."""

    obj.cache.set_rating(current.id, rating)
    confirm_success(f"rated '{current.name}' {stars(rating)}")
