"""
wallkeep Decorators

Decorators shared by the subcommands. A typical subcommand stacks them like so:

    @click.command(name="rate")
    @click.argument("rating", type=int)
    @pass_wallkeep
    @catch_errors
    @require_current
    def cli(obj: WallkeepContext, current: WallpaperRecord, rating: int):
        '''Rate the current wallpaper'''

        obj.cache.set_rating(current.id, rating)

pass_wallkeep hands the command the WallkeepContext stored by the 'cli' group, catch_errors turns
any exception into a formatted failure message and exit code 1, and require_current looks up the
wallpaper that is on screen and fails early when there is none.
"""

from sys import exit
from functools import wraps

import click

from wallkeep.WallkeepContext import WallkeepContext
from wallkeep.cli_utils.console import fail

pass_wallkeep = click.make_pass_decorator(WallkeepContext)


def catch_errors(func):
    """
    Catch and format errors with the "fail" console template and gracefully
    exit the application with an error code.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as error:
            fail(str(error))
            exit(1)

    return wrapper


def require_current(func):
    """
    Decorator for commands that act on the wallpaper currently on screen. Looks it up in the cache and
    passes it as the second positional argument, after the WallkeepContext.

    The wallpaper on screen is the one under the view pointer, which 'previous', 'next' and 'history'
    move without marking anything as used. Only when there is no pointer (or it points at a wallpaper
    that is gone) is the most recently used wallpaper taken instead.
    """

    @wraps(func)
    def wrapper(obj: WallkeepContext, *args, **kwargs):
        cache = obj.cache
        current = cache.get_by_id(cache.get_current_view()) or cache.get_current()
        if current is None:
            raise Exception(
                "no current wallpaper found in the cache. Did you run 'search' to get one?"
            )
        return func(obj, current, *args, **kwargs)

    return wrapper
