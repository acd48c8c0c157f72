"""
wallkeep stats

This module defines the 'stats' subcommand, a summary of what's in the cache and how it's been used.
With --json the summary is printed as JSON for scripts and status bars.
"""

import click
from rich.table import Table

from wallkeep.models import CacheStatistics
from wallkeep.WallkeepContext import WallkeepContext
from wallkeep.cli_utils.console import console
from wallkeep.cli_utils.decorators import catch_errors
from wallkeep.cli_utils.decorators import pass_wallkeep


@click.command(name="stats")
@click.option("--json", "as_json", is_flag=True, help="Print statistics as JSON.")
@pass_wallkeep
@catch_errors
def cli(obj: WallkeepContext, as_json):
    """Show cache statistics."""

    stats = obj.cache.get_statistics()

    if as_json:
        console.print_json(data=stats.to_dict())
        return

    console.print(overview_table(stats))

    if stats.most_used:
        table = Table(title="Most used")
        table.add_column("ID")
        table.add_column("File")
        table.add_column("Uses", justify="right")
        for usage in stats.most_used:
            table.add_row(usage.id, usage.path, str(usage.use_count))
        console.print(table)

    if stats.top_tags:
        table = Table(title="Top tags")
        table.add_column("Tag")
        table.add_column("Wallpapers", justify="right")
        for tag in stats.top_tags:
            table.add_row(tag.tag, str(tag.count))
        console.print(table)

    if stats.resolutions:
        table = Table(title="Resolutions")
        table.add_column("Resolution")
        table.add_column("Wallpapers", justify="right")
        for resolution in stats.resolutions:
            table.add_row(resolution.resolution, str(resolution.count))
        console.print(table)


def overview_table(stats: CacheStatistics) -> Table:
    def when(moment):
        return moment.astimezone().strftime("%Y-%m-%d %H:%M:%S") if moment else "-"

    table = Table(title="Wallpaper cache", show_header=False)
    table.add_column("Statistic")
    table.add_column("Value", justify="right")

    table.add_row("Total wallpapers", str(stats.total_wallpapers))
    table.add_row("Valid / invalid", f"{stats.valid_wallpapers} / {stats.invalid_wallpapers}")
    table.add_row("Total size", f"{stats.total_size_mb:.2f} MB")
    table.add_row("Oldest download", when(stats.oldest_download))
    table.add_row("Newest download", when(stats.newest_download))
    table.add_row("Current wallpaper", stats.current_wallpaper_id or "-")
    table.add_row("Previous wallpaper", stats.previous_wallpaper_id or "-")
    table.add_row("Favorites", str(stats.favorite_count))
    table.add_row("Average rating", f"{stats.average_rating:.1f}" if stats.average_rating else "-")
    table.add_row("Used in the last week", str(stats.unique_wallpapers_last_week))
    table.add_row("Used in the last month", str(stats.unique_wallpapers_last_month))
    table.add_row("History entries", str(stats.total_history_entries))

    return table
