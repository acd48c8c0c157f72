"""
Test the CLI driver for wallkeep

cli.py is the entry point for the wallkeep program. These tests invoke the 'cli' group with click's
CliRunner against a temporary config and cache (see the config_dir fixture), then open the cache
directly to check what the commands did. wallhaven is never contacted: search() and download() are
patched.

*** Fixtures ***
- config_dir, make_image, clock (defined in conftest.py)
- tmp_path (defined by Pytest)
"""

import json
import shutil
import stat
import unittest.mock
from contextlib import contextmanager

import pytest
import click
from click.testing import CliRunner

from wallkeep.cli import cli
from wallkeep.cache.hasher import generate_id
from wallkeep.cache.wallpaper_cache import WallpaperCache
from wallkeep.wallhaven_handler import RemoteWallpaper

from wallkeep.cli_utils.utils import import_commands
from wallkeep.cli_utils.utils import attach_commands

runner = CliRunner()


@pytest.fixture(scope="module")
def subcommands():
    """
    Import all of the commands found in the /subcommands folder *without* invoking the entrypoint.
    """

    return import_commands()


@pytest.fixture(autouse=True)
def setup(subcommands, entry_point: click.Group = cli):
    attach_commands(entry_point, subcommands)
    yield
    # teardown the commands that were added to clean the test environment
    entry_point.commands = {}


@pytest.fixture
def open_cache(tmp_path, clock):
    """Open the cache the CLI uses, outside of the CLI."""

    @contextmanager
    def inner():
        with WallpaperCache(tmp_path / "cache", clock=clock) as cache:
            yield cache

    return inner


@pytest.fixture
def seeded(config_dir, open_cache, make_image):
    """Three wallpapers A, B, C used in that order. Returns their ids."""

    ids = []
    with open_cache() as cache:
        for name in ("a", "b", "c"):
            path = make_image(f"wallhaven-{name}.png")
            ids.append(cache.add_wallpaper(f"https://w.wallhaven.cc/full/{path.name}", path).id)

    return ids


@pytest.fixture
def applied(tmp_path):
    return tmp_path / "applied.txt"


@pytest.fixture
def script(tmp_path, applied):
    """Executable wallpaper script writing the path it's called with to 'applied'."""

    script = tmp_path / "set-wallpaper.sh"
    script.write_text(f'#!/bin/sh\nprintf "%s" "$1" > "{applied}"\n')
    script.chmod(script.stat().st_mode | stat.S_IXUSR)

    return script


def remote(name: str) -> RemoteWallpaper:
    return RemoteWallpaper(
        id=name, url=f"https://w.wallhaven.cc/full/{name[:2]}/wallhaven-{name}.png"
    )


@pytest.fixture
def fake_wallhaven(make_image):
    """
    Patch wallhaven search and download. 'results' is what search returns; download copies a fresh
    image (or the bytes of 'source' if set) into the download directory.
    """

    state = {"results": [], "source": None}

    def fake_download(item, dest_dir):
        dest = dest_dir / item.file_name
        shutil.copy(state["source"] or make_image(), dest)
        return dest

    with unittest.mock.patch(
        "wallkeep.wallhaven_handler.search", side_effect=lambda criteria: state["results"]
    ) as mock_search, unittest.mock.patch(
        "wallkeep.wallhaven_handler.download", side_effect=fake_download
    ) as mock_download:
        state["search"] = mock_search
        state["download"] = mock_download
        yield state


"""
Invocation
"""


def test_invocation_no_args():
    result = runner.invoke(cli)
    assert "Usage" in result.output


def test_invocation_failure_invalid_args(config_dir):
    result = runner.invoke(cli, ["not-a-command"])
    assert result.exit_code != 0


def test_invocation_help_lists_commands():
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    for name in ("search", "previous", "next", "history", "stats", "cleanup", "favorite"):
        assert name in result.output


def test_invalid_config(config_dir):
    (config_dir / "config.json").write_text('{"MAX_CACHE_COUNT": -5}')

    result = runner.invoke(cli, ["stats"])

    assert result.exit_code == 1
    assert "MAX_CACHE_COUNT" in result.output


def test_option_quiet(seeded):
    result = runner.invoke(cli, ["--quiet", "stats"])

    assert result.exit_code == 0
    assert result.output == ""


"""
search
"""


def test_search_downloads_and_applies(
    config_dir, fake_wallhaven, script, applied, tmp_path, open_cache
):
    item = remote("abc123")
    fake_wallhaven["results"] = [item]

    result = runner.invoke(cli, ["search", "nature", "--script", str(script)])

    assert result.exit_code == 0, result.output
    criteria = fake_wallhaven["search"].call_args.args[0]
    assert criteria.tags == ["nature"]
    assert criteria.categories == "010"

    with open_cache() as cache:
        record = cache.get_current()
        assert record.id == generate_id(item.url)
        assert record.path == (tmp_path / "downloads" / item.file_name).resolve()
        assert record.use_count == 1
        assert cache.get_current_view() == record.id

    assert applied.read_text() == str(record.path.resolve())


def test_search_reuses_file_on_disk(config_dir, fake_wallhaven, open_cache):
    item = remote("abc123")
    fake_wallhaven["results"] = [item]

    runner.invoke(cli, ["search"])
    result = runner.invoke(cli, ["search"])

    assert result.exit_code == 0, result.output
    assert fake_wallhaven["download"].call_count == 1

    with open_cache() as cache:
        assert cache.get_by_id(generate_id(item.url)).use_count == 2


def test_search_detects_duplicate_content(config_dir, fake_wallhaven, make_image, open_cache):
    fake_wallhaven["source"] = make_image(color=(5, 5, 5))

    fake_wallhaven["results"] = [remote("first1")]
    runner.invoke(cli, ["search"])
    fake_wallhaven["results"] = [remote("second")]
    result = runner.invoke(cli, ["search"])

    assert result.exit_code == 0, result.output
    assert "duplicate" in result.output

    with open_cache() as cache:
        first = cache.get_by_id(generate_id(remote("first1").url))
        assert cache.store.totals()[0] == 1
        assert first.use_count == 2
        assert not (first.path.parent / remote("second").file_name).exists()


def test_search_no_results(config_dir, fake_wallhaven):
    result = runner.invoke(cli, ["search", "nothing-matches-this"])

    assert result.exit_code == 1
    assert "no wallpapers found" in result.output


@pytest.mark.parametrize("flags", [["-c", "2"], ["-p", "1100"], ["--sort", "best"], ["--page", "0"]])
def test_search_invalid_options(config_dir, fake_wallhaven, flags):
    result = runner.invoke(cli, ["search", *flags])

    assert result.exit_code == 2
    fake_wallhaven["search"].assert_not_called()


def test_search_without_script_warns(config_dir, fake_wallhaven):
    fake_wallhaven["results"] = [remote("abc123")]

    result = runner.invoke(cli, ["search"])

    assert result.exit_code == 0
    assert "no script configured" in result.output


"""
previous / next / history
"""


def test_previous_and_next(seeded, open_cache):
    a, b, c = seeded

    result = runner.invoke(cli, ["previous"])
    assert result.exit_code == 0, result.output
    with open_cache() as cache:
        assert cache.get_current_view() == b

    runner.invoke(cli, ["previous"])
    with open_cache() as cache:
        assert cache.get_current_view() == a

    result = runner.invoke(cli, ["previous"])
    assert result.exit_code == 1
    assert "no previous wallpaper" in result.output

    runner.invoke(cli, ["next"])
    with open_cache() as cache:
        assert cache.get_current_view() == b
        # navigating doesn't count as a use
        assert cache.get_by_id(b).use_count == 1
        assert cache.get_current().id == c


def test_next_at_newest(seeded, open_cache):
    with open_cache() as cache:
        cache.set_current_view(seeded[2])

    result = runner.invoke(cli, ["next"])

    assert result.exit_code == 1
    assert "no next wallpaper" in result.output


def test_previous_runs_script(seeded, script, applied, open_cache):
    result = runner.invoke(cli, ["previous", "--script", str(script)])

    assert result.exit_code == 0, result.output
    with open_cache() as cache:
        assert applied.read_text() == str(cache.get_by_id(seeded[1]).path.resolve())


def test_history_empty(config_dir):
    result = runner.invoke(cli, ["history"])

    assert result.exit_code == 0
    assert "no wallpaper history" in result.output


def test_history_apply_choice(seeded, script, open_cache):
    result = runner.invoke(cli, ["history", "--script", str(script)], input="2\n")

    assert result.exit_code == 0, result.output
    assert "Wallpaper history" in result.output
    with open_cache() as cache:
        # most recent first: C, B, A
        assert cache.get_current_view() == seeded[1]


def test_history_keep_current(seeded, script, applied, open_cache):
    result = runner.invoke(cli, ["history", "--script", str(script)], input="\n")

    assert result.exit_code == 0, result.output
    assert not applied.exists()


"""
stats / cleanup / remove
"""


def test_stats(seeded):
    result = runner.invoke(cli, ["stats"])

    assert result.exit_code == 0, result.output
    assert "Total wallpapers" in result.output


def test_stats_json(seeded):
    result = runner.invoke(cli, ["stats", "--json"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["total_wallpapers"] == 3
    assert data["current_wallpaper_id"] == seeded[2]


def test_cleanup_unused(seeded, open_cache):
    a, b, c = seeded
    with open_cache() as cache:
        cache.mark_as_used(a)

    dry_run = runner.invoke(cli, ["cleanup", "--dry-run"])
    assert dry_run.exit_code == 0, dry_run.output
    assert "would free" in dry_run.output
    with open_cache() as cache:
        assert cache.store.totals()[0] == 3

    result = runner.invoke(cli, ["cleanup"])
    assert result.exit_code == 0, result.output
    with open_cache() as cache:
        assert [record.id for record in cache.get_history()] == [a]


def test_cleanup_old(seeded, open_cache):
    # seeded wallpapers were last used in 2024
    result = runner.invoke(cli, ["cleanup", "--mode", "old", "--older-than", "30d"])

    assert result.exit_code == 0, result.output
    with open_cache() as cache:
        assert cache.store.totals()[0] == 0


def test_cleanup_invalid(seeded, open_cache):
    with open_cache() as cache:
        cache.get_by_id(seeded[0]).path.unlink()

    dry_run = runner.invoke(cli, ["cleanup", "--mode", "invalid", "--dry-run"])
    assert "would remove 1" in dry_run.output

    result = runner.invoke(cli, ["cleanup", "--mode", "invalid"])
    assert result.exit_code == 0, result.output
    with open_cache() as cache:
        assert cache.store.totals()[0] == 2


def test_cleanup_bad_duration(seeded):
    result = runner.invoke(cli, ["cleanup", "--mode", "old", "--older-than", "soon"])

    assert result.exit_code != 0
    assert "not a valid duration" in result.output


def test_remove(seeded, open_cache):
    result = runner.invoke(cli, ["remove", seeded[0], "--yes"])

    assert result.exit_code == 0, result.output
    with open_cache() as cache:
        assert cache.get_by_id(seeded[0]) is None


def test_remove_declined(seeded, open_cache):
    result = runner.invoke(cli, ["remove", seeded[0]], input="n\n")

    assert result.exit_code != 0
    with open_cache() as cache:
        assert cache.get_by_id(seeded[0]) is not None


def test_remove_unknown_id(seeded):
    result = runner.invoke(cli, ["remove", "nope", "-y"])

    assert result.exit_code == 1


"""
favorite / rate / tag
"""


def test_favorite_add_toggles_current(seeded, open_cache):
    result = runner.invoke(cli, ["favorite", "add"])
    assert result.exit_code == 0, result.output
    with open_cache() as cache:
        assert cache.get_by_id(seeded[2]).is_favorite

    runner.invoke(cli, ["favorite", "add"])
    with open_cache() as cache:
        assert not cache.get_by_id(seeded[2]).is_favorite


def test_favorite_list_and_random(seeded, open_cache):
    with open_cache() as cache:
        cache.toggle_favorite(seeded[0])

    listed = runner.invoke(cli, ["favorite", "list"])
    assert listed.exit_code == 0, listed.output
    assert "Favorites (1)" in listed.output

    result = runner.invoke(cli, ["favorite", "random"])
    assert result.exit_code == 0, result.output
    with open_cache() as cache:
        assert cache.get_by_id(seeded[0]).use_count == 2
        assert cache.get_current().id == seeded[0]
        assert cache.get_current_view() == seeded[0]


def test_favorite_random_none(seeded):
    result = runner.invoke(cli, ["favorite", "random"])

    assert result.exit_code == 1
    assert "no favorite wallpapers" in result.output


def test_rate(seeded, open_cache):
    result = runner.invoke(cli, ["rate", "4"])

    assert result.exit_code == 0, result.output
    with open_cache() as cache:
        assert cache.get_by_id(seeded[2]).rating == 4


@pytest.mark.parametrize("rating", ["0", "6"])
def test_rate_out_of_range(seeded, open_cache, rating):
    result = runner.invoke(cli, ["rate", rating])

    assert result.exit_code == 1
    with open_cache() as cache:
        assert cache.get_by_id(seeded[2]).rating == 0


def test_rate_without_wallpapers(config_dir):
    result = runner.invoke(cli, ["rate", "3"])

    assert result.exit_code == 1
    assert "no current wallpaper" in result.output


def test_tags(seeded, open_cache):
    result = runner.invoke(cli, ["tag", "add", "forest", "mist"])
    assert result.exit_code == 0, result.output

    listed = runner.invoke(cli, ["tag", "list", "forest", "mist"])
    assert listed.exit_code == 0, listed.output
    assert "Tagged forest, mist (1)" in listed.output

    runner.invoke(cli, ["tag", "remove", "mist"])
    with open_cache() as cache:
        assert cache.get_by_id(seeded[2]).tags == {"forest"}


def test_tag_invalid(seeded):
    result = runner.invoke(cli, ["tag", "add", "a,b"])

    assert result.exit_code == 1


def test_curating_acts_on_wallpaper_on_screen(seeded, open_cache):
    a, b, c = seeded

    runner.invoke(cli, ["previous"])

    for args in (["favorite", "add"], ["rate", "5"], ["tag", "add", "forest"]):
        result = runner.invoke(cli, args)
        assert result.exit_code == 0, result.output

    with open_cache() as cache:
        on_screen = cache.get_by_id(b)
        assert on_screen.is_favorite
        assert on_screen.rating == 5
        assert on_screen.tags == {"forest"}

        newest = cache.get_by_id(c)
        assert not newest.is_favorite
        assert newest.rating == 0
        assert newest.tags == set()


def test_curating_falls_back_when_view_is_stale(seeded, open_cache):
    a, b, c = seeded
    with open_cache() as cache:
        cache.set_current_view(b)
        cache.get_by_id(b).path.unlink()

    result = runner.invoke(cli, ["rate", "3"])

    assert result.exit_code == 0, result.output
    with open_cache() as cache:
        assert cache.get_by_id(c).rating == 3
