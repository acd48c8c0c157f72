"""
conftest.py

Test configuration for wallkeep tests.

Defines Pytest fixtures for supplying test data to tests across the entire test suite. Fixtures used
within only a single module are defined directly in that module. Conftest.py should only be used for
universal fixtures.

Test images are generated with Pillow on the fly rather than read from a test_data folder, so every
test gets its own files in tmp_path and can delete them freely. Time is driven by FakeClock, which
moves forward one minute per reading, so usage ordering in the cache is deterministic.
"""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from PIL import Image

from wallkeep.cache.wallpaper_cache import WallpaperCache

START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock returning START, START + step, START + 2 * step, ..."""

    def __init__(self, start: datetime = START, step: timedelta = timedelta(minutes=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now += self.step
        return current

    def advance(self, delta: timedelta):
        self.now += delta


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_image(tmp_path):
    """
    Factory writing a small PNG to tmp_path/images. Each call gets a different solid color unless
    'color' is given, so files only hash equal when asked to.
    """

    image_dir = tmp_path / "images"
    image_dir.mkdir(exist_ok=True)
    counter = iter(range(1, 10_000))

    def inner(name: str = None, size=(64, 36), color=None) -> Path:
        index = next(counter)
        name = name or f"wallhaven-{index:06d}.png"
        color = color or ((index * 37) % 256, (index * 91) % 256, (index * 53) % 256)

        path = image_dir / name
        Image.new("RGB", size, color).save(path, format="PNG")
        return path

    return inner


@pytest.fixture
def cache(tmp_path, clock):
    cache = WallpaperCache(tmp_path / "cache", clock=clock)
    yield cache
    cache.close()


@pytest.fixture
def add(cache, make_image):
    """Factory adding a fresh image to the 'cache' fixture under a url derived from its name."""

    def inner(name: str = None, **kwargs):
        path = make_image(name)
        return cache.add_wallpaper(f"https://w.wallhaven.cc/full/{path.name}", path, **kwargs)

    return inner


@pytest.fixture
def config_dir(tmp_path, monkeypatch) -> Path:
    """
    Point WALLKEEP_CONFIG_DIR at a temporary directory holding a config.json whose cache and
    download directories are also temporary. Returns the config directory.
    """

    config_dir = tmp_path / "config"
    config_dir.mkdir()

    settings = {
        "WALLKEEP_CONFIG_DIR": str(config_dir),
        "WALLKEEP_CACHE_DIR": str(tmp_path / "cache"),
        "WALLKEEP_DOWNLOAD_DIR": str(tmp_path / "downloads"),
    }
    (config_dir / "config.json").write_text(json.dumps(settings))

    monkeypatch.setenv("WALLKEEP_CONFIG_DIR", str(config_dir))
    monkeypatch.delenv("DEBUG", raising=False)
    monkeypatch.delenv("WH_API_KEY", raising=False)

    return config_dir
