"""
Test config

Every test runs against a temporary WALLKEEP_CONFIG_DIR so the real ~/.config is never read or
written.

*** Fixtures ***
- config_dir (defined in conftest.py)
- tmp_path, monkeypatch (defined by Pytest)
"""

import json
from pathlib import Path

import pytest

# following entities are tested in this module:
from wallkeep.config import CONFIG_FILENAME
from wallkeep.config import PathEncoder
from wallkeep.config import WallkeepConfig
from wallkeep.config import WallkeepConfigError
from wallkeep.config import init
from wallkeep.config import load_config


@pytest.fixture
def empty_config_dir(tmp_path, monkeypatch) -> Path:
    config_dir = tmp_path / "fresh"
    monkeypatch.setenv("WALLKEEP_CONFIG_DIR", str(config_dir))
    return config_dir


def write_config(config_dir: Path, content):
    text = content if isinstance(content, str) else json.dumps(content)
    (config_dir / CONFIG_FILENAME).write_text(text)


def test_init_generates_default_config(empty_config_dir):
    config = init()

    config_file = empty_config_dir / CONFIG_FILENAME
    assert config_file.exists()
    assert config.WALLKEEP_CONFIG_DIR == empty_config_dir
    assert config.MAX_CACHE_COUNT == 1000

    saved = json.loads(config_file.read_text())
    assert saved["WALLKEEP_CONFIG_DIR"] == str(empty_config_dir)
    assert saved["TARGET_UTILIZATION"] == 90


def test_init_loads_existing_config(config_dir, tmp_path):
    config = init()

    assert config.WALLKEEP_CACHE_DIR == tmp_path / "cache"
    assert config.WALLKEEP_DOWNLOAD_DIR == tmp_path / "downloads"
    # unspecified keys keep their defaults
    assert config.SORTING == "toplist"


def test_init_does_not_overwrite_broken_config(config_dir):
    write_config(config_dir, "{ not json")

    with pytest.raises(WallkeepConfigError):
        init()

    assert (config_dir / CONFIG_FILENAME).read_text() == "{ not json"


def test_generated_config_round_trips(empty_config_dir):
    saved = WallkeepConfig(MAX_CACHE_COUNT=42, SCRIPT_PATH="~/bin/set.sh", LOG_LEVEL="debug")
    saved.generate_config_json()

    assert load_config() == saved


def test_load_config_missing(empty_config_dir):
    with pytest.raises(WallkeepConfigError):
        load_config()


@pytest.mark.parametrize(
    "content",
    [
        "{ not json",
        "[1, 2, 3]",
        {"NOT_A_SETTING": 1},
        {"MAX_CACHE_COUNT": 0},
        {"MAX_CACHE_SIZE_MB": "lots"},
        {"TARGET_UTILIZATION": 150},
        {"MAX_PAGES": 0},
        {"LOG_LEVEL": "LOUD"},
        {"CATEGORIES": "12"},
        {"PURITY": "abc"},
    ],
)
def test_load_config_invalid(config_dir, content):
    write_config(config_dir, content)

    with pytest.raises(WallkeepConfigError):
        load_config()


def test_values_are_coerced():
    config = WallkeepConfig(
        WALLKEEP_CACHE_DIR="~/somewhere", MAX_CACHE_COUNT="10", LOG_LEVEL="info", SCRIPT_PATH=None
    )

    assert isinstance(config.WALLKEEP_CACHE_DIR, Path)
    assert "~" not in str(config.WALLKEEP_CACHE_DIR)
    assert config.MAX_CACHE_COUNT == 10
    assert config.LOG_LEVEL == "INFO"
    assert config.SCRIPT_PATH == ""


def test_ratios():
    assert WallkeepConfig(RATIOS="16x9, 21x9,").ratios == ["16x9", "21x9"]
    assert WallkeepConfig(RATIOS="").ratios == []


def test_path_encoder():
    data = {"path": Path("/tmp/wallkeep"), "count": 3}

    assert json.loads(json.dumps(data, cls=PathEncoder)) == {"path": "/tmp/wallkeep", "count": 3}

    with pytest.raises(TypeError):
        json.dumps({"thing": object()}, cls=PathEncoder)
