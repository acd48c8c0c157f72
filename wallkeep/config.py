"""
wallkeep Configuration Management

This file handles utilities related to generating and loading variables from a configuration file.
WallkeepConfig is loaded at startup by the command line entry point, before any command runs. Raise
a WallkeepConfigError for any issues that arise in processing or retrieving these configuration
variables.

The configuration file is "config.json" and lives at ~/.config/wallkeep/config.json, following
the XDG convention on Linux. Set WALLKEEP_CONFIG_DIR to keep it somewhere else (the test suite does
this so it never touches a real home directory).

Search defaults (CATEGORIES, PURITY, ...) are used whenever the matching option isn't passed to
'wallkeep search'. The cache limits control eviction: once either MAX_CACHE_COUNT wallpapers or
MAX_CACHE_SIZE_MB megabytes is exceeded, least recently used wallpapers are deleted until the cache is
back at TARGET_UTILIZATION percent of both.
"""

import json
import os
from dataclasses import dataclass
from dataclasses import asdict
from dataclasses import field
from pathlib import Path, PurePath

CONFIG_FILENAME = "config.json"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class WallkeepConfigError(Exception):
    """Raise when an issue occurs with handling wallkeep configuration."""

    pass


class PathEncoder(json.JSONEncoder):
    """
    custom encoder adds support for serializing pathlib objects as strings
    """

    def default(self, o):
        if isinstance(o, PurePath):
            return str(o)

        else:
            return json.JSONEncoder.default(self, o)


def default_config_dir() -> Path:
    try:
        return Path(os.environ["WALLKEEP_CONFIG_DIR"]).expanduser()
    except KeyError:
        return Path("~/.config/wallkeep").expanduser()


@dataclass
class WallkeepConfig:
    """
    Dataclass to represent configuration variables for wallkeep. A WallkeepConfig is instantiated by
    supplying keyword arguments from a deserialized json object, so application code references
    identifiers here instead of brittle dictionary keys. The json object is kept fully flat.
    """

    WALLKEEP_CONFIG_DIR: Path = field(default_factory=default_config_dir)
    WALLKEEP_DOWNLOAD_DIR: Path = Path("~/Pictures/Wallpapers").expanduser()
    WALLKEEP_CACHE_DIR: Path = Path("~/.cache/wallkeep").expanduser()
    SCRIPT_PATH: str = ""

    MAX_CACHE_COUNT: int = 1000
    MAX_CACHE_SIZE_MB: int = 5000
    TARGET_UTILIZATION: int = 90

    LOG_LEVEL: str = "WARNING"

    CATEGORIES: str = "010"
    PURITY: str = "110"
    SORTING: str = "toplist"
    ORDER: str = "desc"
    TOP_RANGE: str = "1y"
    AT_LEAST: str = "2560x1440"
    RATIOS: str = "16x9,16x10"
    MAX_PAGES: int = 5

    def __post_init__(self):
        """
        Handle the case where a new WallkeepConfig is created from JSON, which cannot deserialize a
        str into a Path, then check that the values make sense.
        """

        self.WALLKEEP_CONFIG_DIR = Path(self.WALLKEEP_CONFIG_DIR).expanduser()
        self.WALLKEEP_DOWNLOAD_DIR = Path(self.WALLKEEP_DOWNLOAD_DIR).expanduser()
        self.WALLKEEP_CACHE_DIR = Path(self.WALLKEEP_CACHE_DIR).expanduser()
        self.SCRIPT_PATH = str(self.SCRIPT_PATH or "")
        self.LOG_LEVEL = str(self.LOG_LEVEL).upper()

        try:
            self.MAX_CACHE_COUNT = int(self.MAX_CACHE_COUNT)
            self.MAX_CACHE_SIZE_MB = int(self.MAX_CACHE_SIZE_MB)
            self.TARGET_UTILIZATION = int(self.TARGET_UTILIZATION)
            self.MAX_PAGES = int(self.MAX_PAGES)

        except (TypeError, ValueError) as error:
            raise WallkeepConfigError(f"Invalid number in configuration: {error}")

        self.validate()

    def validate(self):
        if self.MAX_CACHE_COUNT <= 0:
            raise WallkeepConfigError("MAX_CACHE_COUNT must be greater than 0.")

        if self.MAX_CACHE_SIZE_MB <= 0:
            raise WallkeepConfigError("MAX_CACHE_SIZE_MB must be greater than 0.")

        if not 0 < self.TARGET_UTILIZATION <= 100:
            raise WallkeepConfigError("TARGET_UTILIZATION must be a percentage between 1 and 100.")

        if not 1 <= self.MAX_PAGES <= 100:
            raise WallkeepConfigError("MAX_PAGES must be between 1 and 100.")

        if self.LOG_LEVEL not in LOG_LEVELS:
            raise WallkeepConfigError(
                f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got '{self.LOG_LEVEL}'."
            )

        for name in ("CATEGORIES", "PURITY"):
            value = getattr(self, name)
            if len(value) != 3 or set(value) - {"0", "1"}:
                raise WallkeepConfigError(
                    f"{name} must be 3 characters of '0' or '1', got '{value}'."
                )

    @property
    def ratios(self) -> list[str]:
        return [ratio.strip() for ratio in self.RATIOS.split(",") if ratio.strip()]

    def generate_config_json(self) -> Path:
        """
        Write the WallkeepConfig to file, serializing to JSON. Returns filepath of written
        config.json file which *should* be located at WALLKEEP_CONFIG_DIR.

        Warning: will overwrite any existing config file for wallkeep, by design.
        """

        try:
            to_json = json.dumps(asdict(self), sort_keys=True, indent=4, cls=PathEncoder)

        except TypeError as error:
            raise WallkeepConfigError(
                f"There was an error trying to serialize config data to JSON: {error}"
            )

        try:
            self.WALLKEEP_CONFIG_DIR.mkdir(parents=True, exist_ok=True)

            dest_file = self.WALLKEEP_CONFIG_DIR / CONFIG_FILENAME
            with open(dest_file, "w") as file:

                file.write(to_json)

        except OSError as error:
            raise WallkeepConfigError(
                f"There was an error saving the configuration file: {error}."
            )

        return dest_file


def init() -> WallkeepConfig:
    """
    Load the wallkeep config, writing the default one first if there is none yet. A config file
    that exists but can't be parsed is reported rather than overwritten.
    """

    config_src = default_config_dir() / CONFIG_FILENAME

    if config_src.exists():
        return load_config()

    try:
        config = WallkeepConfig()
        config.generate_config_json()

    except WallkeepConfigError as error:
        raise WallkeepConfigError(
            f"There was an issue trying to create a config file for wallkeep: {error}"
        )

    return config


def load_config() -> WallkeepConfig:
    """
    Load config.json from the directory in environment variable WALLKEEP_CONFIG_DIR or
    alternatively ~/.config/wallkeep and instantiate variables as a WallkeepConfig dataclass.
    Raise WallkeepConfigError if a config file can't be found at that location or is invalid.
    """

    config_src = default_config_dir() / CONFIG_FILENAME

    try:
        with config_src.open("r") as file:

            from_json = json.loads(file.read())

    except json.JSONDecodeError as error:
        raise WallkeepConfigError(f"There was an issue reading the config: {error}")

    except FileNotFoundError as error:
        raise WallkeepConfigError(f"There was an issue opening the config: {error}")

    if not isinstance(from_json, dict):
        raise WallkeepConfigError(f"Config at {config_src} must be a JSON object.")

    try:
        config = WallkeepConfig(**from_json)

    except TypeError as error:
        # unknown keys end up as unexpected keyword arguments
        raise WallkeepConfigError(f"Unknown setting in {config_src}: {error}")

    return config
