"""
wallkeep console utilities

This module provides application-wide access to Rich Console objects for writing to stdout and
stderr, and sets up logging so that log records from the library modules are rendered on stderr by
Rich as well. Regular command output goes through the formatting helpers below; log records are for
diagnostics and are hidden unless the log level is lowered (LOG_LEVEL in the config, --verbose, or
DEBUG in the environment).
"""

import logging
import os

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

wallkeep_theme = Theme(
    {"warning": "orange_red1", "fail": "bold red", "confirm": "", "describe": ""}
)

console = Console(theme=wallkeep_theme)
error_console = Console(theme=wallkeep_theme, stderr=True)


def setup_logging(level: str = "WARNING") -> None:
    """
    Route the 'wallkeep' logger through a RichHandler on stderr. DEBUG set in the environment forces
    debug level regardless of the configured level.
    """

    if os.environ.get("DEBUG"):
        level = "DEBUG"

    logger = logging.getLogger("wallkeep")
    logger.setLevel(level.upper())

    # repeated invocations in one process (tests) must not stack handlers
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(console=error_console, show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)


"""
Formatting helpers
"""


def warn(msg: str):
    """
    Format msg and print to stderr.
    """

    error_console.print(
        f":exclamation_mark-emoji: [bold]warning: [/] {msg}", style="warning"
    )


def describe(msg: str, **kwargs):
    """
    Format descriptive msg and print to stdout.
    """

    console.print(f"{msg}", style="describe", **kwargs)


def confirm_success(msg: str, **kwargs):
    """
    Format confirmation msg and print to stdout. Accept any additional kwargs that console.print from
    rich module exposes.
    """

    console.print(f"{msg}", style="confirm", **kwargs)


def fail(msg: str):
    """
    Format failure msg and print to stderr.
    """

    error_console.print(f":x-emoji: failed. {msg}", style="fail")
