"""
Wallpaper Handler

wallkeep doesn't know how to talk to any particular desktop environment. Instead the user points it
at a script (feh, swww, gsettings, a shell one-liner, whatever works for their setup) and wallkeep
runs that script with the image path as its only argument:

    $ ~/bin/set-wallpaper.sh /home/me/Pictures/Wallpapers/wallhaven-abc123.jpg

The script inherits wallkeep's environment, stdout and stderr.
"""

import logging
import os
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)


class WallpaperUpdateError(Exception):
    """
    Raised when an attempt to update the desktop background fails.
    """

    pass


def run_script(script_path, img_path) -> None:
    """
    Run script_path with img_path as its argument. Raise WallpaperUpdateError if the script is
    missing, not executable, or exits with a non-zero status.
    """

    try:
        script = Path(script_path).expanduser().resolve()
        wallpaper_location = Path(img_path).expanduser().resolve()
    except TypeError:
        raise WallpaperUpdateError(
            f"Invalid parameter: {script_path}, {img_path} must be Pathlike objects."
        )

    if not script.is_file():
        raise WallpaperUpdateError(f"Script {script_path} does not exist.")

    if not os.access(script, os.X_OK):
        raise WallpaperUpdateError(f"Script {script_path} is not executable.")

    if not wallpaper_location.is_file():
        raise WallpaperUpdateError(
            f"Invalid path provided for image location: {img_path} does not exist."
        )

    logger.info("running %s on %s", script, wallpaper_location.name)

    try:
        subprocess.run([str(script), str(wallpaper_location)], check=True)

    except subprocess.CalledProcessError as error:
        raise WallpaperUpdateError(
            f"Script {script.name} failed with exit code {error.returncode}."
        )

    except OSError as error:
        raise WallpaperUpdateError(f"Could not run script {script.name}: {error}")
