"""
Image Handler

Utilities for checking image files and saving downloaded image data.

Validation: Pillow is used to open files and read their headers. Opening an image only parses the
header and doesn't decode pixel data, so this is cheap enough to run on every download and on every
add to the cache.

Saving: downloads are streamed to a temporary file next to the destination and only moved into
place once Pillow agrees the bytes are an image, so an interrupted or bogus download never leaves a
half written wallpaper behind.
"""

from pathlib import Path

from PIL import Image, UnidentifiedImageError
import requests


class InvalidImageError(Exception):
    """
    Raised when a provided binary input file is not an image. Wrapper around the PIL
    UnidentifiedImageError for better identification of errors during debugging
    and custom error messaging.
    """

    pass


class ImageDownloadError(Exception):
    """
    Raised when an image download is unsuccessful.
    """

    pass


def validate_image(input) -> str:
    """
    Determine whether input is a valid image and return its format (e.g. "JPEG"). PIL open accepts a
    Path object, string, or file object. See the PIL docs on identifying images for more info:
    https://pillow.readthedocs.io/en/stable/handbook/tutorial.html#identify-image-files
    """

    try:
        with Image.open(input) as image:

            return image.format

    except UnidentifiedImageError:
        raise InvalidImageError(f"Input {str(input)} does not appear to be an image.")

    except FileNotFoundError:
        raise InvalidImageError(f"Input {str(input)} could not be found.")


def get_resolution(input) -> str:
    """
    Return the pixel dimensions of an image as "WIDTHxHEIGHT", the same notation wallhaven uses for
    its resolution filters.
    """

    try:
        with Image.open(input) as image:
            width, height = image.size

    except UnidentifiedImageError:
        raise InvalidImageError(f"Input {str(input)} does not appear to be an image.")

    except OSError as error:
        raise InvalidImageError(f"Input {str(input)} could not be read: {error}")

    return f"{width}x{height}"


def save_response(response: requests.Response, file_path, chunk_size: int = 64 * 1024) -> Path:
    """
    Stream the body of a successful response to file_path. Raise ImageDownloadError if the body is
    not an image or cannot be written. Never overwrites an existing file.
    """

    destination_path = Path(file_path).expanduser().resolve()

    # edge case where destination path is a folder
    if destination_path.is_dir():
        raise ImageDownloadError(f"Destination file {destination_path} is a directory.")

    if destination_path.exists():
        raise ImageDownloadError(f"File already exists at {destination_path}.")

    destination_path.parent.mkdir(parents=True, exist_ok=True)
    partial_path = destination_path.with_name(f".{destination_path.name}.part")

    try:
        with partial_path.open("wb") as file:
            for chunk in response.iter_content(chunk_size=chunk_size):
                if chunk:
                    file.write(chunk)

        validate_image(partial_path)
        partial_path.replace(destination_path)

    except InvalidImageError:
        partial_path.unlink(missing_ok=True)
        raise ImageDownloadError(
            f"Download error: the target resource at {response.url} does not appear to be an image."
        )

    except (OSError, requests.exceptions.RequestException) as error:
        partial_path.unlink(missing_ok=True)
        raise ImageDownloadError(f"Download error: could not save {destination_path}: {error}")

    return destination_path
