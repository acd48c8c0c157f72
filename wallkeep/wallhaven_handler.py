"""
Wallhaven API - Search and Download

This module is a thin wrapper around the wallhaven.cc v1 API (https://wallhaven.cc/help/api). It
builds search urls, runs searches and downloads the resulting images. It has no knowledge of the
cache: callers decide what to do with a downloaded file.

Requests are authenticated with the X-API-Key header when the WH_API_KEY environment variable is
set (needed for NSFW results), otherwise anonymous. Connection failures and 5xx responses are retried
a few times with a linearly growing delay. Anything else is raised as a WallhavenAPIError.
"""

import logging
import os
import threading
from dataclasses import dataclass, field
from functools import wraps
from pathlib import Path, PurePosixPath
from time import sleep
from urllib.parse import urlencode, urlparse

import requests

from wallkeep import image_handler
from wallkeep.image_handler import ImageDownloadError

logger = logging.getLogger(__name__)

BASE_URL = "https://wallhaven.cc/api/v1"
USER_AGENT = "wallkeep/0.1"
API_KEY_ENV = "WH_API_KEY"

MAX_RETRIES = 3
RETRY_DELAY = 1  # seconds, multiplied by the attempt number
REQUEST_TIMEOUT = 30  # seconds
MAX_CONCURRENT_DOWNLOADS = 3

VALID_RANGES = ["1d", "3d", "1w", "1M", "3M", "6M", "1y"]
VALID_SORTS = ["relevance", "random", "date_added", "views", "favorites", "toplist"]
VALID_ORDERS = ["asc", "desc"]

# limits parallel downloads across threads
_download_slots = threading.BoundedSemaphore(MAX_CONCURRENT_DOWNLOADS)


class WallhavenAPIError(Exception):
    """Raise when a request to the wallhaven API fails or returns something unusable."""

    def __init__(self, url: str, status_code: int = 0, reason: str = "HTTP request failed"):
        self.url = url
        self.status_code = status_code
        message = f"{reason}: {url}"
        if status_code:
            message += f" (status code {status_code})"
        super().__init__(message)


@dataclass
class SearchCriteria:
    """Filters for a wallhaven search. Flag strings are the API's own 3-digit bitmasks."""

    tags: list[str] = field(default_factory=list)
    exclude_tags: list[str] = field(default_factory=list)
    categories: str = "010"  # general | anime | people
    purity: str = "110"  # sfw | sketchy | nsfw
    sorting: str = "toplist"
    order: str = "desc"
    top_range: str = "1y"
    at_least: str = "2560x1440"
    ratios: list[str] = field(default_factory=lambda: ["16x9", "16x10"])
    page: int = 1

    def to_query(self) -> dict:
        query = {}

        q = "".join(f"+{tag}" for tag in self.tags) + "".join(
            f"-{tag}" for tag in self.exclude_tags
        )
        if q:
            query["q"] = q
        if self.categories:
            query["categories"] = self.categories
        if self.purity:
            query["purity"] = self.purity
        if self.sorting:
            query["sorting"] = self.sorting
        if self.order:
            query["order"] = self.order
        # topRange is only meaningful (and only accepted) for toplist sorting
        if self.top_range and self.sorting == "toplist":
            query["topRange"] = self.top_range
        if self.at_least:
            query["atleast"] = self.at_least
        if self.ratios:
            query["ratios"] = ",".join(self.ratios)
        if self.page > 0:
            query["page"] = str(self.page)

        return query


@dataclass
class RemoteWallpaper:
    """One search result. 'url' links directly to the full size image."""

    id: str
    url: str
    resolution: str = ""
    category: str = ""
    purity: str = ""
    file_size: int = 0

    @classmethod
    def from_json(cls, data: dict) -> "RemoteWallpaper":
        return cls(
            id=str(data.get("id", "")),
            url=data["path"],
            resolution=data.get("resolution", ""),
            category=data.get("category", ""),
            purity=data.get("purity", ""),
            file_size=data.get("file_size", 0),
        )

    @property
    def file_name(self) -> str:
        return PurePosixPath(urlparse(self.url).path).name


def base_url(func):
    """
    Use this decorator to inject the base url into each url builder. That way should the url change in
    the future it can be done in one place.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        return func(base_url=BASE_URL, *args, **kwargs)

    return wrapper


def url_path(url_path: str):
    """
    Use this decorator to inject the correct path component for the intended endpoint.
    """

    def wrapper(func):
        @wraps(func)
        def inner(*args, **kwargs):
            return func(url_path=url_path, *args, **kwargs)

        return inner

    return wrapper


@base_url
@url_path("search")
def search_url(criteria: SearchCriteria, *args, **kwargs) -> str:
    """
    Build the search endpoint url, e.g.
    https://wallhaven.cc/api/v1/search?q=%2Bnature&categories=010&purity=110&sorting=toplist...
    """

    base_url: str = kwargs.get("base_url")
    path: str = kwargs.get("url_path")

    return f"{base_url}/{path}?{urlencode(criteria.to_query())}"


def request_headers() -> dict:
    headers = {"User-Agent": USER_AGENT}

    api_key = os.environ.get(API_KEY_ENV)
    if api_key:
        headers["X-API-Key"] = api_key

    return headers


def get(url: str, stream: bool = False) -> requests.Response:
    """
    GET url with retries. Only a 200 response is returned. Connection level failures and 5xx
    responses are retried up to MAX_RETRIES attempts in total, anything else fails immediately.
    """

    headers = request_headers()

    for attempt in range(MAX_RETRIES):
        if attempt > 0:
            logger.debug("retrying request to %s (attempt %d)", url, attempt + 1)
            sleep(RETRY_DELAY * attempt)

        try:
            response = requests.get(url, headers=headers, timeout=REQUEST_TIMEOUT, stream=stream)

        except requests.exceptions.RequestException as error:
            if attempt == MAX_RETRIES - 1:
                raise WallhavenAPIError(url, reason=f"request failed ({error})")
            continue

        if response.status_code == 200:
            return response

        response.close()

        if response.status_code >= 500 and attempt < MAX_RETRIES - 1:
            logger.debug("server error %d from %s", response.status_code, url)
            continue

        raise WallhavenAPIError(url, response.status_code)

    raise WallhavenAPIError(url, reason="max retries exceeded")


def search(criteria: SearchCriteria) -> list[RemoteWallpaper]:
    """Run a search and return the wallpapers on the requested page."""

    url = search_url(criteria)
    logger.debug("searching wallhaven: %s", url)

    response = get(url)

    try:
        data = response.json()["data"]
        results = [RemoteWallpaper.from_json(item) for item in data]

    except (ValueError, KeyError, TypeError) as error:
        raise WallhavenAPIError(url, reason=f"invalid response ({error})")

    logger.info("wallhaven returned %d wallpapers", len(results))
    return results


def download(item: RemoteWallpaper, dest_dir) -> Path:
    """
    Download a search result into dest_dir, keeping the remote file name. Raise ImageDownloadError if
    the request fails or the response isn't an image.
    """

    dest_path = Path(dest_dir).expanduser() / item.file_name

    with _download_slots:
        logger.debug("downloading %s to %s", item.url, dest_path)

        try:
            response = get(item.url, stream=True)

        except WallhavenAPIError as error:
            raise ImageDownloadError(f"Download error: {error}")

        with response:
            path = image_handler.save_response(response, dest_path)

    logger.info("downloaded %s (%s)", path.name, item.resolution or "unknown resolution")
    return path
