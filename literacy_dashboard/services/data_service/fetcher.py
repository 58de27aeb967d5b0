"""JSON resource fetchers.

HttpJsonFetcher pulls resources over HTTP with a cache-busting query
parameter; LocalJsonFetcher reads them from a directory. Both raise
ResourceFetchError for any transport, status or parse failure so callers
handle a single exception type.
"""
import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

import aiohttp

from .config import DEFAULT_FETCH_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class ResourceFetchError(Exception):
    """A resource could not be fetched or parsed."""

    def __init__(self, filename: str, reason: str):
        super().__init__(f"Failed to load {filename}: {reason}")
        self.filename = filename
        self.reason = reason


class JsonFetcher(ABC):
    """Loads a JSON document by filename."""

    @abstractmethod
    async def fetch(self, filename: str) -> Any:
        """Fetch and parse one resource.

        Raises:
            ResourceFetchError: On any failure
        """

    @abstractmethod
    def describe(self) -> str:
        """Where resources come from, for logs."""


class HttpJsonFetcher(JsonFetcher):
    """Fetches resources from ``{base_url}/{filename}?t=<ms>``."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    def url_for(self, filename: str) -> str:
        return f"{self.base_url}/{filename}"

    async def fetch(self, filename: str) -> Any:
        url = self.url_for(filename)
        params = {"t": str(int(time.time() * 1000))}
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    url,
                    params=params,
                    timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                ) as response:
                    response.raise_for_status()
                    body = await response.text()
        except aiohttp.ClientResponseError as e:
            raise ResourceFetchError(filename, f"HTTP {e.status}") from e
        except UnicodeDecodeError as e:
            raise ResourceFetchError(filename, "invalid UTF-8") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ResourceFetchError(filename, type(e).__name__) from e

        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise ResourceFetchError(filename, f"invalid JSON ({e.msg})") from e

    def describe(self) -> str:
        return self.base_url


class LocalJsonFetcher(JsonFetcher):
    """Reads resources from a directory on disk."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    async def fetch(self, filename: str) -> Any:
        path = self.directory / filename
        try:
            text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except OSError as e:
            raise ResourceFetchError(filename, e.strerror or type(e).__name__) from e
        except UnicodeDecodeError as e:
            raise ResourceFetchError(filename, "invalid UTF-8") from e

        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ResourceFetchError(filename, f"invalid JSON ({e.msg})") from e

    def describe(self) -> str:
        return str(self.directory)


def build_fetcher(source: str, timeout_seconds: Optional[float] = None) -> JsonFetcher:
    """Pick a fetcher for a base URL or a directory path."""
    if source.startswith(("http://", "https://")):
        fetcher: JsonFetcher = HttpJsonFetcher(
            source, timeout_seconds or DEFAULT_FETCH_TIMEOUT_SECONDS
        )
    else:
        fetcher = LocalJsonFetcher(Path(source))

    logger.info(
        "FETCHER_CONFIGURED",
        extra={"fetcher": type(fetcher).__name__, "source": fetcher.describe()}
    )
    return fetcher
