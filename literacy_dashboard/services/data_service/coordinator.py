"""Resource cache and polling.

DataCoordinator keeps one CacheEntry per resource with the time it was
fetched and a TTL. A failed refresh is logged and the previous data is
kept, so the last successful fetch is always what gets served.

ResourcePoller refreshes every resource on its own interval for as long
as it is entered. Leaving it cancels every poll task, including fetches
still in flight.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from .config import RESOURCES, ResourceSpec, DEFAULT_REFRESH_SECONDS
from .fetcher import JsonFetcher, ResourceFetchError

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CacheEntry:
    """Cached state of one resource."""
    spec: ResourceSpec
    ttl_seconds: float
    data: Any = None
    fetched_at: Optional[datetime] = None
    invalidated: bool = False
    last_error: Optional[str] = None
    failures: int = 0

    @property
    def loaded(self) -> bool:
        return self.fetched_at is not None

    def age_seconds(self, now: datetime) -> Optional[float]:
        if self.fetched_at is None:
            return None
        return (now - self.fetched_at).total_seconds()

    def is_stale(self, now: datetime) -> bool:
        if self.invalidated or self.fetched_at is None:
            return True
        return now - self.fetched_at >= timedelta(seconds=self.ttl_seconds)

    def to_status(self, now: datetime) -> Dict[str, Any]:
        return {
            "filename": self.spec.filename,
            "loaded": self.loaded,
            "stale": self.is_stale(now),
            "fetched_at": self.fetched_at.isoformat() if self.fetched_at else None,
            "age_seconds": self.age_seconds(now),
            "failures": self.failures,
            "last_error": self.last_error,
        }


class DataCoordinator:
    """Owns the cache entries and refreshes them through a fetcher."""

    def __init__(
        self,
        fetcher: JsonFetcher,
        resources: Iterable[ResourceSpec] = RESOURCES,
        ttl_seconds: float = DEFAULT_REFRESH_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize coordinator.

        Args:
            fetcher: Source of the JSON documents
            resources: Resources to manage
            ttl_seconds: Age after which an entry is stale
            clock: Returns the current time (injected for testing)
        """
        self.fetcher = fetcher
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {
            spec.name: CacheEntry(spec=spec, ttl_seconds=ttl_seconds)
            for spec in resources
        }

        logger.info(
            "DATA_COORDINATOR_INITIALIZED",
            extra={
                "resources": len(self._entries),
                "ttl_seconds": ttl_seconds,
                "source": fetcher.describe(),
            }
        )

    @property
    def resource_names(self) -> List[str]:
        return list(self._entries)

    def entry(self, name: str) -> CacheEntry:
        try:
            return self._entries[name]
        except KeyError:
            raise KeyError(f"Unknown resource: {name}") from None

    async def refresh(self, name: str) -> bool:
        """Fetch one resource and replace its cached data.

        Returns:
            True if the fetch succeeded. On failure the previous data is
            kept and the error recorded on the entry.

        Logs:
            - RESOURCE_REFRESHED: On success
            - RESOURCE_REFRESH_FAILED: On fetch, parse or shape failure
        """
        entry = self.entry(name)
        filename = entry.spec.filename
        try:
            data = await self.fetcher.fetch(filename)
            if not isinstance(data, list):
                raise ResourceFetchError(
                    filename, f"expected a JSON array, got {type(data).__name__}"
                )
            if not all(isinstance(row, dict) for row in data):
                raise ResourceFetchError(filename, "expected an array of objects")
        except ResourceFetchError as e:
            entry.failures += 1
            entry.last_error = e.reason
            logger.warning(
                "RESOURCE_REFRESH_FAILED",
                extra={
                    "resource": name,
                    "resource_file": filename,
                    "reason": e.reason,
                    "failures": entry.failures,
                    "keeping_previous": entry.loaded,
                }
            )
            return False

        entry.data = data
        entry.fetched_at = self._clock()
        entry.invalidated = False
        entry.last_error = None
        entry.failures = 0
        logger.debug(
            "RESOURCE_REFRESHED",
            extra={"resource": name, "resource_file": filename, "rows": len(data)}
        )
        return True

    async def refresh_all(self) -> Dict[str, bool]:
        """Refresh every resource concurrently."""
        names = self.resource_names
        results = await asyncio.gather(*(self.refresh(n) for n in names))
        return dict(zip(names, results))

    async def refresh_stale(self) -> List[str]:
        """Refresh only stale or invalidated resources.

        Returns:
            Names that were refreshed successfully
        """
        now = self._clock()
        stale = [n for n, e in self._entries.items() if e.is_stale(now)]
        results = await asyncio.gather(*(self.refresh(n) for n in stale))
        return [n for n, ok in zip(stale, results) if ok]

    def get(self, name: str, default: Any = None) -> Any:
        """Cached data for a resource, or default if never loaded."""
        entry = self.entry(name)
        if not entry.loaded:
            return default
        return entry.data

    def is_stale(self, name: str) -> bool:
        return self.entry(name).is_stale(self._clock())

    def all_loaded(self) -> bool:
        return all(e.loaded for e in self._entries.values())

    def invalidate_tag(self, tag: str) -> List[str]:
        """Mark every entry carrying tag as stale.

        Cached data stays servable until the next successful refresh.

        Returns:
            Names of invalidated resources
        """
        names = [n for n, e in self._entries.items() if tag in e.spec.tags]
        for name in names:
            self._entries[name].invalidated = True

        logger.info(
            "CACHE_TAG_INVALIDATED",
            extra={"tag": tag, "resources": len(names)}
        )
        return names

    def status(self) -> Dict[str, Dict[str, Any]]:
        now = self._clock()
        return {n: e.to_status(now) for n, e in self._entries.items()}


class ResourcePoller:
    """Refreshes each resource on its own repeating timer.

    Usage:
        async with ResourcePoller(coordinator, interval_seconds=5):
            ...  # resources refresh in the background
    """

    def __init__(
        self,
        coordinator: DataCoordinator,
        interval_seconds: float = DEFAULT_REFRESH_SECONDS,
        immediate: bool = True,
    ):
        """Initialize poller.

        Args:
            coordinator: Coordinator whose resources are polled
            interval_seconds: Delay between polls of one resource
            immediate: Refresh once on start instead of waiting one interval
        """
        self.coordinator = coordinator
        self.interval_seconds = interval_seconds
        self.immediate = immediate
        self._tasks: Dict[str, asyncio.Task] = {}

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks.values())

    def start(self) -> None:
        if self._tasks:
            raise RuntimeError("Poller already started")

        for name in self.coordinator.resource_names:
            self._tasks[name] = asyncio.create_task(
                self._poll(name), name=f"poll:{name}"
            )

        logger.info(
            "POLLER_STARTED",
            extra={"resources": len(self._tasks), "interval_seconds": self.interval_seconds}
        )

    async def stop(self) -> None:
        """Cancel every poll task and wait for them to finish."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info("POLLER_STOPPED", extra={"resources": len(tasks)})

    async def _poll(self, name: str) -> None:
        if not self.immediate:
            await asyncio.sleep(self.interval_seconds)
        while True:
            try:
                await self.coordinator.refresh(name)
            except Exception:
                logger.exception("RESOURCE_POLL_ERROR", extra={"resource": name})
            await asyncio.sleep(self.interval_seconds)

    async def __aenter__(self) -> "ResourcePoller":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
