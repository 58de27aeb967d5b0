"""Data Service: polled, cached access to the survey JSON resources.

Each resource is fetched independently on a fixed interval. A failed
fetch keeps the last good copy; revalidation by tag marks entries stale
so the next refresh replaces them.
"""

from .config import (
    DASHBOARD_DATA_TAG,
    RESOURCES,
    DataServiceConfig,
    ResourceSpec,
)
from .fetcher import (
    HttpJsonFetcher,
    JsonFetcher,
    LocalJsonFetcher,
    ResourceFetchError,
    build_fetcher,
)
from .coordinator import CacheEntry, DataCoordinator, ResourcePoller

__all__ = [
    "DASHBOARD_DATA_TAG",
    "RESOURCES",
    "DataServiceConfig",
    "ResourceSpec",
    "HttpJsonFetcher",
    "JsonFetcher",
    "LocalJsonFetcher",
    "ResourceFetchError",
    "build_fetcher",
    "CacheEntry",
    "DataCoordinator",
    "ResourcePoller",
]
