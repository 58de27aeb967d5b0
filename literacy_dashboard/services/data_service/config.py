"""Data Service configuration and resource catalogue.

The dashboard reads seven JSON files produced by the upstream survey
analysis. Each is polled independently and cached under the
``dashboard-data`` tag so a single revalidation refreshes all of them.
"""
import os
from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple

DASHBOARD_DATA_TAG = "dashboard-data"

DEFAULT_REFRESH_SECONDS = 5.0
DEFAULT_FETCH_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True)
class ResourceSpec:
    """A polled JSON resource."""
    name: str
    filename: str
    tags: FrozenSet[str] = field(default_factory=lambda: frozenset({DASHBOARD_DATA_TAG}))


DEMOGRAPHIC_BREAKDOWN = ResourceSpec("demographic_breakdown", "demographic_breakdown.json")
QUESTION_ACCURACY = ResourceSpec("question_accuracy", "q_accuracy.json")
QUESTION_LOOKUP = ResourceSpec("question_lookup", "q_lookup.json")
CORRELATIONS = ResourceSpec("correlations", "corr_df.json")
MENTAL_HEALTH = ResourceSpec("mental_health", "mental_health_df.json")
FEATURE_COEFFICIENTS = ResourceSpec("feature_coefficients", "grouped_coef_df.json")
STUDENTS = ResourceSpec("students", "master_df.json")

RESOURCES: Tuple[ResourceSpec, ...] = (
    DEMOGRAPHIC_BREAKDOWN,
    QUESTION_ACCURACY,
    QUESTION_LOOKUP,
    CORRELATIONS,
    MENTAL_HEALTH,
    FEATURE_COEFFICIENTS,
    STUDENTS,
)


@dataclass(frozen=True)
class DataServiceConfig:
    """Where the JSON resources live and how often they refresh.

    ``source`` is either an http(s) base URL or a local directory.
    """
    source: str = "data"
    refresh_interval_seconds: float = DEFAULT_REFRESH_SECONDS
    cache_ttl_seconds: Optional[float] = None
    fetch_timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS

    def __post_init__(self):
        if self.refresh_interval_seconds <= 0:
            raise ValueError(
                f"Refresh interval must be positive, got {self.refresh_interval_seconds}"
            )

    @property
    def ttl_seconds(self) -> float:
        """Cache TTL; defaults to the refresh interval."""
        if self.cache_ttl_seconds is None:
            return self.refresh_interval_seconds
        return self.cache_ttl_seconds

    @classmethod
    def from_env(cls) -> "DataServiceConfig":
        """Create config from environment variables.

        Environment variables:
            DASHBOARD_DATA_SOURCE: Base URL or directory (default ./data)
            DASHBOARD_REFRESH_SECONDS: Poll interval (default 5)
            DASHBOARD_CACHE_TTL_SECONDS: Cache TTL (default poll interval)
            DASHBOARD_FETCH_TIMEOUT_SECONDS: HTTP timeout (default 10)
        """
        ttl = os.getenv("DASHBOARD_CACHE_TTL_SECONDS")
        return cls(
            source=os.getenv("DASHBOARD_DATA_SOURCE", "data"),
            refresh_interval_seconds=float(
                os.getenv("DASHBOARD_REFRESH_SECONDS", str(DEFAULT_REFRESH_SECONDS))
            ),
            cache_ttl_seconds=float(ttl) if ttl else None,
            fetch_timeout_seconds=float(
                os.getenv("DASHBOARD_FETCH_TIMEOUT_SECONDS", str(DEFAULT_FETCH_TIMEOUT_SECONDS))
            ),
        )
