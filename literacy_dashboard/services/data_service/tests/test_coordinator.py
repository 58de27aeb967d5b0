"""Tests for the resource cache coordinator and poller."""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from literacy_dashboard.services.data_service.config import (
    DASHBOARD_DATA_TAG,
    RESOURCES,
    ResourceSpec,
)
from literacy_dashboard.services.data_service.coordinator import (
    DataCoordinator,
    ResourcePoller,
)
from literacy_dashboard.services.data_service.fetcher import (
    JsonFetcher,
    LocalJsonFetcher,
    ResourceFetchError,
)


class FakeFetcher(JsonFetcher):
    """In-memory fetcher; filenames listed in ``failing`` raise."""

    def __init__(self, documents):
        self.documents = dict(documents)
        self.failing = set()
        self.calls = []

    async def fetch(self, filename):
        self.calls.append(filename)
        if filename in self.failing or filename not in self.documents:
            raise ResourceFetchError(filename, "unavailable")
        return self.documents[filename]

    def describe(self):
        return "memory"


class BlockingFetcher(JsonFetcher):
    """Fetcher that never completes, recording cancellation."""

    def __init__(self):
        self.started = asyncio.Event()
        self.cancelled = []

    async def fetch(self, filename):
        self.started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled.append(filename)
            raise

    def describe(self):
        return "blocking"


class Clock:
    def __init__(self):
        self.now = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def documents():
    return {spec.filename: [{"row": spec.name}] for spec in RESOURCES}


@pytest.fixture
def fetcher(documents):
    return FakeFetcher(documents)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def coordinator(fetcher, clock):
    return DataCoordinator(fetcher, ttl_seconds=5, clock=clock)


class TestRefresh:
    """Tests for loading and refreshing resources."""

    @pytest.mark.asyncio
    async def test_refresh_all_loads_every_resource(self, coordinator):
        results = await coordinator.refresh_all()

        assert all(results.values())
        assert len(results) == 7
        assert coordinator.all_loaded()
        assert coordinator.get("students") == [{"row": "students"}]

    def test_get_before_load_returns_default(self, coordinator):
        assert coordinator.get("students") is None
        assert coordinator.get("students", []) == []
        assert coordinator.all_loaded() is False

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_data(self, coordinator, fetcher):
        await coordinator.refresh("correlations")
        fetcher.documents["corr_df.json"] = [{"row": "new"}]
        fetcher.failing.add("corr_df.json")

        ok = await coordinator.refresh("correlations")

        assert ok is False
        assert coordinator.get("correlations") == [{"row": "correlations"}]
        entry = coordinator.entry("correlations")
        assert entry.last_error == "unavailable"
        assert entry.failures == 1

    @pytest.mark.asyncio
    async def test_recovers_on_next_success(self, coordinator, fetcher):
        fetcher.failing.add("corr_df.json")
        await coordinator.refresh("correlations")
        fetcher.failing.clear()

        ok = await coordinator.refresh("correlations")

        assert ok is True
        entry = coordinator.entry("correlations")
        assert entry.failures == 0
        assert entry.last_error is None

    @pytest.mark.asyncio
    async def test_non_list_payload_rejected(self, coordinator, fetcher):
        await coordinator.refresh("students")
        fetcher.documents["master_df.json"] = {"unexpected": "object"}

        ok = await coordinator.refresh("students")

        assert ok is False
        assert coordinator.get("students") == [{"row": "students"}]
        assert "JSON array" in coordinator.entry("students").last_error

    @pytest.mark.asyncio
    async def test_non_object_rows_rejected(self, coordinator, fetcher):
        await coordinator.refresh("students")
        fetcher.documents["master_df.json"] = [1, 2]

        ok = await coordinator.refresh("students")

        assert ok is False
        assert coordinator.get("students") == [{"row": "students"}]
        assert coordinator.entry("students").last_error == "expected an array of objects"

    @pytest.mark.asyncio
    async def test_undecodable_file_is_a_failed_refresh(self, tmp_path):
        for spec in RESOURCES:
            (tmp_path / spec.filename).write_text("[]")
        (tmp_path / "corr_df.json").write_bytes(b"[\xff]")
        coordinator = DataCoordinator(LocalJsonFetcher(tmp_path))

        results = await coordinator.refresh_all()

        assert results["correlations"] is False
        assert results["students"] is True
        assert coordinator.entry("correlations").last_error == "invalid UTF-8"

    def test_unknown_resource(self, coordinator):
        with pytest.raises(KeyError):
            coordinator.get("nope")

    @pytest.mark.asyncio
    async def test_resources_are_independent(self, coordinator, fetcher):
        fetcher.failing.add("master_df.json")

        results = await coordinator.refresh_all()

        assert results["students"] is False
        assert results["correlations"] is True
        assert coordinator.all_loaded() is False


class TestStaleness:
    """Tests for TTL and tag invalidation."""

    @pytest.mark.asyncio
    async def test_fresh_until_ttl(self, coordinator, clock):
        await coordinator.refresh("students")
        assert coordinator.is_stale("students") is False

        clock.advance(4.9)
        assert coordinator.is_stale("students") is False

        clock.advance(0.1)
        assert coordinator.is_stale("students") is True

    def test_unloaded_is_stale(self, coordinator):
        assert coordinator.is_stale("students") is True

    @pytest.mark.asyncio
    async def test_invalidate_tag(self, coordinator):
        await coordinator.refresh_all()

        names = coordinator.invalidate_tag(DASHBOARD_DATA_TAG)

        assert sorted(names) == sorted(coordinator.resource_names)
        assert all(coordinator.is_stale(n) for n in names)
        assert coordinator.get("students") == [{"row": "students"}]

    @pytest.mark.asyncio
    async def test_invalidate_unknown_tag(self, coordinator):
        await coordinator.refresh_all()
        assert coordinator.invalidate_tag("other") == []
        assert coordinator.is_stale("students") is False

    @pytest.mark.asyncio
    async def test_invalidate_only_tagged(self, clock):
        resources = [
            ResourceSpec("a", "a.json"),
            ResourceSpec("b", "b.json", tags=frozenset({"other"})),
        ]
        fetcher = FakeFetcher({"a.json": [1], "b.json": [2]})
        coordinator = DataCoordinator(fetcher, resources, ttl_seconds=60, clock=clock)
        await coordinator.refresh_all()

        assert coordinator.invalidate_tag(DASHBOARD_DATA_TAG) == ["a"]
        assert coordinator.is_stale("b") is False

    @pytest.mark.asyncio
    async def test_refresh_stale_only_refetches_stale(self, coordinator, fetcher):
        await coordinator.refresh_all()
        coordinator.entry("students").invalidated = True
        fetcher.calls.clear()

        refreshed = await coordinator.refresh_stale()

        assert refreshed == ["students"]
        assert fetcher.calls == ["master_df.json"]
        assert coordinator.is_stale("students") is False

    @pytest.mark.asyncio
    async def test_status_reports_entries(self, coordinator, fetcher):
        fetcher.failing.add("q_lookup.json")
        await coordinator.refresh_all()

        status = coordinator.status()

        assert status["students"]["loaded"] is True
        assert status["students"]["age_seconds"] == 0
        assert status["question_lookup"]["loaded"] is False
        assert status["question_lookup"]["last_error"] == "unavailable"


class TestResourcePoller:
    """Tests for the polling loop."""

    @pytest.mark.asyncio
    async def test_polls_every_resource_repeatedly(self, fetcher):
        coordinator = DataCoordinator(fetcher, ttl_seconds=0.01)

        async with ResourcePoller(coordinator, interval_seconds=0.01) as poller:
            assert poller.running
            for _ in range(200):
                if all(fetcher.calls.count(s.filename) >= 2 for s in RESOURCES):
                    break
                await asyncio.sleep(0.01)

        assert coordinator.all_loaded()
        assert all(fetcher.calls.count(s.filename) >= 2 for s in RESOURCES)
        assert poller.running is False

    @pytest.mark.asyncio
    async def test_deferred_start_waits_one_interval(self, fetcher):
        coordinator = DataCoordinator(fetcher)

        async with ResourcePoller(coordinator, interval_seconds=60, immediate=False):
            await asyncio.sleep(0.05)

        assert fetcher.calls == []

    @pytest.mark.asyncio
    async def test_stop_cancels_in_flight_fetches(self):
        fetcher = BlockingFetcher()
        coordinator = DataCoordinator(fetcher, resources=[ResourceSpec("a", "a.json")])

        async with ResourcePoller(coordinator, interval_seconds=1):
            await asyncio.wait_for(fetcher.started.wait(), timeout=1)

        assert fetcher.cancelled == ["a.json"]
        assert coordinator.get("a") is None

    @pytest.mark.asyncio
    async def test_failures_do_not_stop_polling(self, fetcher):
        fetcher.failing.add("master_df.json")
        coordinator = DataCoordinator(fetcher)

        async with ResourcePoller(coordinator, interval_seconds=0.01):
            for _ in range(200):
                if fetcher.calls.count("master_df.json") >= 3:
                    break
                await asyncio.sleep(0.01)

        assert fetcher.calls.count("master_df.json") >= 3
        assert coordinator.get("students") is None

    @pytest.mark.asyncio
    async def test_cannot_start_twice(self, coordinator):
        poller = ResourcePoller(coordinator, interval_seconds=60, immediate=False)
        poller.start()
        try:
            with pytest.raises(RuntimeError):
                poller.start()
        finally:
            await poller.stop()
