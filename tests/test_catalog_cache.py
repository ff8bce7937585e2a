"""Tests for the CatalogCache refresh window and stale fallback."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from malratings.config.models import Config, MALConfig
from malratings.core.exceptions import ApiError, ConfigurationError
from malratings.core.models import CatalogEntry
from malratings.io.cache import CatalogCache
from malratings.providers.mal import MALApiClient


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def _entries(*ids: int) -> list[CatalogEntry]:
    return [
        CatalogEntry.model_validate(
            {"node": {"id": i, "title": f"Anime {i}"}, "list_status": {"score": 7}}
        )
        for i in ids
    ]


@pytest.fixture()
def config() -> Config:
    return Config(mal=MALConfig(access_token="token"))


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


def _client(*results: object) -> MagicMock:
    client = MagicMock(spec=MALApiClient)
    client.fetch_rated_catalog = AsyncMock(side_effect=list(results))
    return client


@pytest.mark.asyncio()
async def test_single_fetch_within_refresh_window(config: Config, clock: FakeClock) -> None:
    client = _client(_entries(1, 2))
    cache = CatalogCache(client, clock=clock)

    first = await cache.get_entries(config)
    clock.advance(hours=23, minutes=59)
    second = await cache.get_entries(config)

    assert first == second
    assert [e.id for e in second] == [1, 2]
    assert client.fetch_rated_catalog.await_count == 1
    assert cache.entry_count == 2


@pytest.mark.asyncio()
async def test_refetch_after_refresh_window(config: Config, clock: FakeClock) -> None:
    client = _client(_entries(1), _entries(1, 2, 3))
    cache = CatalogCache(client, clock=clock)

    await cache.get_entries(config)
    clock.advance(hours=24)
    entries = await cache.get_entries(config)

    assert [e.id for e in entries] == [1, 2, 3]
    assert client.fetch_rated_catalog.await_count == 2
    assert cache.last_fetch_time == clock.now


@pytest.mark.asyncio()
async def test_refresh_interval_comes_from_config(clock: FakeClock) -> None:
    config = Config(mal=MALConfig(access_token="token"), refresh_interval_hours=1)
    client = _client(_entries(1), _entries(2))
    cache = CatalogCache(client, clock=clock)

    await cache.get_entries(config)
    clock.advance(hours=1)
    entries = await cache.get_entries(config)

    assert [e.id for e in entries] == [2]


@pytest.mark.asyncio()
async def test_force_refresh_ignores_window(config: Config, clock: FakeClock) -> None:
    client = _client(_entries(1), _entries(2))
    cache = CatalogCache(client, clock=clock)

    await cache.get_entries(config)
    entries = await cache.get_entries(config, force_refresh=True)

    assert [e.id for e in entries] == [2]


@pytest.mark.asyncio()
async def test_failed_refresh_serves_stale_entries(config: Config, clock: FakeClock) -> None:
    client = _client(_entries(1, 2), ApiError("MAL down", status=503))
    cache = CatalogCache(client, clock=clock)

    await cache.get_entries(config)
    clock.advance(days=2)
    entries = await cache.get_entries(config)

    assert entries is not None
    assert [e.id for e in entries] == [1, 2]


@pytest.mark.asyncio()
async def test_failed_first_fetch_returns_none(config: Config, clock: FakeClock) -> None:
    client = _client(ApiError("MAL down", status=500))
    cache = CatalogCache(client, clock=clock)

    assert await cache.get_entries(config) is None
    assert cache.last_fetch_time is None


@pytest.mark.asyncio()
async def test_missing_token_raises(clock: FakeClock) -> None:
    client = MALApiClient()
    client._get_json = AsyncMock()
    cache = CatalogCache(client, clock=clock)

    with pytest.raises(ConfigurationError):
        await cache.get_entries(Config())

    client._get_json.assert_not_awaited()


@pytest.mark.asyncio()
async def test_invalidate_forces_refetch(config: Config, clock: FakeClock) -> None:
    client = _client(_entries(1), _entries(4))
    cache = CatalogCache(client, clock=clock)

    await cache.get_entries(config)
    cache.invalidate()
    assert cache.entry_count == 0

    entries = await cache.get_entries(config)
    assert [e.id for e in entries] == [4]


@pytest.mark.asyncio()
async def test_cancelled_refresh_keeps_previous_state(config: Config, clock: FakeClock) -> None:
    client = _client(_entries(1, 2))
    cache = CatalogCache(client, clock=clock)
    await cache.get_entries(config)
    fetched_at = cache.last_fetch_time

    started = asyncio.Event()

    async def hanging_fetch(credentials: MALConfig) -> list[CatalogEntry]:
        started.set()
        await asyncio.Event().wait()
        return _entries(9)

    client.fetch_rated_catalog = hanging_fetch
    clock.advance(days=1)
    task = asyncio.create_task(cache.get_entries(config))
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert cache.last_fetch_time == fetched_at
    assert cache.entry_count == 2


@pytest.mark.asyncio()
async def test_concurrent_misses_keep_one_complete_list(
    config: Config, clock: FakeClock
) -> None:
    client = MagicMock(spec=MALApiClient)
    calls: list[int] = []

    async def fetch(credentials: MALConfig) -> list[CatalogEntry]:
        calls.append(len(calls) + 1)
        base = len(calls) * 10
        await asyncio.sleep(0)
        return _entries(base, base + 1, base + 2)

    client.fetch_rated_catalog = fetch
    cache = CatalogCache(client, clock=clock)

    first, second = await asyncio.gather(
        cache.get_entries(config), cache.get_entries(config)
    )

    assert len(calls) == 2
    assert len(first) == 3 and len(second) == 3
    cached = await cache.get_entries(config)
    assert len(calls) == 2
    assert [e.id for e in cached] in ([e.id for e in first], [e.id for e in second])
    assert cache.entry_count == 3
    assert cache.last_fetch_time == clock.now
