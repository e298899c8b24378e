from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from pyartchain.exceptions import ArtchainTransportError
from pyartchain.query.cache import QueryCache
from pyartchain.query.entry import EntrySnapshot, FetchStatus
from pyartchain.query.keys import query_key


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class CountingLoader:
    """Loader returning queued results; exceptions in the queue are raised."""

    def __init__(self, *results: object, gate: asyncio.Event | None = None) -> None:
        self.results = list(results)
        self.calls = 0
        self.gate = gate

    async def __call__(self) -> object:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, BaseException):
            raise result
        return result


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_load_and_snapshot() -> None:
    cache = QueryCache()
    key = query_key("achievements", "user-42")
    release = asyncio.Event()
    loader = CountingLoader({"totalAchievements": 3}, gate=release)

    callers = [asyncio.create_task(cache.fetch(key, loader)) for _ in range(5)]
    await asyncio.sleep(0)
    assert cache.peek(key).status == FetchStatus.LOADING

    release.set()
    results = await asyncio.gather(*callers)

    assert loader.calls == 1
    assert all(result is results[0] for result in results)
    assert results[0].status == FetchStatus.SUCCESS
    assert results[0].value == {"totalAchievements": 3}


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_failure() -> None:
    cache = QueryCache()
    key = query_key("user-me", token="abc")
    release = asyncio.Event()
    loader = CountingLoader(ArtchainTransportError("down", status_code=503, endpoint="/users/me"), gate=release)

    callers = [asyncio.create_task(cache.fetch(key, loader)) for _ in range(3)]
    await asyncio.sleep(0)
    release.set()
    results = await asyncio.gather(*callers)

    assert loader.calls == 1
    assert {result.status for result in results} == {FetchStatus.ERROR}
    assert results[0].error is not None
    assert results[0].error.status_code == 503
    assert results[0].error.endpoint == "/users/me"


@pytest.mark.asyncio
async def test_fresh_entry_is_not_reloaded_until_stale() -> None:
    clock = FakeClock()
    cache = QueryCache(clock=clock)
    key = query_key("contests")
    loader = CountingLoader(["a"], ["b"])

    first = await cache.fetch(key, loader, stale_time=120)
    clock.advance(119)
    second = await cache.fetch(key, loader, stale_time=120)

    assert loader.calls == 1
    assert second.value == ["a"]
    assert first.fetched_at == clock.now - timedelta(seconds=119)

    clock.advance(2)
    third = await cache.fetch(key, loader, stale_time=120)

    assert loader.calls == 2
    assert third.value == ["b"]


@pytest.mark.asyncio
async def test_default_stale_time_applies_when_fetch_passes_none() -> None:
    clock = FakeClock()
    cache = QueryCache(clock=clock, default_stale_time=10)
    key = query_key("contest", 1)
    loader = CountingLoader("v")

    await cache.fetch(key, loader)
    clock.advance(11)
    await cache.fetch(key, loader)

    assert loader.calls == 2


@pytest.mark.asyncio
async def test_without_stale_time_entries_stay_fresh() -> None:
    clock = FakeClock()
    cache = QueryCache(clock=clock)
    key = query_key("contest", 1)
    loader = CountingLoader("v")

    await cache.fetch(key, loader)
    clock.advance(10**6)
    await cache.fetch(key, loader)

    assert loader.calls == 1


@pytest.mark.asyncio
async def test_disabled_and_keyless_fetches_never_load() -> None:
    cache = QueryCache()
    loader = CountingLoader("v")
    key = query_key("achievements", "user-42")

    disabled = await cache.fetch(key, loader, enabled=False)
    keyless = await cache.fetch(None, loader)

    assert loader.calls == 0
    assert disabled.status == FetchStatus.IDLE
    assert keyless.status == FetchStatus.IDLE
    assert keyless.key is None

    enabled = await cache.fetch(key, loader)
    assert loader.calls == 1
    assert enabled.status == FetchStatus.SUCCESS


@pytest.mark.asyncio
async def test_failed_refetch_keeps_last_good_value() -> None:
    cache = QueryCache()
    key = query_key("user-me", token="abc")
    loader = CountingLoader("V1", RuntimeError("boom"))

    first = await cache.fetch(key, loader)
    cache.invalidate(key)
    second = await cache.fetch(key, loader)

    assert first.value == "V1"
    assert second.status == FetchStatus.ERROR
    assert second.value == "V1"
    assert second.has_value is True
    assert second.error is not None
    assert second.error.type == "RuntimeError"
    assert second.failure_count == 1


@pytest.mark.asyncio
async def test_errored_entry_is_retried_on_next_request() -> None:
    cache = QueryCache()
    key = query_key("contest", 3)
    loader = CountingLoader(RuntimeError("boom"), "ok")

    first = await cache.fetch(key, loader)
    second = await cache.fetch(key, loader)

    assert first.status == FetchStatus.ERROR
    assert first.has_value is False
    assert second.status == FetchStatus.SUCCESS
    assert second.error is None
    assert second.failure_count == 0


@pytest.mark.asyncio
async def test_retry_attempts_before_failing() -> None:
    cache = QueryCache()
    key = query_key("user-me", token="abc")
    loader = CountingLoader(RuntimeError("flaky"), "me")

    snapshot = await cache.fetch(key, loader, retry=1)

    assert loader.calls == 2
    assert snapshot.status == FetchStatus.SUCCESS

    failing = CountingLoader(RuntimeError("down"))
    cache.invalidate(key)
    snapshot = await cache.fetch(key, failing, retry=2)

    assert failing.calls == 3
    assert snapshot.status == FetchStatus.ERROR


@pytest.mark.asyncio
async def test_invalidate_marks_entry_and_forces_reload() -> None:
    cache = QueryCache()
    key = query_key("user-me", token="abc")
    loader = CountingLoader("me")
    await cache.fetch(key, loader)

    assert cache.invalidate(key) is True
    assert cache.peek(key).invalidated is True
    assert cache.needs_fetch(key) is True
    assert cache.invalidate(query_key("missing")) is False

    snapshot = await cache.fetch(key, loader)

    assert loader.calls == 2
    assert snapshot.invalidated is False


@pytest.mark.asyncio
async def test_invalidate_where_and_remove_where_select_by_key() -> None:
    cache = QueryCache()
    me_a = query_key("user-me", token="a")
    me_b = query_key("user-me", token="b")
    contests = query_key("contests")
    for key in (me_a, me_b, contests):
        await cache.fetch(key, CountingLoader("v"))

    invalidated = cache.invalidate_where(lambda key: key.resource == "user-me")
    removed = cache.remove_where(lambda key: key.matches("user-me", token="a"))

    assert set(invalidated) == {me_a, me_b}
    assert removed == [me_a]
    assert set(cache.keys()) == {me_b, contests}
    assert cache.peek(me_a).status == FetchStatus.IDLE

    cache.clear()
    assert cache.keys() == []


@pytest.mark.asyncio
async def test_removed_entry_does_not_receive_late_result() -> None:
    cache = QueryCache()
    key = query_key("achievements", "user-42")
    release = asyncio.Event()
    loader = CountingLoader("late", gate=release)

    pending = asyncio.create_task(cache.fetch(key, loader))
    await asyncio.sleep(0)
    cache.remove(key)
    release.set()
    await pending

    assert cache.peek(key).status == FetchStatus.IDLE
    assert cache.keys() == []


@pytest.mark.asyncio
async def test_fetch_after_eviction_joins_the_running_load() -> None:
    cache = QueryCache()
    key = query_key("user-me", token="abc")
    release = asyncio.Event()
    loader = CountingLoader("me", gate=release)

    owner = asyncio.create_task(cache.fetch(key, loader))
    await asyncio.sleep(0)
    cache.remove(key)
    follower = asyncio.create_task(cache.fetch(key, loader))
    for _ in range(3):
        await asyncio.sleep(0)

    assert loader.calls == 1
    assert cache.peek(key).status == FetchStatus.LOADING

    release.set()
    first, second = await asyncio.gather(owner, follower)

    assert loader.calls == 1
    assert first is second
    assert second.status == FetchStatus.SUCCESS
    assert cache.peek(key).value == "me"


@pytest.mark.asyncio
async def test_clear_during_load_then_refetch_loads_once() -> None:
    cache = QueryCache()
    key = query_key("contests")
    release = asyncio.Event()
    loader = CountingLoader(["c"], gate=release)

    owner = asyncio.create_task(cache.fetch(key, loader))
    await asyncio.sleep(0)
    cache.clear()
    follower = asyncio.create_task(cache.fetch(key, loader))
    release.set()
    await asyncio.gather(owner, follower)

    assert loader.calls == 1
    assert cache.keys() == [key]

    cache.invalidate(key)
    await cache.fetch(key, loader)
    assert loader.calls == 2


@pytest.mark.asyncio
async def test_cancelling_a_joiner_does_not_cancel_the_load() -> None:
    cache = QueryCache()
    key = query_key("contests")
    release = asyncio.Event()
    loader = CountingLoader(["c"], gate=release)

    owner = asyncio.create_task(cache.fetch(key, loader))
    joiner = asyncio.create_task(cache.fetch(key, loader))
    await asyncio.sleep(0)
    joiner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await joiner

    release.set()
    snapshot = await owner

    assert snapshot.status == FetchStatus.SUCCESS
    assert loader.calls == 1


@pytest.mark.asyncio
async def test_listeners_see_transitions_and_failures_are_isolated() -> None:
    cache = QueryCache()
    key = query_key("contest", 9)
    seen: list[FetchStatus] = []

    def broken(_snapshot: EntrySnapshot[object]) -> None:
        raise RuntimeError("listener bug")

    cache.subscribe(key, broken)
    unsubscribe = cache.subscribe(key, lambda snapshot: seen.append(snapshot.status))

    snapshot = await cache.fetch(key, CountingLoader("c"))
    unsubscribe()
    cache.invalidate(key)

    assert snapshot.status == FetchStatus.SUCCESS
    assert seen == [FetchStatus.LOADING, FetchStatus.SUCCESS]


@pytest.mark.asyncio
async def test_loader_may_return_none() -> None:
    cache = QueryCache()
    key = query_key("contest", 5)

    snapshot = await cache.fetch(key, CountingLoader(None))

    assert snapshot.status == FetchStatus.SUCCESS
    assert snapshot.value is None
    assert snapshot.has_value is True
