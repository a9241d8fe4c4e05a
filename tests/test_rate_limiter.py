"""Test suite for the per-client rate limiter."""

import pytest
import pytest_asyncio

from adix_chat.api.rate_limiter import RateLimiter


@pytest_asyncio.fixture
async def limiter(clock):
    limiter = RateLimiter(limit=3, window_seconds=60, clock=clock)
    yield limiter
    await limiter.stop()


@pytest.mark.asyncio
async def test_first_request_always_allowed(limiter):
    """A fresh client key is admitted and starts a window with count 1."""
    assert await limiter.check_rate_limit("10.0.0.1") is True
    entry = limiter.entries["10.0.0.1"]
    assert entry.count == 1
    assert entry.window_reset_at == pytest.approx(1060.0)


@pytest.mark.asyncio
async def test_limit_plus_one_is_rejected(limiter):
    results = [await limiter.check_rate_limit("10.0.0.1") for _ in range(4)]
    assert results == [True, True, True, False]
    # Rejections do not increment
    assert limiter.entries["10.0.0.1"].count == 3


@pytest.mark.asyncio
async def test_clients_are_counted_separately(limiter):
    for _ in range(3):
        assert await limiter.check_rate_limit("a")
    assert not await limiter.check_rate_limit("a")
    assert await limiter.check_rate_limit("b")


@pytest.mark.asyncio
async def test_window_resets_after_sixty_seconds(limiter, clock):
    for _ in range(3):
        await limiter.check_rate_limit("a")
    assert not await limiter.check_rate_limit("a")

    clock.advance(60)
    assert await limiter.check_rate_limit("a")
    assert limiter.entries["a"].count == 1


@pytest.mark.asyncio
async def test_boundary_timestamp_counts_as_expired(limiter, clock):
    """now == reset time opens a new window."""
    await limiter.check_rate_limit("a")
    clock.advance(59)
    await limiter.check_rate_limit("a")
    assert limiter.entries["a"].count == 2

    clock.advance(1)
    assert await limiter.check_rate_limit("a")
    assert limiter.entries["a"].count == 1


@pytest.mark.asyncio
async def test_explicit_limit_overrides_global(limiter):
    assert await limiter.check_rate_limit("a", limit=1)
    assert not await limiter.check_rate_limit("a", limit=1)
    assert await limiter.check_rate_limit("a", limit=5)


@pytest.mark.asyncio
async def test_non_positive_limit_admits_only_window_opener(limiter, clock):
    limiter.limit = 0
    assert await limiter.check_rate_limit("a")
    assert not await limiter.check_rate_limit("a")
    clock.advance(60)
    assert await limiter.check_rate_limit("a")


@pytest.mark.asyncio
async def test_limit_change_applies_to_open_windows(limiter):
    for _ in range(3):
        await limiter.check_rate_limit("a")
    assert not await limiter.check_rate_limit("a")

    limiter.limit = 5
    assert await limiter.check_rate_limit("a")
    assert await limiter.check_rate_limit("a")
    assert not await limiter.check_rate_limit("a")

    limiter.limit = 1
    assert not await limiter.check_rate_limit("a")


@pytest.mark.asyncio
async def test_sweep_removes_only_expired_entries(limiter, clock):
    await limiter.check_rate_limit("old")
    clock.advance(30)
    await limiter.check_rate_limit("new")
    clock.advance(30)

    assert await limiter.sweep_expired() == 1
    assert "old" not in limiter.entries
    assert "new" in limiter.entries
    assert await limiter.active_clients() == 1


@pytest.mark.asyncio
async def test_reset_drops_all_entries(limiter):
    await limiter.check_rate_limit("a")
    await limiter.check_rate_limit("b")
    await limiter.reset()
    assert limiter.entries == {}
    assert await limiter.active_clients() == 0


@pytest.mark.asyncio
async def test_start_and_stop_are_idempotent(limiter):
    await limiter.start()
    await limiter.start()
    await limiter.stop()
    await limiter.stop()
