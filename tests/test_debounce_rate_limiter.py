from __future__ import annotations

import asyncio

import pytest

from app.services.debounce import Debouncer
from app.services.rate_limiter import MinimumIntervalLimiter


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


# ---------------------------------------------------------------------------
# MinimumIntervalLimiter
# ---------------------------------------------------------------------------


def test_limiter_accepts_first_request() -> None:
    limiter = MinimumIntervalLimiter(min_interval_seconds=5.0, clock=_Clock())
    assert limiter.try_acquire() is True


def test_limiter_rejects_within_interval_without_moving_window() -> None:
    clock = _Clock()
    limiter = MinimumIntervalLimiter(min_interval_seconds=5.0, clock=clock)
    limiter.try_acquire()

    clock.now = 3.0
    assert limiter.try_acquire() is False
    assert limiter.seconds_remaining() == pytest.approx(2.0)

    clock.now = 5.0
    assert limiter.try_acquire() is True


def test_limiter_without_history_has_no_wait() -> None:
    assert MinimumIntervalLimiter(min_interval_seconds=5.0).seconds_remaining() == 0.0


# ---------------------------------------------------------------------------
# Debouncer
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_rapid_triggers_collapse_into_one_run() -> None:
    calls: list[int] = []
    debouncer = Debouncer(name="test", delay_seconds=0.02, callback=lambda: calls.append(1))

    for _ in range(5):
        debouncer.trigger()
        await asyncio.sleep(0)
    await debouncer.wait()

    assert calls == [1]
    assert not debouncer.pending


@pytest.mark.asyncio
async def test_cancel_discards_pending_run() -> None:
    calls: list[int] = []
    debouncer = Debouncer(name="test", delay_seconds=0.05, callback=lambda: calls.append(1))

    debouncer.trigger()
    assert debouncer.pending
    debouncer.cancel()
    await asyncio.sleep(0.08)

    assert calls == []
    assert not debouncer.pending


@pytest.mark.asyncio
async def test_async_callback_is_awaited() -> None:
    done = asyncio.Event()

    async def callback() -> None:
        await asyncio.sleep(0)
        done.set()

    debouncer = Debouncer(name="test", delay_seconds=0.0, callback=callback)
    debouncer.trigger()
    await debouncer.wait()

    assert done.is_set()


def test_trigger_requires_running_loop() -> None:
    debouncer = Debouncer(name="test", delay_seconds=0.0, callback=lambda: None)
    with pytest.raises(RuntimeError):
        debouncer.trigger()
