# Path: exporter/tests/test_progress.py
"""
Unit tests for progress tracking, the progress channel and cancellation.
"""

import asyncio

import pytest

from exporter.engine.progress import CancellationToken, ProgressChannel, ProgressTracker


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_eta_needs_two_samples():
    clock = FakeClock()
    tracker = ProgressTracker(clock=clock)
    tracker.start()

    clock.now = 1.0
    assert tracker.record(10.0) is None, "One sample gives no ETA"


def test_eta_linear_extrapolation():
    """10% -> 30% over 2s leaves 70% at 10%/s: 7s."""
    clock = FakeClock()
    tracker = ProgressTracker(clock=clock)
    tracker.start()

    clock.now = 1.0
    tracker.record(10.0)
    clock.now = 3.0
    eta = tracker.record(30.0)

    assert eta == pytest.approx(7.0), f"Expected ~7s, got {eta}"


def test_decreasing_percentage_ignored():
    """A drop is not sampled and does not change the ETA."""
    clock = FakeClock()
    tracker = ProgressTracker(clock=clock)
    tracker.start()

    clock.now = 1.0
    tracker.record(10.0)
    clock.now = 3.0
    before = tracker.record(30.0)
    clock.now = 4.0
    after = tracker.record(20.0)

    assert after == before
    assert tracker.last_percentage == 30.0
    assert len(tracker.samples) == 2


def test_repeated_percentage_not_sampled():
    clock = FakeClock()
    tracker = ProgressTracker(clock=clock)
    tracker.start()

    for second, pct in enumerate([10.0, 55.0, 55.0, 55.0], start=1):
        clock.now = float(second)
        tracker.record(pct)

    assert [p for _, p in tracker.samples] == [10.0, 55.0]


def test_unreasonable_eta_suppressed():
    """ETAs at or above the ceiling are not reported."""
    clock = FakeClock()
    tracker = ProgressTracker(clock=clock, max_eta=300.0)
    tracker.start()

    clock.now = 10.0
    tracker.record(1.0)
    clock.now = 20.0
    assert tracker.record(2.0) is None, "98% at 0.1%/s is 980s, above the ceiling"


def test_window_limits_samples():
    clock = FakeClock()
    tracker = ProgressTracker(window=5, clock=clock)
    tracker.start()

    for i in range(1, 9):
        clock.now = float(i)
        tracker.record(i * 10.0)

    assert len(tracker.samples) == 5
    assert tracker.samples[0][1] == 40.0


@pytest.mark.asyncio
async def test_channel_listeners_and_subscribers():
    """Events reach plain listeners, async listeners and subscribers in order."""
    channel = ProgressChannel()
    plain, awaited = [], []

    async def async_listener(event):
        awaited.append(event.phase)

    channel.add_listener(lambda event: plain.append(event.phase))
    channel.add_listener(async_listener)
    events = channel.subscribe()

    await channel.emit('poll', 10.0, 'Running')
    await channel.emit('download', 50.0)
    channel.close()

    received = [event async for event in events]

    assert plain == ['poll', 'download']
    assert awaited == ['poll', 'download']
    assert [(e.phase, e.percentage) for e in received] == [('poll', 10.0), ('download', 50.0)]
    assert channel.last_event.phase == 'download'


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_publication():
    channel = ProgressChannel()
    seen = []

    def broken(event):
        raise RuntimeError('listener bug')

    channel.add_listener(broken)
    channel.add_listener(lambda event: seen.append(event.phase))

    await channel.emit('poll', 5.0)

    assert seen == ['poll']


@pytest.mark.asyncio
async def test_closed_channel_ignores_events():
    channel = ProgressChannel()
    channel.close()
    await channel.emit('poll', 5.0)

    assert channel.last_event is None
    assert [event async for event in channel.subscribe()] == []


@pytest.mark.asyncio
async def test_cancellation_token_interrupts_sleep():
    token = CancellationToken()

    async def cancel_soon():
        await asyncio.sleep(0.01)
        token.cancel('user')

    asyncio.ensure_future(cancel_soon())
    interrupted = await token.sleep(5.0)

    assert interrupted is True
    assert token.is_cancelled
    assert token.reason == 'user'


@pytest.mark.asyncio
async def test_cancellation_token_sleep_runs_out():
    token = CancellationToken()

    assert await token.sleep(0.01) is False
    assert not token.is_cancelled
