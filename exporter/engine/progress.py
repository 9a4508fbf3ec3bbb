# Path: exporter/engine/progress.py
"""
Progress and Cancellation

Progress estimation, typed progress publication and cooperative
cancellation for export runs.

Architecture:
- ProgressTracker: ETA from recent strictly increasing samples
- ProgressChannel: publishes ProgressEvent to callbacks and async iterators
- CancellationToken: asyncio.Event checked at phase boundaries
"""

import asyncio
import inspect
import time
from collections import deque
from typing import AsyncIterator, Callable, Optional

from exporter.core.logger import get_logger
from exporter.engine.result import ProgressEvent
from exporter.constants import (
    DEFAULT_ETA_WINDOW,
    MAX_REASONABLE_ETA_SECONDS,
    LOG_PROCESS,
)

logger = get_logger(__name__, 'engine')


class ProgressTracker:
    """
    Estimates time remaining from reported percentages.

    Only strictly increasing percentages are sampled. Decreases are
    logged and otherwise ignored.

    Example:
        tracker = ProgressTracker()
        tracker.start()
        eta = tracker.record(40.0)   # None until two samples exist
    """

    def __init__(
        self,
        window: int = DEFAULT_ETA_WINDOW,
        max_eta: float = MAX_REASONABLE_ETA_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize tracker.

        Args:
            window: Number of recent samples used for extrapolation
            max_eta: ETAs at or above this are not reported
            clock: Monotonic time source
        """
        self.window = window
        self.max_eta = max_eta
        self.clock = clock
        self.samples: deque = deque(maxlen=window)
        self.last_percentage: Optional[float] = None
        self._started_at: Optional[float] = None

    def start(self) -> None:
        self._started_at = self.clock()
        self.samples.clear()
        self.last_percentage = None

    @property
    def elapsed(self) -> float:
        if self._started_at is None:
            return 0.0
        return self.clock() - self._started_at

    def record(self, percentage: Optional[float]) -> Optional[float]:
        """
        Record a reported percentage.

        Args:
            percentage: Reported progress (None is ignored)

        Returns:
            Current ETA in seconds, or None
        """
        if self._started_at is None:
            self.start()

        if percentage is None:
            return self.eta()

        if self.last_percentage is not None and percentage < self.last_percentage:
            logger.info(
                f"{LOG_PROCESS} Progress went backwards: "
                f"{self.last_percentage:.0f}% -> {percentage:.0f}%"
            )
            return self.eta()

        if self.last_percentage is None or percentage > self.last_percentage:
            self.samples.append((self.elapsed, percentage))
            self.last_percentage = percentage

        return self.eta()

    def eta(self) -> Optional[float]:
        """
        Linear extrapolation over the sample window.

        Returns:
            Seconds remaining when 0 < eta < max_eta, otherwise None
        """
        if len(self.samples) < 2:
            return None

        first_time, first_pct = self.samples[0]
        last_time, last_pct = self.samples[-1]
        elapsed = last_time - first_time
        if elapsed <= 0:
            return None

        rate = (last_pct - first_pct) / elapsed
        if rate <= 0:
            return None

        remaining = (100.0 - last_pct) / rate
        if 0 < remaining < self.max_eta:
            return remaining
        return None


_CHANNEL_CLOSED = object()


class ProgressChannel:
    """
    Publishes ProgressEvent objects.

    Subscribers are plain or async callables registered with add_listener(),
    or async iterators obtained from subscribe().

    Example:
        channel = ProgressChannel()
        channel.add_listener(lambda event: print(event.phase, event.percentage))

        async for event in channel.subscribe():
            ...
    """

    def __init__(self):
        self._listeners: list[Callable] = []
        self._queues: list[asyncio.Queue] = []
        self._closed = False
        self.last_event: Optional[ProgressEvent] = None

    def add_listener(self, callback: Callable) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def subscribe(self) -> AsyncIterator[ProgressEvent]:
        """
        Async iterator over events published from now on.

        Iteration ends when the channel is closed.
        """
        queue: asyncio.Queue = asyncio.Queue()
        if self._closed:
            queue.put_nowait(_CHANNEL_CLOSED)
        self._queues.append(queue)
        return self._drain(queue)

    async def _drain(self, queue: asyncio.Queue) -> AsyncIterator[ProgressEvent]:
        try:
            while True:
                event = await queue.get()
                if event is _CHANNEL_CLOSED:
                    return
                yield event
        finally:
            if queue in self._queues:
                self._queues.remove(queue)

    async def publish(self, event: ProgressEvent) -> None:
        """
        Deliver an event to every subscriber.

        Listener errors are logged and do not interrupt the export.

        Args:
            event: Event to publish
        """
        if self._closed:
            return

        self.last_event = event

        for queue in list(self._queues):
            queue.put_nowait(event)

        for callback in list(self._listeners):
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning(f"{LOG_PROCESS} Progress listener failed: {e}", exc_info=True)

    async def emit(
        self,
        phase: str,
        percentage: Optional[float] = None,
        message: str = '',
        eta_seconds: Optional[float] = None
    ) -> None:
        """Build and publish an event."""
        await self.publish(ProgressEvent(
            phase=phase,
            percentage=percentage,
            message=message,
            eta_seconds=eta_seconds
        ))

    def close(self) -> None:
        """End all subscriptions."""
        if self._closed:
            return
        self._closed = True
        for queue in list(self._queues):
            queue.put_nowait(_CHANNEL_CLOSED)


class CancellationToken:
    """
    Cooperative cancellation flag.

    Example:
        token = CancellationToken()
        loop.add_signal_handler(signal.SIGINT, token.cancel)
        outcome = await orchestrator.run_export('matter-x', cancellation=token)
    """

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()

    async def sleep(self, delay: float) -> bool:
        """
        Sleep for delay seconds or until cancelled.

        Returns:
            True if cancelled during the sleep
        """
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True


__all__ = ['ProgressTracker', 'ProgressChannel', 'CancellationToken']
