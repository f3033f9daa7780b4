# studymate/utils/poll_scheduler.py
"""Fixed-interval cooperative refresh loop tied to a consumer's active state."""
import asyncio
import inspect
import logging
import time
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from .sync_metrics import SyncMetrics

logger = logging.getLogger(__name__)

T = TypeVar('T')


class PollTick:
    """Handle given to each poll; goes stale once its scheduler is stopped or restarted."""

    def __init__(self, scheduler: "PollScheduler", generation: int):
        self._scheduler = scheduler
        self.generation = generation

    @property
    def is_stale(self) -> bool:
        return not self._scheduler.is_running or self._scheduler.generation != self.generation


class PollScheduler(Generic[T]):
    """
    Runs ``poll`` every ``interval`` seconds between ``start()`` and ``stop()``.

    At most one poll is in flight. A tick that comes due while the previous
    poll is still running is skipped, not queued. ``stop()`` only stops
    scheduling: a poll already in flight runs to completion, but its result
    is discarded instead of being handed to ``on_result``.
    """

    def __init__(
        self,
        poll: Callable[[PollTick], Awaitable[T]],
        interval: float,
        on_result: Optional[Callable[[T], Any]] = None,
        name: str = "poll",
        metrics: Optional[SyncMetrics] = None,
    ):
        if interval <= 0:
            raise ValueError("Poll interval must be positive")
        self._poll = poll
        self.interval = interval
        self._on_result = on_result
        self.name = name
        self.metrics = metrics or SyncMetrics()
        self.generation = 0
        self._running = False
        self._loop_task: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def has_inflight(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def start(self):
        """Begin polling; the first poll runs immediately. No-op when already running."""
        if self._running:
            return
        self._running = True
        self.generation += 1
        self._loop_task = asyncio.create_task(self._run(self.generation), name=f"{self.name}-loop")
        logger.debug(f"Poller {self.name} started (interval {self.interval}s)")

    def stop(self):
        """Stop scheduling further polls."""
        if not self._running:
            return
        self._running = False
        self.generation += 1
        if self._loop_task:
            self._loop_task.cancel()
            self._loop_task = None
        logger.debug(f"Poller {self.name} stopped")

    async def wait_idle(self):
        """Wait for the poll in flight, if any, to settle."""
        if self._inflight is not None:
            await asyncio.wait([self._inflight])

    async def _run(self, generation: int):
        while self._running and generation == self.generation:
            if self.has_inflight:
                self.metrics.record_skipped()
                logger.debug(f"Poller {self.name}: previous poll still running, tick skipped")
            else:
                tick = PollTick(self, generation)
                self._inflight = asyncio.create_task(self._tick(tick), name=f"{self.name}-tick")
            await asyncio.sleep(self.interval)

    async def _tick(self, tick: PollTick) -> Optional[T]:
        start_time = time.monotonic()
        try:
            result = await self._poll(tick)
        except Exception as e:
            self.metrics.record_failed(time.monotonic() - start_time)
            logger.error(f"Poller {self.name} failed: {e}")
            return None

        self.metrics.record_completed(time.monotonic() - start_time)

        if tick.is_stale:
            self.metrics.record_discarded()
            logger.debug(f"Poller {self.name}: result arrived after stop, discarded")
            return None

        if self._on_result is not None:
            try:
                delivered = self._on_result(result)
                if inspect.isawaitable(delivered):
                    await delivered
            except Exception as e:
                logger.error(f"Poller {self.name}: result handler failed: {e}")
        return result
