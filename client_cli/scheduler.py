"""
Refresh-before-expiry timer.

One asyncio task at most. The timer fires `lead_seconds` (default 5 minutes) before the
access token expires; if that moment has already passed it fires immediately. The refresh
callback returns the new expiry instant on success or None on failure:

    Idle -> Scheduled      schedule(expiry_instant)
    Scheduled -> Refreshing   timer fires
    Refreshing -> Scheduled   callback returned a new expiry
    Refreshing -> Idle        callback returned None (no retry)

schedule() and cancel() always drop the current task first, including a refresh in flight.
"""
import asyncio
import enum
import logging
import time
from typing import Awaitable, Callable

from client_cli.config import REFRESH_LEAD_SECONDS

logger = logging.getLogger(__name__)

RefreshCallback = Callable[[], Awaitable[float | None]]


class SchedulerState(enum.Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    REFRESHING = "refreshing"


def refresh_delay(expiry_instant: float, now: float, lead_seconds: float = REFRESH_LEAD_SECONDS) -> float:
    """Seconds until the refresh should run, never negative."""
    return max(0.0, expiry_instant - now - lead_seconds)


class RefreshScheduler:
    def __init__(
        self,
        refresh: RefreshCallback,
        lead_seconds: float = REFRESH_LEAD_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._refresh = refresh
        self._lead_seconds = lead_seconds
        self._clock = clock
        self._task: asyncio.Task | None = None
        self.state = SchedulerState.IDLE
        self.next_delay: float | None = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, expiry_instant: float) -> float:
        """(Re)arm the timer for this expiry. Must be called from a running event loop."""
        self._drop_task()
        delay = refresh_delay(expiry_instant, self._clock(), self._lead_seconds)
        self.next_delay = delay
        self.state = SchedulerState.SCHEDULED
        self._task = asyncio.get_running_loop().create_task(self._run(delay))
        logger.debug("Token refresh scheduled in %.0fs", delay)
        return delay

    def cancel(self) -> None:
        """Stop the timer (and any refresh in flight). Safe to call when idle."""
        self._drop_task()
        self.state = SchedulerState.IDLE
        self.next_delay = None

    async def wait(self, poll_interval: float = 1.0) -> None:
        """Block until the scheduler goes idle (used by long-running consumers)."""
        while self.state is not SchedulerState.IDLE:
            await asyncio.sleep(poll_interval)

    def _drop_task(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None  # called outside the loop
        if task is not current:
            task.cancel()

    async def _run(self, delay: float) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        self.state = SchedulerState.REFRESHING
        me = asyncio.current_task()
        try:
            new_expiry = await self._refresh()
        except Exception:
            logger.exception("Token refresh callback raised")
            new_expiry = None
        if self._task is not me:
            # schedule()/cancel() ran while we were refreshing; that call owns the state now
            return
        if new_expiry is None:
            logger.info("Token refresh failed; scheduler idle until next login")
            self._task = None
            self.state = SchedulerState.IDLE
            self.next_delay = None
            return
        self.schedule(new_expiry)
