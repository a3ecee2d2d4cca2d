"""
Fixed-interval scheduler for the poll loop.

Runs a coroutine on a wall-clock grid. Ticks missed while a run overran
are skipped rather than queued, and ``stop()`` lets the in-flight run
finish before ``run()`` returns.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class IntervalScheduler:
    """
    Call an async function every ``interval`` seconds until stopped.

    The first tick fires immediately. Exceptions raised by the callback are
    logged and do not affect the timing of later ticks.
    """

    def __init__(
        self,
        callback: Callable[[], Awaitable[object]],
        interval: float,
        name: str = "poll",
    ):
        """
        Initialize the scheduler.

        Parameters
        ----------
        callback : Callable[[], Awaitable[object]]
            Coroutine function run on every tick.
        interval : float
            Seconds between tick start times.
        name : str
            Name used in log messages.
        """
        if interval <= 0:
            raise ValueError("Interval must be positive")

        self.callback = callback
        self.interval = interval
        self.name = name
        self.ticks_run = 0
        self.ticks_skipped = 0
        self._stop_event = asyncio.Event()

    @property
    def stopping(self) -> bool:
        """True once stop() has been requested."""
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Request shutdown; the current tick, if any, is allowed to finish."""
        if not self._stop_event.is_set():
            logger.debug("Stopping %s scheduler", self.name)
        self._stop_event.set()

    async def run(self) -> None:
        """Run ticks until stop() is called."""
        loop = asyncio.get_running_loop()
        next_tick = loop.time()

        while not self._stop_event.is_set():
            self.ticks_run += 1
            try:
                await self.callback()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Error in %s tick: %s", self.name, e)

            next_tick += self.interval
            now = loop.time()
            if now >= next_tick:
                missed = int((now - next_tick) // self.interval) + 1
                next_tick += missed * self.interval
                self.ticks_skipped += missed
                logger.warning(
                    "%s tick overran the %ss interval, skipped %d tick(s)",
                    self.name.capitalize(),
                    self.interval,
                    missed,
                )

            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=max(0.0, next_tick - loop.time()),
                )
            except asyncio.TimeoutError:
                pass

        logger.info("%s scheduler stopped after %d tick(s)", self.name.capitalize(), self.ticks_run)
