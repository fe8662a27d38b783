"""
Fixed-interval poll loop driving StateSynchronizer.tick().
"""

import asyncio
import logging
from typing import Optional

from flatpanel_alpaca.panel.synchronizer import StateSynchronizer


logger = logging.getLogger(__name__)


class PollScheduler:
    """
    Runs tick() on the event loop every interval.

    The timer is re-armed after each tick finishes (not fixed-rate), so a
    slow tick delays the next one instead of piling ticks up. Running on
    the same loop as the API handlers keeps ticks and commands serialized.
    """

    def __init__(self, synchronizer: StateSynchronizer, interval_ms: int = 1000):
        self._synchronizer = synchronizer
        self._interval = interval_ms / 1000.0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the poll loop on the running event loop."""
        if self.running:
            logger.warning("Poll loop already running")
            return

        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"Poll loop started ({int(self._interval * 1000)} ms interval)")

    async def stop(self) -> None:
        """Cancel the poll loop and wait for it to finish."""
        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Poll loop stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                self._synchronizer.tick()
            except Exception as e:
                logger.error(f"Error in poll tick: {e}", exc_info=True)
