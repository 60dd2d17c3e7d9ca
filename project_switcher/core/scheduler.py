"""Cancel-and-restart timer used for debounced writes and notifications."""

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class CoalescingTimer:
    """Coalesces bursts of ``schedule()`` calls into one deferred callback.

    Each ``schedule()`` cancels the pending callback (if any) and re-arms the
    timer, so the callback runs once, ``delay_ms`` after the last call.
    Runs on the asyncio event loop; must be scheduled from the loop thread.
    """

    def __init__(
        self,
        delay_ms: float,
        callback: Callable[[], None],
        name: str = "timer",
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        """Initialize timer.

        Args:
            delay_ms: Quiet period in milliseconds before the callback fires
            callback: Function to call after the quiet period
            name: Label used in log messages
            loop: Event loop (default: the running loop at schedule time)
        """
        self.delay_seconds = max(delay_ms, 0) / 1000
        self.callback = callback
        self.name = name
        self._loop = loop
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def set_event_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def schedule(self) -> None:
        """(Re)arm the timer."""
        self.cancel()

        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.warning(f"No event loop for {self.name}, calling immediately")
                self._run_callback()
                return

        self._task = loop.create_task(self._fire())

    def cancel(self) -> None:
        """Drop the pending callback, if any."""
        if self._task and not self._task.done():
            self._task.cancel()
        self._task = None

    def flush(self) -> bool:
        """Run the pending callback now instead of waiting.

        Returns:
            True if a callback was pending and has run
        """
        if not self.pending:
            return False
        self.cancel()
        self._run_callback()
        return True

    async def _fire(self) -> None:
        try:
            await asyncio.sleep(self.delay_seconds)
        except asyncio.CancelledError:
            logger.debug(f"{self.name} re-armed before firing")
            raise

        self._task = None
        self._run_callback()

    def _run_callback(self) -> None:
        try:
            self.callback()
        except Exception as e:
            logger.error(f"{self.name} callback failed: {e}", exc_info=True)
