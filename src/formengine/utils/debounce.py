# src/formengine/utils/debounce.py
import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class DebounceScheduler:
    """
    Collapses a burst of triggers into one call of `action`.

    Inside a running asyncio loop each trigger (re)arms a `call_later` timer,
    so the action fires once, `delay` seconds after the last trigger. Without
    a running loop the scheduler only records that a run is pending; the
    owner calls `flush()` to execute it.
    """

    def __init__(self, action: Callable[[], None], delay: float = 0.5):
        self.action = action
        self.delay = delay
        self.pending = False
        self.trigger_count = 0
        self.run_count = 0
        self._handle: Optional[asyncio.TimerHandle] = None

    def trigger(self) -> None:
        self.trigger_count += 1
        self.pending = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; re-scan left pending until flush().")
            return
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self.delay, self._fire)

    def _fire(self) -> None:
        self._handle = None
        self.flush()

    def flush(self) -> bool:
        """Runs the action now if a trigger is pending. Returns True when it ran."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if not self.pending:
            return False
        self.pending = False
        self.run_count += 1
        logger.debug("Debounced action firing after %d trigger(s).", self.trigger_count)
        self.trigger_count = 0
        self.action()
        return True

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self.pending = False
        self.trigger_count = 0
