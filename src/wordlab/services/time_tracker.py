"""Active study time tracking."""
import asyncio
import logging
import time
from datetime import datetime
from typing import Callable, Optional

from wordlab import monitoring
from wordlab.config import settings
from wordlab.services.word_store import WordStore

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Current time in epoch millis."""
    return int(time.time() * 1000)


def date_key(timestamp_ms: int) -> str:
    """Local calendar date of a timestamp as YYYY-MM-DD."""
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%Y-%m-%d")


class TimeTracker:
    """Accumulates active study seconds and flushes them to the store.

    A tick every settings.study.tick_seconds counts one second unless the
    user has been idle for idle_threshold_ms. Once pending_seconds reaches
    the flush threshold the amount is added to today's counter with the
    store's atomic increment. Stopping does not flush the remainder.
    """

    def __init__(
        self,
        store: WordStore,
        clock: Callable[[], int] = now_ms,
        idle_threshold_ms: Optional[int] = None,
        flush_threshold: Optional[int] = None,
        tick_seconds: Optional[float] = None,
    ):
        """Initialize the tracker for the store of the signed-in user."""
        self.store = store
        self.clock = clock
        self.idle_threshold_ms = idle_threshold_ms or settings.study.idle_threshold_ms
        self.flush_threshold = flush_threshold or settings.study.flush_threshold_seconds
        self.tick_seconds = tick_seconds or settings.study.tick_seconds
        self.last_activity_at = clock()
        self.is_tracking = False
        self.pending_seconds = 0
        self._task: Optional[asyncio.Task] = None

    def record_activity(self) -> None:
        """Note a pointer move, key press, click or touch."""
        self.last_activity_at = self.clock()

    def is_idle(self) -> bool:
        """Whether the last input is at least idle_threshold_ms old."""
        return self.clock() - self.last_activity_at >= self.idle_threshold_ms

    def start_tracking(self) -> None:
        """Start ticking; calling it while tracking does nothing."""
        if self.is_tracking:
            return
        self.is_tracking = True
        self.last_activity_at = self.clock()
        self._task = asyncio.create_task(self._run())
        logger.debug("Time tracking started")

    def stop_tracking(self) -> None:
        """Stop ticking; a remainder below the flush threshold stays unflushed."""
        if not self.is_tracking:
            return
        self.is_tracking = False
        if self._task:
            self._task.cancel()
            self._task = None
        logger.debug("Time tracking stopped with %d unflushed seconds", self.pending_seconds)

    def reset(self) -> None:
        """Stop tracking and drop all state, e.g. on sign-out."""
        self.stop_tracking()
        self.pending_seconds = 0
        self.last_activity_at = self.clock()

    async def _run(self) -> None:
        """Tick loop."""
        while self.is_tracking:
            await asyncio.sleep(self.tick_seconds)
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Failed to flush study time: %s", str(e))

    async def tick(self) -> None:
        """Count one second if the user is active and flush when due."""
        if not self.is_tracking:
            return
        if self.is_idle():
            return
        self.pending_seconds += 1
        if self.pending_seconds >= self.flush_threshold:
            await self.flush()

    async def flush(self) -> None:
        """Add the pending seconds to today's counter."""
        seconds = self.pending_seconds
        if seconds <= 0:
            return
        key = date_key(self.clock())
        total = await self.store.increment_daily_counter(key, seconds)
        # Ticks that landed while the increment was in flight stay pending
        self.pending_seconds -= seconds
        monitoring.study_seconds_flushed.inc(seconds)
        logger.debug("Flushed %d study seconds for %s (total %d)", seconds, key, total)
