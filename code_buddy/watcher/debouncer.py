"""
Change debouncing for bursts of filesystem events.

Events accumulate in a pending set. Each event rearms a single timer; when the
timer fires after a quiet period the set is drained and handed to the pipeline
callback. Only one pipeline run is active at a time: events that arrive while
a run is in flight are kept, and a fresh debounce window starts once the run
completes.
"""

import asyncio
from typing import AbstractSet, Awaitable, Callable, Optional, Set

from loguru import logger

FILE_EVENT_KINDS = ("added", "modified", "deleted")

DEFAULT_DEBOUNCE_SECONDS = 2.0


class ChangeDebouncer:
    """Coalesce file events into at most one pipeline run per quiet period.

    All methods except :meth:`notify_threadsafe` must be called from the
    event loop thread.
    """

    def __init__(
        self,
        pipeline: Callable[[AbstractSet[str]], Awaitable[object]],
        delay: float = DEFAULT_DEBOUNCE_SECONDS,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        on_drained: Optional[Callable[[], None]] = None,
    ):
        """
        Args:
            pipeline: Coroutine function run with the drained batch of paths.
            delay: Quiet period in seconds before the pipeline fires.
            loop: Event loop owning the timer; defaults to the running loop.
            on_drained: Called after every run attempt, e.g. to print a
                "watching" banner.
        """
        self.pipeline = pipeline
        self.delay = delay
        self.on_drained = on_drained
        self._loop = loop
        self._pending: Set[str] = set()
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    @property
    def pending(self) -> frozenset:
        return frozenset(self._pending)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None

    def on_file_event(self, path: str, kind: str = "modified") -> None:
        """Record a changed path and restart the quiet period."""
        if self._closed:
            return
        if kind not in FILE_EVENT_KINDS:
            raise ValueError(f"Unknown file event kind: {kind}")

        self._pending.add(path)

        if self.is_running:
            # The window restarts when the in-flight run completes.
            self._cancel_timer()
            return

        self._arm()

    def notify_threadsafe(self, path: str, kind: str = "modified") -> None:
        """Forward an event from a foreign thread (e.g. the watchdog observer)."""
        self.loop.call_soon_threadsafe(self.on_file_event, path, kind)

    def _arm(self) -> None:
        self._cancel_timer()
        self._timer = self.loop.call_later(self.delay, self._fire)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        self._timer = None
        if self._closed:
            return
        if self.is_running:
            # Deferred; _run re-arms once the current run finishes.
            logger.debug("Debounce fired during an active run, deferring")
            return
        if not self._pending:
            logger.debug("Debounce fired with no pending changes")
            return

        batch = frozenset(self._pending)
        self._pending.clear()
        logger.debug(f"Debounce window closed with {len(batch)} changed paths")
        self._task = self.loop.create_task(self._run(batch))

    async def _run(self, batch: frozenset) -> None:
        try:
            await self.pipeline(batch)
        except asyncio.CancelledError:
            raise
        except Exception:
            # The pipeline reports its own failures; this only guards the loop.
            logger.exception("Workflow pipeline raised")
        finally:
            if self.on_drained:
                self.on_drained()
            if self._pending and not self._closed:
                logger.debug(f"{len(self._pending)} paths changed during the run, re-arming")
                self._arm()

    async def close(self) -> None:
        """Cancel the timer and wait for an in-flight run to finish."""
        self._closed = True
        self._cancel_timer()
        if self._task is not None and not self._task.done():
            logger.info("Waiting for the running workflow to finish")
            await asyncio.shield(self._task)
        self._pending.clear()
