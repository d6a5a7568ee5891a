from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from .workspace import delete_session_dir, sweep_stale_sessions


logger = logging.getLogger(__name__)


class DelayedCleanup:
    """One-shot deletion timers for session directories.

    Timers live on the running event loop. They are not persisted, and a
    deletion may race with a download of the same directory.
    """

    def __init__(self, delay_seconds: float) -> None:
        self.delay_seconds = delay_seconds
        self._handles: set[asyncio.TimerHandle] = set()

    @property
    def pending(self) -> int:
        return len(self._handles)

    def schedule(self, path: Path, delay_seconds: float | None = None) -> asyncio.TimerHandle:
        loop = asyncio.get_running_loop()
        delay = self.delay_seconds if delay_seconds is None else delay_seconds
        handle: asyncio.TimerHandle | None = None

        def _fire() -> None:
            self._handles.discard(handle)
            try:
                delete_session_dir(path)
            except OSError:
                logger.exception("Delayed cleanup of %s failed", path.name)

        handle = loop.call_later(max(0.0, delay), _fire)
        self._handles.add(handle)
        logger.debug("Scheduled deletion of %s in %.0fs", path.name, delay)
        return handle

    def cancel_all(self) -> int:
        cancelled = len(self._handles)
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()
        return cancelled


async def run_periodic_sweep(root: Path, interval_seconds: float, max_age_seconds: float) -> None:
    # Keep this loop alive through unexpected filesystem errors.
    while True:
        await asyncio.sleep(max(1.0, interval_seconds))
        try:
            await asyncio.to_thread(sweep_stale_sessions, root, max_age_seconds)
        except Exception:
            logger.exception("Periodic sweep failed")
