"""Per-(guild, label) scheduler for periodic governance scans.

Each registration owns one asyncio task that calls ``callback(guild_id)``,
sleeps for the interval and repeats. Registering the same (guild, label)
again disposes the previous task first, so at most one loop per scan kind
runs for a guild and overlapping runs of the same scan cannot happen.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, Tuple

from govcord.util.logger import get_logger

logger = get_logger("governance_scheduler")

ScanCallback = Callable[[int], Awaitable[Any]]
Disposer = Callable[[], None]


class GovernanceScheduler:
    """
    Registry of periodic per-guild tasks.

    Usage::

        dispose = scheduler.register(guild_id, "deadlines", 300, scans.deadline_scan)
        ...
        dispose()
    """

    def __init__(self) -> None:
        self._tasks: Dict[Tuple[int, str], asyncio.Task] = {}

    async def _run_loop(self, guild_id: int, label: str, interval: float, callback: ScanCallback) -> None:
        """Infinite loop: run callback, sleep, repeat. Errors are logged and the loop continues."""
        logger.debug("[SCHEDULER] %s loop started for guild %s (interval=%.1fs)", label, guild_id, interval)
        try:
            while True:
                try:
                    await callback(guild_id)
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    logger.error("[SCHEDULER] %s run failed for guild %s: %s", label, guild_id, exc)
                await asyncio.sleep(interval)
        except asyncio.CancelledError:
            logger.debug("[SCHEDULER] %s loop cancelled for guild %s", label, guild_id)
            raise

    def register(self, guild_id: int, label: str, interval: float, callback: ScanCallback) -> Disposer:
        """Start a periodic task, replacing any task already registered for (guild_id, label).

        Must be called from within a running event loop.

        Returns:
            A disposer that cancels this registration. Calling it after the
            handle was replaced leaves the replacement running.
        """
        key = (guild_id, label)
        self._cancel(key)

        task = asyncio.create_task(self._run_loop(guild_id, label, interval, callback))
        self._tasks[key] = task
        logger.info("[SCHEDULER] Registered %s for guild %s every %.0fs", label, guild_id, interval)

        def dispose() -> None:
            if self._tasks.get(key) is task:
                self._cancel(key)

        return dispose

    def _cancel(self, key: Tuple[int, str]) -> None:
        task = self._tasks.pop(key, None)
        if task is not None and not task.done():
            task.cancel()

    def is_registered(self, guild_id: int, label: str) -> bool:
        task = self._tasks.get((guild_id, label))
        return task is not None and not task.done()

    def dispose_guild(self, guild_id: int) -> int:
        """Cancel every task registered for the guild. Returns how many were cancelled."""
        keys = [key for key in self._tasks if key[0] == guild_id]
        for key in keys:
            self._cancel(key)
        if keys:
            logger.info("[SCHEDULER] Disposed %d scans for guild %s", len(keys), guild_id)
        return len(keys)

    async def shutdown(self) -> None:
        """Cancel all tasks and wait for them to finish."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

        logger.info("[SCHEDULER] Scheduler shutdown complete (%d tasks)", len(tasks))
