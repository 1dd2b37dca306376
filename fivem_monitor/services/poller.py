"""
Background tasks driving the monitor.

  poll loop    fetch → apply to state, every ``poll_interval_seconds``
  daily reset  at local midnight, re-baseline today's peak

A tick that fires while the previous poll is still in flight is skipped,
so at most one poll mutates the state at a time.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone, tzinfo
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

if TYPE_CHECKING:
    from fivem_monitor.config import Settings
    from fivem_monitor.services.fetcher import SnapshotFetcher
    from fivem_monitor.services.state import MonitorState

logger = logging.getLogger(__name__)


def resolve_timezone(name: str) -> tzinfo | None:
    """IANA zone for ``name``; None means host local time."""
    return ZoneInfo(name) if name else None


def seconds_until_midnight(now: datetime) -> float:
    """Seconds from ``now`` to the next midnight in its own zone.

    A naive ``now`` is host local time; the offset of each end is then
    looked up separately so a DST change in between is accounted for.
    """
    tomorrow = (now + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
    if now.tzinfo is None:
        now, tomorrow = now.astimezone(), tomorrow.astimezone()
    # Compare in UTC so DST transitions are counted correctly
    delta = tomorrow.astimezone(timezone.utc) - now.astimezone(timezone.utc)
    return max(delta.total_seconds(), 1.0)


class Poller:
    def __init__(
        self,
        state: MonitorState,
        fetcher: SnapshotFetcher,
        settings: Settings,
    ) -> None:
        self._state = state
        self._fetcher = fetcher
        self._interval = settings.poll_interval_seconds
        self._max_players = settings.max_players
        self._tz = resolve_timezone(settings.daily_reset_timezone)
        self._poll_task: asyncio.Task | None = None
        self._reset_task: asyncio.Task | None = None
        self._in_flight = False
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._poll_task = asyncio.create_task(self._poll_loop())
        self._reset_task = asyncio.create_task(self._daily_reset_loop())
        logger.info("Data collection started (every %ss)", self._interval)

    async def stop(self) -> None:
        self._running = False
        for task in (self._poll_task, self._reset_task):
            if task:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._poll_task = None
        self._reset_task = None
        logger.info("Data collection stopped")

    async def poll_once(self, now: datetime | None = None) -> bool:
        """Run one fetch/apply cycle.  Returns False if it was skipped or empty."""
        if self._in_flight:
            logger.debug("Previous poll still running, skipping tick")
            return False

        self._in_flight = True
        try:
            snapshot = await self._fetcher.fetch()
            async with self._state.lock:
                applied = self._state.apply(snapshot, now or datetime.now(timezone.utc))
        finally:
            self._in_flight = False

        if applied:
            logger.info(
                "Data updated (%s) - %d/%d players",
                ", ".join(snapshot.succeeded), len(self._state.players), self._max_players,
            )
        else:
            logger.warning("No data received from the FiveM server")
        return applied

    async def _poll_loop(self) -> None:
        loop = asyncio.get_running_loop()
        while self._running:
            started = loop.time()
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Poll cycle failed")
            await asyncio.sleep(max(0.0, self._interval - (loop.time() - started)))

    async def reset_daily(self) -> None:
        async with self._state.lock:
            self._state.reset_daily()

    async def _daily_reset_loop(self) -> None:
        while self._running:
            wait = seconds_until_midnight(datetime.now(self._tz))
            logger.debug("Next daily stats reset in %dh %dm", wait // 3600, (wait % 3600) // 60)
            await asyncio.sleep(wait)
            if not self._running:
                break
            try:
                await self.reset_daily()
            except Exception:
                logger.exception("Daily stats reset failed")
