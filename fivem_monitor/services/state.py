"""
Owned in-memory state for one monitored server.

Only the poller writes here (``apply`` / ``reset_daily``), always while
holding ``lock``.  Readers take a ``view()``, a shallow copy of everything
the API serves, so a response never mixes data from two polls.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from fivem_monitor.services.history import HistorySample, HistoryStore
from fivem_monitor.services.sessions import PlayerRecord, SessionTracker
from fivem_monitor.services.stats import StatsAggregator

if TYPE_CHECKING:
    from fivem_monitor.config import Settings
    from fivem_monitor.services.fetcher import Snapshot

logger = logging.getLogger(__name__)


def normalize_info(raw: dict[str, Any]) -> dict[str, Any]:
    """Fill the display fields the dashboard expects; raw keys win."""
    vars_ = raw.get("vars") or {}
    return {
        "hostname": vars_.get("sv_projectName") or vars_.get("sv_hostname") or "FiveM Server",
        "version": raw.get("version") or "Unknown",
        "description": vars_.get("sv_projectDesc") or "",
        "maxClients": vars_.get("sv_maxClients") or "48",
        "resources": raw.get("resources") or [],
        **raw,
    }


@dataclass(frozen=True)
class StateView:
    players: list[PlayerRecord]
    info: dict[str, Any]
    dynamic: dict[str, Any]
    last_update: datetime | None
    stats: StatsAggregator


@dataclass
class MonitorState:
    history: HistoryStore
    session_ttl: timedelta = timedelta(days=30)
    sessions: SessionTracker = field(default_factory=SessionTracker)
    stats: StatsAggregator = field(default_factory=StatsAggregator)
    players: list[PlayerRecord] = field(default_factory=list)
    info: dict[str, Any] = field(default_factory=dict)
    dynamic: dict[str, Any] = field(default_factory=dict)
    last_update: datetime | None = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> MonitorState:
        return cls(
            history=HistoryStore(
                retention=timedelta(days=settings.history_retention_days),
                max_points=settings.history_max_points,
            ),
            session_ttl=timedelta(days=settings.session_ttl_days),
        )

    def apply(self, snapshot: Snapshot, now: datetime) -> bool:
        """Fold one poll into the state.

        Sources that failed leave their previous value untouched.  Returns
        False (and changes nothing) when every source failed.
        """
        if not snapshot.has_data:
            return False

        if snapshot.players is not None:
            self.players = self.sessions.reconcile(snapshot.players, now)
            self.sessions.evict_idle(now, self.session_ttl)
        if snapshot.info is not None:
            self.info = normalize_info(snapshot.info)
        if snapshot.dynamic is not None:
            self.dynamic = snapshot.dynamic

        count = len(self.players)
        self.last_update = now
        self.stats.update(count, self.sessions.unique_count)
        self.history.append(HistorySample(timestamp=now, player_count=count))
        return True

    def reset_daily(self) -> None:
        self.stats.reset_daily(len(self.players))
        logger.info("Daily stats reset, peak baseline = %d", self.stats.peak_today)

    def view(self) -> StateView:
        return StateView(
            players=list(self.players),
            info=dict(self.info),
            dynamic=dict(self.dynamic),
            last_update=self.last_update,
            stats=replace(self.stats),
        )
