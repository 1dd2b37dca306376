"""Read-only projections over ``MonitorState`` for the HTTP layer."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from fivem_monitor.services.history import HistorySample, HistoryWindow, Period

if TYPE_CHECKING:
    from fivem_monitor.config import Settings
    from fivem_monitor.services.sessions import PlayerRecord
    from fivem_monitor.services.state import MonitorState, StateView

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 2


@dataclass(frozen=True)
class ServerStatus:
    online: bool
    server_address: str
    players: int
    max_players: int
    last_update: datetime | None
    uptime: int
    version: str


@dataclass(frozen=True)
class SearchOutcome:
    query: str
    results: list[PlayerRecord]
    total: int
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ServerOverview:
    view: StateView
    online: bool
    recent_history: list[HistorySample]


class QueryService:
    def __init__(self, state: MonitorState, settings: Settings) -> None:
        self._state = state
        self.server_address = settings.fivem_server
        self.max_players = settings.max_players
        self.version = settings.app_version
        self._online_threshold = timedelta(seconds=settings.online_threshold_seconds)
        self._overview_points = settings.server_info_history_points

    @staticmethod
    def _now(now: datetime | None) -> datetime:
        return now or datetime.now(timezone.utc)

    def is_online(self, last_update: datetime | None, now: datetime | None = None) -> bool:
        if last_update is None:
            return False
        return self._now(now) - last_update < self._online_threshold

    def status(self, now: datetime | None = None) -> ServerStatus:
        now = self._now(now)
        view = self._state.view()
        return ServerStatus(
            online=self.is_online(view.last_update, now),
            server_address=self.server_address,
            players=len(view.players),
            max_players=self.max_players,
            last_update=view.last_update,
            uptime=view.stats.uptime_seconds(now),
            version=self.version,
        )

    def players(self) -> StateView:
        return self._state.view()

    def server_info(self, now: datetime | None = None) -> ServerOverview:
        view = self._state.view()
        return ServerOverview(
            view=view,
            online=self.is_online(view.last_update, now),
            recent_history=self._state.history.recent(self._overview_points),
        )

    def search(self, query: str) -> SearchOutcome:
        """Case-insensitive name match, or partial match on the numeric id."""
        needle = query.strip().lower()
        players = self._state.view().players

        if len(needle) < MIN_SEARCH_LENGTH:
            return SearchOutcome(
                query=needle,
                results=[],
                total=len(players),
                error=f"Search query must be at least {MIN_SEARCH_LENGTH} characters",
            )

        results = [
            p for p in players
            if needle in p.name.lower() or needle in str(p.id)
        ]
        return SearchOutcome(query=needle, results=results, total=len(players))

    def history(self, period: Period, now: datetime | None = None) -> HistoryWindow:
        now = self._now(now)
        window = self._state.history.query(period, now, live_count=len(self._state.players))
        logger.info(
            "History %s: %d %s points (%s → %s)",
            period.value, len(window.samples), window.source.value,
            window.cutoff.isoformat(timespec="seconds"), now.isoformat(timespec="seconds"),
        )
        return window
