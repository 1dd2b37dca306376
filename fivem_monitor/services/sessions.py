"""Per-player session tracking across polls.

FiveM only reports who is connected *right now*, so connection time is
derived: a player's session starts at the first poll that sees their id,
and the minutes accumulated while connected are folded into ``total_time``
once they drop out of the list.  Disconnected sessions are kept (re-anchored
to the current poll) so a returning player keeps their cumulative time.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

logger = logging.getLogger(__name__)


def _minutes_between(start: datetime, end: datetime) -> int:
    return max(0, int((end - start).total_seconds() // 60))


@dataclass
class PlayerSession:
    join_time: datetime
    last_seen: datetime
    total_time: int = 0  # minutes
    connected: bool = True


@dataclass
class PlayerRecord:
    """A player as served by the API: upstream fields plus session timing."""

    id: int
    name: str
    ping: int
    identifiers: list[str]
    endpoint: str
    session_duration: int
    total_time: int


@dataclass
class SessionTracker:
    sessions: dict[int, PlayerSession] = field(default_factory=dict)
    unique_players: set[str] = field(default_factory=set)

    def reconcile(self, raw_players: list[dict[str, Any]], now: datetime) -> list[PlayerRecord]:
        """Fold one poll's player list into the session map.

        Returns the enriched records in upstream order.
        """
        records: list[PlayerRecord] = []
        present: set[int] = set()

        for index, raw in enumerate(raw_players):
            if not isinstance(raw, dict):
                continue
            player_id = raw.get("id") or index + 1
            identifiers = raw.get("identifiers") or []
            identifier = identifiers[0] if identifiers else f"player_{player_id}"

            present.add(player_id)
            self.unique_players.add(identifier)

            session = self.sessions.get(player_id)
            if session is None:
                session = PlayerSession(join_time=now, last_seen=now)
                self.sessions[player_id] = session
            elif not session.connected:
                session.join_time = now
                session.connected = True
            session.last_seen = now

            duration = _minutes_between(session.join_time, now)
            records.append(PlayerRecord(
                id=player_id,
                name=raw.get("name") or f"Player {index + 1}",
                ping=raw.get("ping") or 0,
                identifiers=list(identifiers),
                endpoint=raw.get("endpoint") or "Unknown",
                session_duration=duration,
                total_time=session.total_time + duration,
            ))

        for player_id, session in self.sessions.items():
            if player_id in present:
                continue
            # Only the poll that first misses a player closes their session
            if session.connected:
                session.total_time += _minutes_between(session.join_time, now)
                session.connected = False
            session.join_time = now

        return records

    def evict_idle(self, now: datetime, ttl: timedelta) -> int:
        """Drop sessions not seen for longer than ``ttl``.  Returns how many."""
        cutoff = now - ttl
        stale = [pid for pid, s in self.sessions.items() if s.last_seen < cutoff]
        for pid in stale:
            del self.sessions[pid]
        if stale:
            logger.info("Evicted %d idle player sessions", len(stale))
        return len(stale)

    @property
    def unique_count(self) -> int:
        return len(self.unique_players)
