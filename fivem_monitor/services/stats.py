"""Derived server statistics: today's peak, unique connections, uptime."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class StatsAggregator:
    peak_today: int = 0
    total_connections: int = 0
    uptime_start: datetime = field(default_factory=_utcnow)

    def update(self, current_count: int, unique_count: int) -> None:
        """Called once per successful poll."""
        self.peak_today = max(self.peak_today, current_count)
        # The unique set never shrinks, but guard against a smaller input anyway
        self.total_connections = max(self.total_connections, unique_count)

    def reset_daily(self, current_count: int) -> None:
        """Start a new day with the live count as the baseline peak."""
        self.peak_today = current_count

    def uptime_seconds(self, now: datetime | None = None) -> int:
        return int(((now or _utcnow()) - self.uptime_start).total_seconds())
