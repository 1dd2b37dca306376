"""
Bounded player-count history.

One sample is appended per successful poll.  Two limits apply after every
append, in this order:

  1. retention:  samples older than ``retention`` are dropped
  2. point cap:  if still above ``max_points``, the oldest are dropped

Polls are serialized, so insertion order is time order and both prunes
only ever remove from the left of the deque.

Windowed queries return real samples when any exist in the window.  A
fresh process has none, so the query instead returns evenly spaced
placeholder points carrying the current live count, tagged
``HistorySource.SYNTHETIC`` so the dashboard can tell them apart.
"""
from __future__ import annotations

import enum
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta

_HOUR = timedelta(hours=1)
_DAY = timedelta(days=1)


class Period(str, enum.Enum):
    DAY = "24h"
    WEEK = "7d"
    MONTH = "30d"

    @property
    def lookback(self) -> timedelta:
        return _PERIOD_SHAPE[self][0] * _PERIOD_SHAPE[self][1]

    @classmethod
    def parse(cls, value: str | None) -> Period:
        """Unknown or missing periods fall back to the last 24 hours."""
        try:
            return cls(value)
        except ValueError:
            return cls.DAY


# period -> (number of synthetic points, spacing between them)
_PERIOD_SHAPE: dict[Period, tuple[int, timedelta]] = {
    Period.DAY: (24, _HOUR),
    Period.WEEK: (7, _DAY),
    Period.MONTH: (30, _DAY),
}


class HistorySource(str, enum.Enum):
    REAL = "real"
    SYNTHETIC = "synthetic"


@dataclass(frozen=True)
class HistorySample:
    timestamp: datetime
    player_count: int


@dataclass(frozen=True)
class HistoryWindow:
    period: Period
    cutoff: datetime
    until: datetime
    samples: list[HistorySample]
    source: HistorySource

    @property
    def is_real(self) -> bool:
        return self.source is HistorySource.REAL


class HistoryStore:
    def __init__(self, retention: timedelta = timedelta(days=30), max_points: int = 86400) -> None:
        if max_points < 1:
            raise ValueError("max_points must be positive")
        self.retention = retention
        self.max_points = max_points
        self._samples: deque[HistorySample] = deque()

    def __len__(self) -> int:
        return len(self._samples)

    def append(self, sample: HistorySample) -> None:
        self._samples.append(sample)
        self._prune(sample.timestamp)

    def _prune(self, now: datetime) -> None:
        oldest_allowed = now - self.retention
        while self._samples and self._samples[0].timestamp < oldest_allowed:
            self._samples.popleft()
        while len(self._samples) > self.max_points:
            self._samples.popleft()

    def samples(self) -> list[HistorySample]:
        return list(self._samples)

    def recent(self, count: int) -> list[HistorySample]:
        if count <= 0:
            return []
        return list(self._samples)[-count:]

    def query(self, period: Period, now: datetime, live_count: int) -> HistoryWindow:
        """Samples with ``timestamp >= now - period.lookback``, ascending.

        ``live_count`` is only used for the synthetic fallback.
        """
        cutoff = now - period.lookback
        found = [s for s in self._samples if s.timestamp >= cutoff]
        if found:
            return HistoryWindow(period, cutoff, now, found, HistorySource.REAL)
        return HistoryWindow(
            period, cutoff, now, synthesize(period, now, live_count), HistorySource.SYNTHETIC,
        )


def synthesize(period: Period, now: datetime, live_count: int) -> list[HistorySample]:
    """Evenly spaced placeholder points ending at ``now``, oldest first."""
    points, step = _PERIOD_SHAPE[period]
    return [
        HistorySample(timestamp=now - step * i, player_count=live_count)
        for i in range(points - 1, -1, -1)
    ]
