from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Shared pieces ────────────────────────────────────────────────────────────
class Player(CamelModel):
    id: int
    name: str
    ping: int
    identifiers: list[str]
    endpoint: str
    session_duration: int     # minutes
    total_time: int           # minutes


class HistoryPoint(CamelModel):
    timestamp: datetime
    player_count: int


class ServerStats(CamelModel):
    peak_today: int
    total_connections: int
    uptime_start: datetime


class ErrorResponse(CamelModel):
    success: bool = False
    error: str


class NotFoundResponse(ErrorResponse):
    available_endpoints: list[str]


# ── GET /api/server-info ─────────────────────────────────────────────────────
class ServerSummary(CamelModel):
    address: str
    online: bool
    max_players: int
    last_update: datetime | None


class PlayersSummary(CamelModel):
    current: list[Player]
    count: int
    peak: int


class ServerInfoData(CamelModel):
    server: ServerSummary
    info: dict[str, Any]
    players: PlayersSummary
    dynamic: dict[str, Any]
    history: list[HistoryPoint]
    stats: ServerStats


class ServerInfoResponse(CamelModel):
    success: bool = True
    data: ServerInfoData


# ── GET /api/players ─────────────────────────────────────────────────────────
class PlayersData(CamelModel):
    players: list[Player]
    count: int
    max_players: int
    last_update: datetime | None


class PlayersResponse(CamelModel):
    success: bool = True
    data: PlayersData


# ── GET /api/search/{query} ──────────────────────────────────────────────────
class SearchData(CamelModel):
    query: str
    results: list[Player]
    count: int
    total: int


class SearchResponse(CamelModel):
    success: bool = True
    data: SearchData | None = None
    error: str | None = None


# ── GET /api/status ──────────────────────────────────────────────────────────
class StatusData(CamelModel):
    online: bool
    server_address: str
    players: int
    max_players: int
    last_update: datetime | None
    uptime: int               # seconds
    version: str


class StatusResponse(CamelModel):
    success: bool = True
    data: StatusData


# ── GET /api/history ─────────────────────────────────────────────────────────
class TimeRange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: datetime = Field(alias="from")
    to: datetime


class HistoryData(CamelModel):
    history: list[HistoryPoint]
    period: str
    time_range: TimeRange
    total_points: int
    is_real_data: bool


class HistoryResponse(CamelModel):
    success: bool = True
    data: HistoryData


# ── GET /api/test ────────────────────────────────────────────────────────────
class ApiTestResponse(CamelModel):
    success: bool = True
    message: str
    timestamp: datetime
    version: str
    endpoints: list[str]
