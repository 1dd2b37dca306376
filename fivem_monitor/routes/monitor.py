"""
Read-only monitoring API consumed by the browser dashboard.

  GET /api/server-info      everything the dashboard's first paint needs
  GET /api/players          connected players with session timing
  GET /api/search/{query}   name / id search over connected players
  GET /api/status           online flag, counts, process uptime
  GET /api/history          player-count history (?period=24h|7d|30d)
  GET /api/test             liveness + endpoint list

Unhandled errors are turned into the 500 envelope by the app-level
exception handler in ``fivem_monitor.main``.
"""
from dataclasses import asdict
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request

from fivem_monitor.schemas.response import (
    ApiTestResponse,
    HistoryData,
    HistoryPoint,
    HistoryResponse,
    Player,
    PlayersData,
    PlayersResponse,
    PlayersSummary,
    SearchData,
    SearchResponse,
    ServerInfoData,
    ServerInfoResponse,
    ServerStats,
    ServerSummary,
    StatusData,
    StatusResponse,
    TimeRange,
)
from fivem_monitor.services.history import HistorySample, Period
from fivem_monitor.services.query import QueryService
from fivem_monitor.services.sessions import PlayerRecord
from fivem_monitor.services.stats import StatsAggregator

router = APIRouter(prefix="/api", tags=["monitor"])

ENDPOINTS = [
    "/api/server-info",
    "/api/players",
    "/api/search/:query",
    "/api/status",
    "/api/history",
    "/api/test",
]


def get_query_service(request: Request) -> QueryService:
    return request.app.state.query


def _players(records: list[PlayerRecord]) -> list[Player]:
    return [Player(**asdict(r)) for r in records]


def _points(samples: list[HistorySample]) -> list[HistoryPoint]:
    return [HistoryPoint(timestamp=s.timestamp, player_count=s.player_count) for s in samples]


def _stats(stats: StatsAggregator) -> ServerStats:
    return ServerStats(
        peak_today=stats.peak_today,
        total_connections=stats.total_connections,
        uptime_start=stats.uptime_start,
    )


@router.get("/server-info", response_model=ServerInfoResponse)
async def server_info(svc: QueryService = Depends(get_query_service)) -> ServerInfoResponse:
    overview = svc.server_info()
    view = overview.view
    return ServerInfoResponse(data=ServerInfoData(
        server=ServerSummary(
            address=svc.server_address,
            online=overview.online,
            max_players=svc.max_players,
            last_update=view.last_update,
        ),
        info=view.info,
        players=PlayersSummary(
            current=_players(view.players),
            count=len(view.players),
            peak=view.stats.peak_today,
        ),
        dynamic=view.dynamic,
        history=_points(overview.recent_history),
        stats=_stats(view.stats),
    ))


@router.get("/players", response_model=PlayersResponse)
async def players(svc: QueryService = Depends(get_query_service)) -> PlayersResponse:
    view = svc.players()
    return PlayersResponse(data=PlayersData(
        players=_players(view.players),
        count=len(view.players),
        max_players=svc.max_players,
        last_update=view.last_update,
    ))


@router.get("/search/{query}", response_model=SearchResponse, response_model_exclude_none=True)
async def search(query: str, svc: QueryService = Depends(get_query_service)) -> SearchResponse:
    outcome = svc.search(query)
    if not outcome.ok:
        return SearchResponse(success=False, error=outcome.error)
    return SearchResponse(data=SearchData(
        query=outcome.query,
        results=_players(outcome.results),
        count=len(outcome.results),
        total=outcome.total,
    ))


@router.get("/status", response_model=StatusResponse)
async def status(svc: QueryService = Depends(get_query_service)) -> StatusResponse:
    return StatusResponse(data=StatusData(**asdict(svc.status())))


@router.get("/history", response_model=HistoryResponse)
async def history(
    period: str = "24h",
    svc: QueryService = Depends(get_query_service),
) -> HistoryResponse:
    window = svc.history(Period.parse(period))
    return HistoryResponse(data=HistoryData(
        history=_points(window.samples),
        period=window.period.value,
        time_range=TimeRange(from_=window.cutoff, to=window.until),
        total_points=len(window.samples),
        is_real_data=window.is_real,
    ))


@router.get("/test", response_model=ApiTestResponse)
async def api_test(svc: QueryService = Depends(get_query_service)) -> ApiTestResponse:
    return ApiTestResponse(
        message="FiveM Monitor API operational",
        timestamp=datetime.now(timezone.utc),
        version=svc.version,
        endpoints=ENDPOINTS,
    )
