import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import FileResponse, JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from fivem_monitor.config import Settings, get_settings
from fivem_monitor.middleware.rate_limit import RateLimiter, RateLimitMiddleware
from fivem_monitor.middleware.security_headers import SecurityHeadersMiddleware
from fivem_monitor.routes.monitor import ENDPOINTS
from fivem_monitor.routes.monitor import router as monitor_router
from fivem_monitor.schemas.response import ErrorResponse, NotFoundResponse
from fivem_monitor.services.fetcher import SnapshotFetcher
from fivem_monitor.services.poller import Poller
from fivem_monitor.services.query import QueryService
from fivem_monitor.services.state import MonitorState

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(settings: Settings) -> None:
    """Console + optional file logging on the root logger (no-op if already set up)."""
    if logging.getLogger().handlers:
        return
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    logging.basicConfig(
        level=settings.log_level.upper(),
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        handlers=handlers,
    )


def _not_found() -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content=NotFoundResponse(
            error="Endpoint not found", available_endpoints=ENDPOINTS,
        ).model_dump(by_alias=True),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    poller: Poller = app.state.poller

    if settings.polling_enabled:
        await poller.start()
    logger.info(
        "FiveM monitor ready: upstream %s, %d slots",
        settings.fivem_server, settings.max_players,
    )

    yield

    await poller.stop()
    await app.state.fetcher.aclose()
    logger.info("FiveM monitor stopped")


def create_app(
    settings: Settings | None = None,
    fetcher: SnapshotFetcher | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    application = FastAPI(
        title="FiveM Monitor API",
        version=settings.app_version,
        description="Live player list, session times and player-count history for a FiveM server.",
        lifespan=lifespan,
    )

    state = MonitorState.from_settings(settings)
    fetcher = fetcher or SnapshotFetcher(settings)
    application.state.settings = settings
    application.state.monitor = state
    application.state.fetcher = fetcher
    application.state.query = QueryService(state, settings)
    application.state.poller = Poller(state, fetcher, settings)

    # Last added runs first: security headers → rate limit → gzip → CORS → routes
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )
    application.add_middleware(GZipMiddleware, minimum_size=1000)
    application.add_middleware(
        RateLimitMiddleware,
        rate_limiter=RateLimiter(
            limit=settings.rate_limit_requests,
            window=settings.rate_limit_window_seconds,
        ),
    )
    application.add_middleware(SecurityHeadersMiddleware)

    @application.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return _not_found()
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=str(exc.detail)).model_dump(by_alias=True),
        )

    @application.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="Internal server error").model_dump(by_alias=True),
        )

    application.include_router(monitor_router)

    public_dir = Path(settings.public_dir).resolve()

    @application.api_route(
        "/{full_path:path}",
        methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"],
        include_in_schema=False,
    )
    async def serve_dashboard(request: Request, full_path: str):
        if request.method not in ("GET", "HEAD"):
            return _not_found()
        if full_path.startswith("api/") or not public_dir.is_dir():
            return _not_found()
        file_path = (public_dir / (full_path or "index.html")).resolve()
        if file_path.is_relative_to(public_dir) and file_path.is_file():
            return FileResponse(str(file_path))
        return _not_found()

    return application


def run() -> None:
    import uvicorn

    uvicorn.run(
        "fivem_monitor.main:create_app",
        factory=True,
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "3000")),
    )


if __name__ == "__main__":
    run()
