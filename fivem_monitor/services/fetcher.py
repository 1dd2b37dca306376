"""
Upstream FiveM snapshot fetcher.

A FiveM server exposes three plain JSON documents over HTTP:

  /players.json   list of connected players
  /info.json      static server info (vars, resources, version)
  /dynamic.json   live vars (hostname, clients, mapname ...)

Each poll requests all three in parallel.  The requests are independent:
one failing (timeout, bad JSON, server restarting) never discards the
others, so the caller gets whichever subset came back.
"""
from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import requests

if TYPE_CHECKING:
    from fivem_monitor.config import Settings

logger = logging.getLogger(__name__)

SOURCES = ("players", "info", "dynamic")


@dataclass
class Snapshot:
    """One poll's raw upstream response set; absent fields failed."""

    players: list[dict[str, Any]] | None = None
    info: dict[str, Any] | None = None
    dynamic: dict[str, Any] | None = None

    @property
    def succeeded(self) -> list[str]:
        return [name for name in SOURCES if getattr(self, name) is not None]

    @property
    def has_data(self) -> bool:
        return bool(self.succeeded)


class SnapshotFetcher:
    """Fetches players/info/dynamic from the configured FiveM server."""

    def __init__(self, settings: Settings, session: requests.Session | None = None) -> None:
        self._base_url = f"http://{settings.fivem_server}"
        self._timeout = settings.fetch_timeout_seconds
        self._session = session or requests.Session()
        # Own pool so shutdown can wait for calls that outlive a cancelled fetch
        self._executor = ThreadPoolExecutor(max_workers=len(SOURCES), thread_name_prefix="fivem-fetch")

    def _get_json(self, name: str) -> Any:
        resp = self._session.get(f"{self._base_url}/{name}.json", timeout=self._timeout)
        resp.raise_for_status()
        return resp.json()

    def _fetch_source(self, name: str) -> Any:
        """Blocking fetch of one source.  Returns None on any failure."""
        try:
            body = self._get_json(name)
        except (requests.RequestException, ValueError) as exc:
            # requests' JSONDecodeError subclasses ValueError
            logger.warning("Upstream %s.json failed: %s", name, exc)
            return None

        expected = list if name == "players" else dict
        if not isinstance(body, expected):
            logger.warning(
                "Upstream %s.json returned %s, expected %s",
                name, type(body).__name__, expected.__name__,
            )
            return None
        return body

    async def fetch(self) -> Snapshot:
        """Fetch all three sources concurrently and settle each one independently."""
        loop = asyncio.get_running_loop()

        # requests is blocking, so each call runs in the fetch pool
        results = await asyncio.gather(
            *(loop.run_in_executor(self._executor, self._fetch_source, name) for name in SOURCES),
            return_exceptions=True,
        )

        settled: dict[str, Any] = {}
        for name, result in zip(SOURCES, results):
            if isinstance(result, BaseException):
                logger.error("Unexpected error fetching %s.json: %r", name, result)
                settled[name] = None
            else:
                settled[name] = result

        return Snapshot(**settled)

    def close(self) -> None:
        """Wait for in-flight upstream calls, then release the HTTP session."""
        self._executor.shutdown(wait=True)
        self._session.close()

    async def aclose(self) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.close)
