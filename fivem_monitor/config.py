from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # ── Upstream FiveM server ───────────────────────────────────────────
    fivem_server: str = "136.243.177.111:30085"
    max_players: int = 48
    poll_interval_seconds: float = 30
    fetch_timeout_seconds: float = 8.0
    # A server is reported online if the last good poll is younger than this
    online_threshold_seconds: float = 120

    # ── History / sessions ──────────────────────────────────────────────
    history_retention_days: int = 30
    # One sample every 30 s for 30 days
    history_max_points: int = 86400
    server_info_history_points: int = 48
    session_ttl_days: int = 30
    # IANA zone name for the midnight stats reset; empty means host local time
    daily_reset_timezone: str = ""

    # ── HTTP ────────────────────────────────────────────────────────────
    rate_limit_requests: int = 100
    rate_limit_window_seconds: float = 60
    polling_enabled: bool = True
    public_dir: str = "public"
    app_version: str = "2.0.0"

    # ── Logging ─────────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_file: str = "logs/fivem-monitor.log"


@lru_cache
def get_settings() -> Settings:
    return Settings()
