# src/taskflow_sync/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time (token/user id may be empty).
- The push channel URL is derived from the API URL unless set explicitly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit

from dotenv import load_dotenv

ENV_PREFIX = "TASKFLOW"

DEFAULT_API_URL = "http://localhost:5004/api"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def derive_socket_url(api_url: str) -> str:
    """
    Socket.IO lives on the API origin, not under /api:
    http://localhost:5004/api -> http://localhost:5004
    """
    parts = urlsplit(api_url.strip())
    path = parts.path.rstrip("/")
    if path.endswith("/api"):
        path = path[: -len("/api")]
    return urlunsplit((parts.scheme, parts.netloc, path, "", "")).rstrip("/")


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connectors ----
    console_enabled: bool

    # ---- API / push channel ----
    api_url: str
    socket_url: str
    api_token: str | None
    user_id: str | None
    http_timeout_seconds: float

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    storage_path: Path

    # ---- Sync tuning ----
    notifications_limit: int
    inbox_refresh_seconds: float
    timer_reconcile_seconds: float
    timer_tick_seconds: float

    @property
    def taskflow_base_url(self) -> str:
        return f"{self.api_url.rstrip('/')}/taskflow"

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskflow") or "taskflow"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        # VITE_API_URL is what the web front end reads; accept it too.
        api_url = (_first_env(_k("API_URL"), "VITE_API_URL", default=DEFAULT_API_URL) or DEFAULT_API_URL).strip()
        socket_url = (_first_env(_k("SOCKET_URL"), default="") or "").strip() or derive_socket_url(api_url)

        api_token = (_first_env(_k("API_TOKEN"), default="") or "").strip() or None
        user_id = (_first_env(_k("USER_ID"), default="") or "").strip() or None
        http_timeout_seconds = _env_float(_k("HTTP_TIMEOUT_SECONDS"), 10.0)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskflow"))
        storage_path = _env_path(_k("STORAGE_PATH"), data_dir / "local_storage.json")

        notifications_limit = _env_int(_k("NOTIFICATIONS_LIMIT"), 10)
        inbox_refresh_seconds = _env_float(_k("INBOX_REFRESH_SECONDS"), 60.0)
        timer_reconcile_seconds = _env_float(_k("TIMER_RECONCILE_SECONDS"), 30.0)
        timer_tick_seconds = _env_float(_k("TIMER_TICK_SECONDS"), 1.0)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            api_url=api_url,
            socket_url=socket_url,
            api_token=api_token,
            user_id=user_id,
            http_timeout_seconds=http_timeout_seconds,
            data_dir=data_dir,
            storage_path=storage_path,
            notifications_limit=notifications_limit,
            inbox_refresh_seconds=inbox_refresh_seconds,
            timer_reconcile_seconds=timer_reconcile_seconds,
            timer_tick_seconds=timer_tick_seconds,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
