# src/todo_sync/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Nothing required at import time; every value has a default.
- The peer endpoint comes from a small "<address>:<port>" file, loaded once.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_PREFIX = "TODO_SYNC"

DEFAULT_HOST = "10.0.2.2"
DEFAULT_PORT = 11111


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
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


@dataclass(frozen=True, slots=True)
class ServerEndpoint:
    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


DEFAULT_ENDPOINT = ServerEndpoint(DEFAULT_HOST, DEFAULT_PORT)


def parse_endpoint(text: str) -> ServerEndpoint:
    """Parse "<address>:<port>". Raises ValueError on anything else."""
    parts = (text or "").strip().split(":")
    if len(parts) != 2:
        raise ValueError(f"expected <address>:<port>, got {text!r}")
    host, raw_port = parts[0].strip(), parts[1].strip()
    if not host:
        raise ValueError(f"empty address in {text!r}")
    port = int(raw_port)
    if not 0 < port < 65536:
        raise ValueError(f"port out of range in {text!r}")
    return ServerEndpoint(host, port)


def load_server_endpoint(path: str | Path | None, *, override: str | None = None) -> ServerEndpoint:
    """
    Load the peer endpoint once at startup.

    `override` (from the environment) wins over the file. Missing or malformed
    values fall back to the built-in default; that is logged, never fatal.
    """
    if override:
        try:
            return parse_endpoint(override)
        except ValueError:
            logger.warning("Ignoring malformed %s=%r", _k("SERVER"), override)

    if path is None:
        return DEFAULT_ENDPOINT

    p = Path(path)
    try:
        raw = p.read_text("utf-8")
    except FileNotFoundError:
        logger.info("No server config at %s; using %s", p, DEFAULT_ENDPOINT)
        return DEFAULT_ENDPOINT
    except OSError:
        logger.warning("Cannot read server config %s; using %s", p, DEFAULT_ENDPOINT, exc_info=True)
        return DEFAULT_ENDPOINT

    try:
        endpoint = parse_endpoint(raw)
    except ValueError as exc:
        logger.warning("Malformed server config %s (%s); using %s", p, exc, DEFAULT_ENDPOINT)
        return DEFAULT_ENDPOINT

    logger.info("Loaded server endpoint %s from %s", endpoint, p)
    return endpoint


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connector flags ----
    console_enabled: bool

    # ---- Peer ----
    server_config_path: Path
    server_override: Optional[str]
    connect_timeout_seconds: float
    read_timeout_seconds: Optional[float]
    poll_seconds: float

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_path: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "todo-sync") or "todo-sync"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/todo_sync"))
        tasks_path = _env_path(_k("TASKS_PATH"), data_dir / "tasks.json")
        server_config_path = _env_path(_k("SERVER_CONFIG"), data_dir / "config.txt")
        server_override = os.getenv(_k("SERVER")) or None

        connect_timeout_seconds = _env_float(_k("CONNECT_TIMEOUT_SECONDS"), 5.0) or 5.0
        read_timeout_seconds = _env_float(_k("READ_TIMEOUT_SECONDS"), None)
        poll_seconds = _env_float(_k("POLL_SECONDS"), 15.0) or 15.0

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            server_config_path=server_config_path,
            server_override=server_override,
            connect_timeout_seconds=connect_timeout_seconds,
            read_timeout_seconds=read_timeout_seconds,
            poll_seconds=poll_seconds,
            data_dir=data_dir,
            tasks_path=tasks_path,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
