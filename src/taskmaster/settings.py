from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import StartupError

DEFAULT_PORT = 5000
DEFAULT_API_URL = "http://localhost:5000"
DEFAULT_ALLOWED_ORIGINS = ("http://localhost:5173", "http://localhost:8888")
STORAGE_URL_VARS = ("STORAGE_URL", "MONGODB_URI", "MONGO_URI")


@dataclass(frozen=True)
class Settings:
    """
    Service settings loaded from environment variables.

    Env vars:
    - STORAGE_URL: storage connection string (required). MONGODB_URI and
      MONGO_URI are accepted as fallbacks. Scheme selects the backend:
      mongodb:// or mongodb+srv://, sqlite:///path, memory://
    - PORT: listening port (default 5000)
    - HOST: bind address (default 0.0.0.0)
    - FRONTEND_ORIGIN: comma-separated origins allowed in addition to the
      localhost development origins
    - STORAGE_TIMEOUT_MS: store server-selection timeout (default 5000)
    - LOG_LEVEL: logging level (default INFO)
    - LOG_FORMAT: 'dev' (default) or 'json'
    """

    storage_url: str
    port: int = DEFAULT_PORT
    host: str = "0.0.0.0"
    cors_allow_origins: List[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS))
    storage_timeout_ms: int = 5000
    log_level: str = "INFO"
    log_format: str = "dev"


@dataclass(frozen=True)
class ClientSettings:
    """
    Client settings loaded from environment variables.

    Env vars:
    - TASKS_API_URL: base URL of the task service (default http://localhost:5000)
    - TASKS_API_TIMEOUT: request timeout in seconds; unset means wait indefinitely
    """

    api_url: str = DEFAULT_API_URL
    timeout: Optional[float] = None


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value.strip())
    except ValueError as e:
        raise StartupError(f"{name} must be an integer, got {value!r}") from e


def _parse_origins(origins_value: str) -> List[str]:
    """Parse a comma-separated list of origins, dropping blanks."""
    return [o.strip() for o in origins_value.split(",") if o.strip()]


def _storage_url() -> str:
    for name in STORAGE_URL_VARS:
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    raise StartupError("Missing STORAGE_URL (or MONGODB_URI) in environment.")


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """
    Return service settings loaded from environment variables.

    Raises:
        StartupError: the storage connection string is missing or a numeric
        option cannot be parsed.
    """
    storage_url = _storage_url()
    port = _parse_int("PORT", _get_env("PORT", str(DEFAULT_PORT)))
    timeout_ms = _parse_int("STORAGE_TIMEOUT_MS", _get_env("STORAGE_TIMEOUT_MS", "5000"))

    origins = list(DEFAULT_ALLOWED_ORIGINS)
    for origin in _parse_origins(_get_env("FRONTEND_ORIGIN", "")):
        if origin not in origins:
            origins.append(origin)

    log_format = _get_env("LOG_FORMAT", "dev").strip().lower()
    if log_format not in {"dev", "json"}:
        log_format = "dev"

    return Settings(
        storage_url=storage_url,
        port=port,
        host=_get_env("HOST", "0.0.0.0").strip(),
        cors_allow_origins=origins,
        storage_timeout_ms=timeout_ms,
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
        log_format=log_format,
    )


# PUBLIC_INTERFACE
def get_client_settings() -> ClientSettings:
    """Return client settings loaded from environment variables."""
    raw_timeout = _get_env("TASKS_API_TIMEOUT", "").strip()
    timeout: Optional[float] = None
    if raw_timeout:
        try:
            timeout = float(raw_timeout)
        except ValueError:
            timeout = None
        if timeout is not None and timeout <= 0:
            timeout = None
    return ClientSettings(
        api_url=_get_env("TASKS_API_URL", DEFAULT_API_URL).strip(),
        timeout=timeout,
    )
