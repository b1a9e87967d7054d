"""
runwatch configuration: centralized defaults and environment handling.
"""

from __future__ import annotations

import os
from pathlib import Path

from .errors import ConfigError

# ── Watch Defaults ────────────────────────────────────────────────────────────

DEFAULT_INTERVAL = 5
MIN_INTERVAL = 1
SPINNER_TICK = 0.1  # seconds between progress indicator frames
LOG_FAILURE_WARN_AFTER = 3
MAX_FAILED_TESTS_TO_SHOW = 10

# ── Server ────────────────────────────────────────────────────────────────────

DEFAULT_HTTP_TIMEOUT = 20.0
SERVER_URL_ENV = ("RUNWATCH_SERVER_URL", "TEAMCITY_URL")
TOKEN_ENV = ("RUNWATCH_TOKEN", "TEAMCITY_TOKEN")
HTTP_TIMEOUT_ENV = "RUNWATCH_HTTP_TIMEOUT"


def _first_env(names: tuple[str, ...]) -> str | None:
    for name in names:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return None


def get_server_url(override: str | None = None) -> str:
    """Resolve the server base URL from override or environment."""
    text = str(override or "").strip() or _first_env(SERVER_URL_ENV)
    if not text:
        raise ConfigError("No server configured. Pass --server or set RUNWATCH_SERVER_URL.")
    if not text.startswith(("http://", "https://")):
        raise ConfigError(f"Server URL must start with http:// or https://, got {text!r}")
    return text.rstrip("/")


def get_token(override: str | None = None) -> str | None:
    """Get the access token from override or environment."""
    text = str(override or "").strip()
    if text:
        return text
    return _first_env(TOKEN_ENV)


def get_http_timeout() -> float:
    raw = os.environ.get(HTTP_TIMEOUT_ENV, "").strip()
    if not raw:
        return DEFAULT_HTTP_TIMEOUT
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{HTTP_TIMEOUT_ENV} must be a number of seconds, got {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{HTTP_TIMEOUT_ENV} must be positive, got {raw!r}")
    return value


def load_dotenv(directory: Path | None = None):
    """Load a .env file from directory or cwd without overriding the environment."""
    env_path = (directory or Path(".")) / ".env"
    if not env_path.exists():
        return
    with env_path.open(encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                k, v = line.split("=", 1)
                os.environ.setdefault(k.strip(), v.strip().strip('"').strip("'"))
