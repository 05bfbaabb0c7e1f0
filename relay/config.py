"""Relay configuration from environment variables."""

import os
from dataclasses import dataclass

from game.rules import NIGHT_ACTION_TIMEOUT_SECONDS, SESSION_SWEEP_INTERVAL_SECONDS

# Env var names
ENV_RELAY_HOST = "RELAY_HOST"
ENV_WS_PORT = "WS_PORT"
ENV_SESSION_SWEEP_INTERVAL = "SESSION_SWEEP_INTERVAL"
ENV_NIGHT_ACTION_TIME = "NIGHT_ACTION_TIME"
ENV_LOG_LEVEL = "LOG_LEVEL"
ENV_CORS_ALLOW_ORIGINS = "CORS_ALLOW_ORIGINS"

DEFAULT_RELAY_HOST = "0.0.0.0"
DEFAULT_WS_PORT = 3001
DEFAULT_LOG_LEVEL = "INFO"


@dataclass(frozen=True)
class RelaySettings:
    host: str = DEFAULT_RELAY_HOST
    port: int = DEFAULT_WS_PORT
    sweep_interval: float = SESSION_SWEEP_INTERVAL_SECONDS
    night_action_time: float = NIGHT_ACTION_TIMEOUT_SECONDS
    log_level: str = DEFAULT_LOG_LEVEL
    cors_allow_origins: tuple[str, ...] = ("*",)


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    value = float(raw)
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def load_settings() -> RelaySettings:
    """Read settings from the environment; unset variables keep their defaults."""
    port_raw = os.environ.get(ENV_WS_PORT, "").strip()
    origins_raw = os.environ.get(ENV_CORS_ALLOW_ORIGINS, "").strip()
    origins = tuple(o.strip() for o in origins_raw.split(",") if o.strip()) if origins_raw else ("*",)
    return RelaySettings(
        host=os.environ.get(ENV_RELAY_HOST, "").strip() or DEFAULT_RELAY_HOST,
        port=int(port_raw) if port_raw else DEFAULT_WS_PORT,
        sweep_interval=_env_float(ENV_SESSION_SWEEP_INTERVAL, SESSION_SWEEP_INTERVAL_SECONDS),
        night_action_time=_env_float(ENV_NIGHT_ACTION_TIME, NIGHT_ACTION_TIMEOUT_SECONDS),
        log_level=(os.environ.get(ENV_LOG_LEVEL, "").strip() or DEFAULT_LOG_LEVEL).upper(),
        cors_allow_origins=origins,
    )
