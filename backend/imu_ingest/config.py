"""
Service configuration.

Settings are read once from the environment at startup and passed
explicitly into the application factories.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional


DEFAULT_PORT = 8080
DEFAULT_INFLUX_URL = "http://localhost:8086"
DEFAULT_TIMEOUT_MS = 10_000


class ConfigError(ValueError):
    """Raised when an environment variable holds an unusable value."""


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the ingestion service."""

    influx_url: str = DEFAULT_INFLUX_URL
    influx_token: str = ""
    influx_org: str = ""
    influx_bucket: str = ""
    influx_timeout_ms: int = DEFAULT_TIMEOUT_MS

    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    cors_origins: tuple[str, ...] = ("*",)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Raises:
            ConfigError: If PORT or INFLUXDB_TIMEOUT_MS is malformed
        """
        env = os.environ if environ is None else environ

        port = _int_setting(env, "PORT", DEFAULT_PORT)
        if not 0 < port < 65536:
            raise ConfigError(f"PORT out of range: {port}")

        timeout_ms = _int_setting(env, "INFLUXDB_TIMEOUT_MS", DEFAULT_TIMEOUT_MS)
        if timeout_ms <= 0:
            raise ConfigError(f"INFLUXDB_TIMEOUT_MS must be positive: {timeout_ms}")

        origins = tuple(
            origin.strip()
            for origin in env.get("CORS_ORIGINS", "*").split(",")
            if origin.strip()
        )

        return cls(
            influx_url=env.get("INFLUXDB_URL") or DEFAULT_INFLUX_URL,
            influx_token=env.get("INFLUXDB_TOKEN", ""),
            influx_org=env.get("INFLUXDB_ORG", ""),
            influx_bucket=env.get("INFLUXDB_BUCKET", ""),
            influx_timeout_ms=timeout_ms,
            host=env.get("HOST") or "0.0.0.0",
            port=port,
            cors_origins=origins or ("*",),
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        )


def _int_setting(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
