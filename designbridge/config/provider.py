"""Configuration provider for the bridge, read from the environment."""
import os
from dataclasses import dataclass
from typing import List, Optional, Protocol

ENV_PREFIX = "DESIGNBRIDGE_"


@dataclass
class BrokerConfig:
    """Command broker configuration."""
    capacity: int
    timeout_ms: int
    sweep_interval_ms: int


@dataclass
class APIConfig:
    """HTTP API configuration."""
    host: str
    port: int
    log_level: str
    cors_origins: List[str]


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_broker_config(self) -> BrokerConfig:
        """Get broker configuration."""
        ...

    def get_api_config(self) -> APIConfig:
        """Get API configuration."""
        ...


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def __init__(self, environ: Optional[dict] = None):
        self._environ = os.environ if environ is None else environ

    def _get(self, key: str, default: str) -> str:
        return self._environ.get(f"{ENV_PREFIX}{key}", default)

    def _positive_int(self, key: str, default: int) -> int:
        raw = self._get(key, str(default))
        try:
            value = int(raw)
        except ValueError:
            raise ValueError(f"{ENV_PREFIX}{key} must be an integer, got {raw!r}")
        if value < 1:
            raise ValueError(f"{ENV_PREFIX}{key} must be positive, got {value}")
        return value

    def get_broker_config(self) -> BrokerConfig:
        """Get broker configuration from environment variables."""
        return BrokerConfig(
            capacity=self._positive_int("QUEUE_CAPACITY", 100),
            timeout_ms=self._positive_int("COMMAND_TIMEOUT_MS", 30000),
            sweep_interval_ms=self._positive_int("SWEEP_INTERVAL_MS", 5000),
        )

    def get_api_config(self) -> APIConfig:
        """Get API configuration from environment variables."""
        origins = self._get("CORS_ORIGINS", "*").split(",")
        return APIConfig(
            host=self._get("HOST", "127.0.0.1"),
            port=self._positive_int("PORT", 3848),
            log_level=self._get("LOG_LEVEL", "INFO").upper(),
            cors_origins=[origin.strip() for origin in origins if origin.strip()],
        )
