"""Default configuration parameters for the signal board."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ServerParams:
    """HTTP/WebSocket server parameters."""
    host: str = "0.0.0.0"
    port: int = 3000
    heartbeat_interval_seconds: float = 30.0        # Viewer liveness probe period


@dataclass(frozen=True)
class PersistenceParams:
    """Durable store parameters."""
    enabled: bool = True
    db_path: str = "callboard.db"
    ttl_days: int = 15                               # Sliding expiry per symbol row


@dataclass(frozen=True)
class LoggingParams:
    """Logging parameters."""
    level: str = "INFO"
    format_json: bool = False


@dataclass(frozen=True)
class RegistryParams:
    """Tracked symbols; None keeps the built-in display groups."""
    display_group_a: Optional[tuple[str, ...]] = None
    display_group_b: Optional[tuple[str, ...]] = None


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""
    server: ServerParams
    persistence: PersistenceParams
    logging: LoggingParams
    registry: RegistryParams


def get_default_config() -> AppConfig:
    """Get the default configuration instance."""
    return AppConfig(
        server=ServerParams(),
        persistence=PersistenceParams(),
        logging=LoggingParams(),
        registry=RegistryParams(),
    )
