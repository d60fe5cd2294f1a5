"""Configuration loader with 3-tier parameter precedence."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from ..errors import ConfigError
from .defaults import (
    AppConfig,
    LoggingParams,
    PersistenceParams,
    RegistryParams,
    ServerParams,
    get_default_config,
)
from .validation import ConfigValidator

CONFIG_FILENAME = "callboard.yaml"

# Environment variable -> (section, field, converter)
ENV_OVERRIDES = {
    "PORT": ("server", "port", int),
    "CALLBOARD_HOST": ("server", "host", str),
    "CALLBOARD_HEARTBEAT_SECONDS": ("server", "heartbeat_interval_seconds", float),
    "CALLBOARD_DB_PATH": ("persistence", "db_path", str),
    "CALLBOARD_TTL_DAYS": ("persistence", "ttl_days", int),
    "CALLBOARD_LOG_LEVEL": ("logging", "level", str),
}


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with 3-tier precedence."""

    config_dir: Path
    defaults: AppConfig
    environ: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        config_dir: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        return cls(
            config_dir=Path(config_dir),
            defaults=get_default_config(),
            environ=dict(os.environ if environ is None else environ),
        )

    def load_file_config(self) -> dict[str, Any]:
        """Load overrides from the YAML config file, if present."""
        config_file = self.config_dir / CONFIG_FILENAME

        if not config_file.exists():
            return {}

        with open(config_file) as f:
            file_config = yaml.safe_load(f) or {}

        if not isinstance(file_config, dict):
            raise ConfigError(f"{config_file} must contain a mapping")

        sections = {}
        for section, values in file_config.items():
            # An empty section in YAML keeps the defaults
            if values is None:
                continue
            if not isinstance(values, dict):
                raise ConfigError(f"{config_file}: section '{section}' must be a mapping")
            sections[section] = values

        return sections

    def load_env_config(self) -> dict[str, Any]:
        """Collect overrides from environment variables."""
        config: dict[str, Any] = {}

        for name, (section, key, convert) in ENV_OVERRIDES.items():
            raw = self.environ.get(name)
            if raw is None or raw == "":
                continue
            try:
                value: Any = convert(raw)
            except ValueError:
                # Leave the raw string so validation reports the bad value
                value = raw
            config.setdefault(section, {})[key] = value

        return config

    def merge_config(self, overrides: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Explicit overrides and environment variables (highest priority)
        2. YAML config file
        3. Global defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)
        config = self._deep_merge(config, self.load_file_config())
        config = self._deep_merge(config, self.load_env_config())

        if overrides:
            config = self._deep_merge(config, overrides)

        return config

    def load(self, overrides: Optional[dict[str, Any]] = None) -> AppConfig:
        """
        Load, validate and build the application configuration.

        Raises:
            ConfigError: If any parameter fails validation
        """
        config = self.merge_config(overrides)

        errors = ConfigValidator.validate_config(config)
        if errors:
            messages = [f"{err.field}: {err.message} (got: {err.value!r})" for err in errors]
            raise ConfigError("Invalid configuration: " + "; ".join(messages), errors=errors)

        registry = config.get("registry") or {}
        return AppConfig(
            server=ServerParams(**config["server"]),
            persistence=PersistenceParams(**config["persistence"]),
            logging=LoggingParams(**config["logging"]),
            registry=RegistryParams(
                display_group_a=self._as_tuple(registry.get("display_group_a")),
                display_group_b=self._as_tuple(registry.get("display_group_b")),
            ),
        )

    @staticmethod
    def _as_tuple(value: Optional[list[str]]) -> Optional[tuple[str, ...]]:
        return tuple(value) if value is not None else None

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name in obj.__dataclass_fields__:
                value = getattr(obj, field_name)
                if hasattr(value, '__dataclass_fields__'):
                    result[field_name] = self._dataclass_to_dict(value)
                else:
                    result[field_name] = value
            return result
        return obj  # type: ignore[no-any-return]

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
