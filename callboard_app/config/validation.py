"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_server_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate server parameters."""
        errors = []

        if "port" in params:
            value = params["port"]
            if not isinstance(value, int) or isinstance(value, bool) or not 0 < value < 65536:
                errors.append(ValidationError(
                    field="server.port",
                    message="Must be an integer between 1 and 65535",
                    value=value
                ))

        if "heartbeat_interval_seconds" in params:
            value = params["heartbeat_interval_seconds"]
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
                errors.append(ValidationError(
                    field="server.heartbeat_interval_seconds",
                    message="Must be a positive number",
                    value=value
                ))

        if "host" in params:
            value = params["host"]
            if not isinstance(value, str) or not value:
                errors.append(ValidationError(
                    field="server.host",
                    message="Must be a non-empty string",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_persistence_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate persistence parameters."""
        errors = []

        if "ttl_days" in params:
            value = params["ttl_days"]
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                errors.append(ValidationError(
                    field="persistence.ttl_days",
                    message="Must be a positive integer",
                    value=value
                ))

        if "db_path" in params:
            value = params["db_path"]
            if not isinstance(value, str) or not value:
                errors.append(ValidationError(
                    field="persistence.db_path",
                    message="Must be a non-empty string",
                    value=value
                ))

        if "enabled" in params and not isinstance(params["enabled"], bool):
            errors.append(ValidationError(
                field="persistence.enabled",
                message="Must be a boolean",
                value=params["enabled"]
            ))

        return errors

    @staticmethod
    def validate_logging_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate logging parameters."""
        errors = []

        if "level" in params:
            value = params["level"]
            if not isinstance(value, str) or value.upper() not in VALID_LOG_LEVELS:
                errors.append(ValidationError(
                    field="logging.level",
                    message=f"Must be one of {', '.join(VALID_LOG_LEVELS)}",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_registry_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate symbol registry overrides."""
        errors = []
        params = params or {}
        seen: set[str] = set()

        for group in ("display_group_a", "display_group_b"):
            value = params.get(group)
            if value is None:
                continue
            if not isinstance(value, (list, tuple)) or not all(
                isinstance(symbol, str) and symbol for symbol in value
            ):
                errors.append(ValidationError(
                    field=f"registry.{group}",
                    message="Must be a list of non-empty symbol strings",
                    value=value
                ))
                continue
            duplicates = seen & set(value)
            if duplicates or len(set(value)) != len(value):
                errors.append(ValidationError(
                    field=f"registry.{group}",
                    message="Symbols must be unique across both display groups",
                    value=sorted(duplicates) or value
                ))
            seen.update(value)

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate complete configuration."""
        errors = []

        if "server" in config:
            errors.extend(ConfigValidator.validate_server_params(config["server"]))

        if "persistence" in config:
            errors.extend(ConfigValidator.validate_persistence_params(config["persistence"]))

        if "logging" in config:
            errors.extend(ConfigValidator.validate_logging_params(config["logging"]))

        if "registry" in config:
            errors.extend(ConfigValidator.validate_registry_params(config["registry"]))

        return errors
