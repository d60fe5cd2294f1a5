"""Tests for configuration loading and validation."""

import shutil
import tempfile
from pathlib import Path

import pytest
import yaml

from callboard_app.config.defaults import AppConfig, get_default_config
from callboard_app.config.loader import ConfigLoader
from callboard_app.config.validation import ConfigValidator
from callboard_app.errors import ConfigError


class TestDefaults:
    """Test default parameters."""

    def test_default_values(self):
        config = get_default_config()

        assert isinstance(config, AppConfig)
        assert config.server.port == 3000
        assert config.server.heartbeat_interval_seconds == 30.0
        assert config.persistence.ttl_days == 15
        assert config.persistence.enabled is True
        assert config.registry.display_group_a is None

    def test_defaults_are_frozen(self):
        config = get_default_config()

        with pytest.raises(AttributeError):
            config.server.port = 1


class TestConfigLoader:
    """Test 3-tier configuration precedence."""

    def setup_method(self):
        self.temp_dir = Path(tempfile.mkdtemp())

    def teardown_method(self):
        shutil.rmtree(self.temp_dir)

    def write_yaml(self, data):
        with open(self.temp_dir / "callboard.yaml", "w") as f:
            yaml.safe_dump(data, f)

    def test_defaults_without_file(self):
        config = ConfigLoader.create(self.temp_dir, environ={}).load()

        assert config == get_default_config()

    def test_file_overrides_defaults(self):
        self.write_yaml({
            "server": {"port": 8080},
            "registry": {"display_group_a": ["AAA"], "display_group_b": ["BBB"]},
        })

        config = ConfigLoader.create(self.temp_dir, environ={}).load()

        assert config.server.port == 8080
        assert config.server.host == "0.0.0.0"
        assert config.registry.display_group_a == ("AAA",)
        assert config.registry.display_group_b == ("BBB",)

    def test_env_overrides_file(self):
        self.write_yaml({"server": {"port": 8080}, "logging": {"level": "INFO"}})
        environ = {
            "PORT": "9090",
            "CALLBOARD_DB_PATH": "/tmp/board.db",
            "CALLBOARD_LOG_LEVEL": "DEBUG",
            "CALLBOARD_HEARTBEAT_SECONDS": "5",
        }

        config = ConfigLoader.create(self.temp_dir, environ=environ).load()

        assert config.server.port == 9090
        assert config.server.heartbeat_interval_seconds == 5.0
        assert config.persistence.db_path == "/tmp/board.db"
        assert config.logging.level == "DEBUG"

    def test_explicit_overrides_win(self):
        loader = ConfigLoader.create(self.temp_dir, environ={"PORT": "9090"})

        config = loader.load({"server": {"port": 7000}})

        assert config.server.port == 7000

    def test_invalid_env_value_reported(self):
        with pytest.raises(ConfigError) as exc_info:
            ConfigLoader.create(self.temp_dir, environ={"PORT": "not-a-port"}).load()

        assert [err.field for err in exc_info.value.errors] == ["server.port"]

    def test_invalid_file_value_reported(self):
        self.write_yaml({"persistence": {"ttl_days": 0}, "logging": {"level": "LOUD"}})

        with pytest.raises(ConfigError) as exc_info:
            ConfigLoader.create(self.temp_dir, environ={}).load()

        fields = {err.field for err in exc_info.value.errors}
        assert fields == {"persistence.ttl_days", "logging.level"}

    def test_non_mapping_file_rejected(self):
        (self.temp_dir / "callboard.yaml").write_text("- just\n- a list\n")

        with pytest.raises(ConfigError):
            ConfigLoader.create(self.temp_dir, environ={}).load()

    def test_empty_sections_keep_defaults(self):
        (self.temp_dir / "callboard.yaml").write_text("registry:\nserver:\n  port: 8080\n")

        config = ConfigLoader.create(self.temp_dir, environ={}).load()

        assert config.server.port == 8080
        assert config.registry == get_default_config().registry

    def test_non_mapping_section_rejected(self):
        (self.temp_dir / "callboard.yaml").write_text("registry: AAA\n")

        with pytest.raises(ConfigError):
            ConfigLoader.create(self.temp_dir, environ={}).load()

    def test_bundled_config_loads(self):
        """The shipped config/callboard.yaml is valid."""
        config = ConfigLoader.create(environ={}).load()

        assert config.server.port == 3000


class TestConfigValidator:
    """Test ConfigValidator."""

    def test_valid_config(self):
        config = {
            "server": {"host": "127.0.0.1", "port": 3000, "heartbeat_interval_seconds": 30},
            "persistence": {"enabled": True, "db_path": "x.db", "ttl_days": 15},
            "logging": {"level": "info"},
        }

        assert ConfigValidator.validate_config(config) == []

    @pytest.mark.parametrize("params,field", [
        ({"port": 0}, "server.port"),
        ({"port": 70000}, "server.port"),
        ({"port": True}, "server.port"),
        ({"heartbeat_interval_seconds": -1}, "server.heartbeat_interval_seconds"),
        ({"host": ""}, "server.host"),
    ])
    def test_invalid_server_params(self, params, field):
        errors = ConfigValidator.validate_server_params(params)

        assert [err.field for err in errors] == [field]

    def test_persistence_enabled_must_be_bool(self):
        errors = ConfigValidator.validate_persistence_params({"enabled": "yes"})

        assert errors[0].field == "persistence.enabled"

    def test_registry_duplicates_across_groups(self):
        errors = ConfigValidator.validate_registry_params(
            {"display_group_a": ["AAA", "BBB"], "display_group_b": ["BBB"]}
        )

        assert len(errors) == 1
        assert errors[0].field == "registry.display_group_b"
        assert errors[0].value == ["BBB"]

    def test_registry_requires_symbol_strings(self):
        errors = ConfigValidator.validate_registry_params({"display_group_a": ["AAA", 5]})

        assert errors[0].field == "registry.display_group_a"

    def test_null_registry_section_valid(self):
        assert ConfigValidator.validate_config({"registry": None}) == []
