"""
Unit tests for configuration loading and validation.

Tests strict validation, defaults and environment overrides.
"""

import os
import tempfile

import pytest
import yaml

from tip_tracker.config.loader import (
    ENV_DB_PATH,
    ENV_TIMEZONE,
    ENV_USER_ID,
    GenerationConfig,
    StoreConfig,
    TrackerConfig,
    load_config
)
from tip_tracker.core.errors import ConfigurationError


class TestConfigLoading:
    """Test configuration loading and validation."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_config(self, config_data: dict, filename: str = "config.yaml") -> str:
        """Write configuration data to temporary file."""
        config_path = os.path.join(self.temp_dir, filename)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config_data, f)
        return config_path

    def test_valid_config_loads_correctly(self):
        """Verify a full config file loads."""
        config_path = self._write_config({
            "store": {"path": "/data/tips.db", "poll_interval": 5},
            "timezone": "America/Chicago",
            "generation": {"model": "gpt-4o", "temperature": 0.2, "max_tokens": 300},
            "user_id": "driver-7"
        })

        config = load_config(config_path, environ={})

        assert config.store.path == "/data/tips.db"
        assert config.store.poll_interval == 5.0
        assert config.timezone == "America/Chicago"
        assert config.tz.key == "America/Chicago"
        assert config.generation.model == "gpt-4o"
        assert config.generation.temperature == 0.2
        assert config.generation.max_tokens == 300
        assert config.user_id == "driver-7"

    def test_minimal_config_uses_defaults(self):
        """Verify omitted settings get defaults."""
        config_path = self._write_config({"store": {"path": "tips.db"}})

        config = load_config(config_path, environ={})

        assert config.timezone == "UTC"
        assert config.store.poll_interval == 2.0
        assert config.generation == GenerationConfig()
        assert config.user_id is None

    def test_environment_only(self):
        """Verify config can come from the environment alone."""
        config = load_config(environ={ENV_DB_PATH: "env.db", ENV_USER_ID: "driver-9"})

        assert config.store.path == "env.db"
        assert config.user_id == "driver-9"

    def test_environment_overrides_file(self):
        """Verify environment values win over the file."""
        config_path = self._write_config({"store": {"path": "file.db"}, "timezone": "UTC"})

        config = load_config(config_path, environ={
            ENV_DB_PATH: "env.db",
            ENV_TIMEZONE: "Europe/London"
        })

        assert config.store.path == "env.db"
        assert config.timezone == "Europe/London"

    def test_missing_store_path(self):
        """Verify a missing store path is rejected."""
        with pytest.raises(ConfigurationError, match="Missing store path"):
            load_config(environ={})

    def test_missing_file(self):
        """Verify a missing config file is rejected."""
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(os.path.join(self.temp_dir, "nope.yaml"), environ={})

    def test_empty_file(self):
        """Verify an empty config file is rejected."""
        config_path = os.path.join(self.temp_dir, "empty.yaml")
        open(config_path, 'w').close()

        with pytest.raises(ConfigurationError, match="empty"):
            load_config(config_path, environ={})

    def test_invalid_yaml(self):
        """Verify malformed YAML is rejected."""
        config_path = os.path.join(self.temp_dir, "bad.yaml")
        with open(config_path, 'w', encoding='utf-8') as f:
            f.write("store: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(config_path, environ={})

    def test_unknown_top_level_key(self):
        """Verify unknown top-level keys are rejected."""
        config_path = self._write_config({"store": {"path": "x.db"}, "budget": {}})

        with pytest.raises(ConfigurationError, match="Unknown configuration keys"):
            load_config(config_path, environ={})

    def test_unknown_store_key(self):
        """Verify unknown store keys are rejected."""
        config_path = self._write_config({"store": {"path": "x.db", "url": "http://x"}})

        with pytest.raises(ConfigurationError, match="Unknown keys in store"):
            load_config(config_path, environ={})

    def test_unknown_timezone(self):
        """Verify unknown time zones are rejected."""
        config_path = self._write_config({"store": {"path": "x.db"}, "timezone": "Mars/Olympus"})

        with pytest.raises(ConfigurationError, match="Unknown timezone"):
            load_config(config_path, environ={})

    def test_invalid_poll_interval(self):
        """Verify a zero poll interval is rejected."""
        config_path = self._write_config({"store": {"path": "x.db", "poll_interval": 0}})

        with pytest.raises(ConfigurationError, match="poll_interval must be > 0"):
            load_config(config_path, environ={})

    def test_non_numeric_temperature(self):
        """Verify temperature must be numeric."""
        config_path = self._write_config({
            "store": {"path": "x.db"},
            "generation": {"temperature": "hot"}
        })

        with pytest.raises(ConfigurationError, match="must be a number"):
            load_config(config_path, environ={})

    def test_non_integer_max_tokens(self):
        """Verify max_tokens must be an integer."""
        config_path = self._write_config({
            "store": {"path": "x.db"},
            "generation": {"max_tokens": 2.5}
        })

        with pytest.raises(ConfigurationError, match="must be an integer"):
            load_config(config_path, environ={})


class TestConfigDataclasses:
    """Test validation in configuration dataclasses."""

    def test_store_requires_path(self):
        """Verify StoreConfig needs a path."""
        with pytest.raises(ConfigurationError):
            StoreConfig(path="  ")

    def test_temperature_range(self):
        """Verify temperature stays within range."""
        with pytest.raises(ConfigurationError, match="temperature"):
            GenerationConfig(temperature=3.0)

    def test_max_tokens_positive(self):
        """Verify max_tokens must be positive."""
        with pytest.raises(ConfigurationError, match="max_tokens"):
            GenerationConfig(max_tokens=0)

    def test_tracker_config_is_frozen(self):
        """Verify loaded config cannot be mutated."""
        config = TrackerConfig(store=StoreConfig(path="x.db"))
        with pytest.raises(AttributeError):
            config.timezone = "Europe/Paris"
