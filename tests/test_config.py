"""Tests for configuration manager."""

import tempfile
from pathlib import Path

import pytest  # type: ignore[import-not-found]
import yaml  # type: ignore[import-untyped]

from goal_audit.core.config import ConfigManager


@pytest.fixture
def temp_config_path():
    """Create a temporary config file path."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "config.yml"


class TestConfigManager:
    """Test ConfigManager."""

    def test_initialization_creates_default_config(self, temp_config_path: Path) -> None:
        """Test that initialization creates default configuration."""
        assert not temp_config_path.exists()

        config = ConfigManager(temp_config_path)

        assert temp_config_path.exists()
        assert config.get("version") == "1.0"
        assert config.get("general.data_file") == "~/.goal-audit/goals.json"
        assert config.get("idle.enabled") is True
        assert config.get("idle.timeout") == 300

    def test_load_existing_config(self, temp_config_path: Path) -> None:
        """Test loading existing configuration."""
        config_data = {
            "version": "1.0",
            "general": {"data_file": "/custom/goals.json"},
            "idle": {"timeout": 600},
        }
        with open(temp_config_path, "w") as f:
            yaml.dump(config_data, f)

        config = ConfigManager(temp_config_path)

        assert config.get("general.data_file") == "/custom/goals.json"
        assert config.get("idle.timeout") == 600
        # Missing keys come from the defaults
        assert config.get("idle.enabled") is True
        assert config.get("notifications.timeout") == 5

    def test_get_with_default(self, temp_config_path: Path) -> None:
        """Test dot-notation lookups of missing keys."""
        config = ConfigManager(temp_config_path)

        assert config.get("nonexistent.key", "fallback") == "fallback"
        assert config.get("display.category") is None
        assert config.get("version.deeper", 1) == 1

    def test_set_persists(self, temp_config_path: Path) -> None:
        """Test that set validates and saves."""
        config = ConfigManager(temp_config_path)

        config.set("idle.timeout", 900)

        assert ConfigManager(temp_config_path).get("idle.timeout") == 900

    def test_set_invalid_value_rolls_back(self, temp_config_path: Path) -> None:
        """Test that invalid values are rejected and not kept."""
        config = ConfigManager(temp_config_path)

        with pytest.raises(ValueError, match="Invalid configuration"):
            config.set("idle.timeout", 1)

        assert config.get("idle.timeout") == 300
        assert ConfigManager(temp_config_path).get("idle.timeout") == 300

    def test_invalid_file_backed_up(self, temp_config_path: Path) -> None:
        """Test that an invalid config file is backed up and replaced."""
        with open(temp_config_path, "w") as f:
            yaml.dump({"version": "1.0", "advanced": {"log_level": "LOUD"}}, f)

        with pytest.raises(ValueError, match="Config validation failed"):
            ConfigManager(temp_config_path)

        assert temp_config_path.with_suffix(".yml.backup").exists()
        assert ConfigManager(temp_config_path).get("advanced.log_level") == "WARNING"

    def test_reset(self, temp_config_path: Path) -> None:
        """Test reset to defaults."""
        config = ConfigManager(temp_config_path)
        config.set("display.show_future", True)

        config.reset()

        assert config.get("display.show_future") is False

    def test_get_all_keys(self, temp_config_path: Path) -> None:
        """Test listing keys in dot notation."""
        keys = ConfigManager(temp_config_path).get_all_keys()

        assert "version" in keys
        assert "idle.timeout" in keys
        assert "display.category" in keys
        assert "idle" not in keys

    def test_data_file_expands_home(self, temp_config_path: Path) -> None:
        """Test that ~ in the data file is expanded."""
        config = ConfigManager(temp_config_path)

        assert config.data_file == Path.home() / ".goal-audit" / "goals.json"

    def test_idle_timeout_property(self, temp_config_path: Path) -> None:
        """Test idle timeout resolution."""
        config = ConfigManager(temp_config_path)
        assert config.idle_timeout == 300

        config.set("idle.enabled", False)
        assert config.idle_timeout is None
