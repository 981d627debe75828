"""
Tests for configuration loader.
"""

import pytest
from pathlib import Path
import tempfile

from controlroom.config import (
    load_config,
    Config,
    ServerConfig,
    DatabaseConfig,
    AuthConfig,
    LoggingConfig,
    PolicyRulesConfig,
    DEFAULT_CATEGORIES,
    DEFAULT_ORGANIZATIONS,
)


def _write_config(content: str) -> str:
    with tempfile.NamedTemporaryFile(
        mode="w", suffix=".yaml", delete=False, encoding="utf-8"
    ) as f:
        f.write(content)
        return f.name


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_minimal_config(self):
        """Test loading a minimal config file."""
        path = _write_config("""
server:
  port: 9000
""")
        try:
            config = load_config(path)

            assert config.server.port == 9000
            assert config.server.host == "0.0.0.0"  # default
            assert config.auth.jwt_expire_hours == 24
        finally:
            Path(path).unlink()

    def test_load_full_config(self):
        """Test loading a full config file."""
        path = _write_config("""
server:
  port: 8080
  host: "127.0.0.1"

database:
  url: "sqlite+aiosqlite:///./test.db"

auth:
  jwt_secret: "test-secret"
  jwt_expire_hours: 12

logging:
  level: "DEBUG"

policies:
  categories: ["HR", "Safety"]
  organizations: ["mertzcrew"]
""")
        try:
            config = load_config(path)

            assert config.server.port == 8080
            assert config.server.host == "127.0.0.1"
            assert config.database.url == "sqlite+aiosqlite:///./test.db"
            assert config.auth.jwt_secret == "test-secret"
            assert config.auth.jwt_expire_hours == 12
            assert config.logging.level == "DEBUG"
            assert config.policies.categories == ["HR", "Safety"]
            assert config.policies.organizations == ["mertzcrew"]
        finally:
            Path(path).unlink()

    def test_empty_policies_section_uses_defaults(self):
        """Test that an empty policies section falls back to defaults."""
        path = _write_config("policies:\n")
        try:
            config = load_config(path)

            assert config.policies.categories == DEFAULT_CATEGORIES
            assert config.policies.organizations == DEFAULT_ORGANIZATIONS
        finally:
            Path(path).unlink()

    def test_empty_file(self):
        """Test that an empty file gives the default config."""
        path = _write_config("")
        try:
            config = load_config(path)

            assert config.server.port == 8000
            assert config.database.url.startswith("sqlite+aiosqlite://")
        finally:
            Path(path).unlink()

    def test_missing_file(self):
        """Test loading a non-existent file raises error."""
        with pytest.raises(FileNotFoundError):
            load_config("/nonexistent/config.yaml")


class TestConfigDefaults:
    """Tests for config default values."""

    def test_defaults(self):
        config = Config()

        assert config.server == ServerConfig()
        assert config.database == DatabaseConfig()
        assert config.auth == AuthConfig()
        assert config.logging == LoggingConfig()
        assert "HR" in config.policies.categories
        assert "mertzcrew" in config.policies.organizations

    def test_rules_are_not_shared(self):
        """Each config gets its own category list."""
        first = PolicyRulesConfig()
        first.categories.append("Custom")

        assert "Custom" not in PolicyRulesConfig().categories
