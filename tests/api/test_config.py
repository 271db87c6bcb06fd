"""Tests for configuration classes."""

import os
from dataclasses import FrozenInstanceError
from unittest.mock import patch

import pytest

from config import (
    AppConfig,
    CORSConfig,
    PersistenceConfig,
    RateLimitConfig,
    RedisConfig,
    TableConfig,
    _parse_cors_origins,
    _parse_player_names,
)


class TestCORSConfig:
    """Tests for CORSConfig class."""

    def test_cors_default_origins(self):
        with patch.dict(os.environ, {}, clear=True):
            assert CORSConfig().allowed_origins == ["http://localhost:8000"]

    def test_cors_parses_env_var(self):
        """Test that CORS origins are parsed and stripped."""
        with patch.dict(os.environ, {"CORS_ORIGINS": "  http://a.test , http://b.test ,"}):
            assert _parse_cors_origins() == ["http://a.test", "http://b.test"]


class TestRateLimitConfig:
    """Tests for RateLimitConfig class."""

    def test_rate_limit_from_env(self):
        with patch.dict(os.environ, {"RATE_LIMIT_ENABLED": "FALSE", "RATE_LIMIT_RPM": "5"}):
            config = RateLimitConfig()
            assert config.enabled is False
            assert config.requests_per_minute == 5


class TestRedisConfig:
    """Tests for RedisConfig class."""

    def test_redis_url_without_password(self):
        with patch.dict(os.environ, {}, clear=True):
            assert RedisConfig().url == "redis://localhost:6379/0"

    def test_redis_url_with_password(self):
        env = {"REDIS_HOST": "cache", "REDIS_PORT": "6380", "REDIS_DB": "2", "REDIS_PASSWORD": "pw"}
        with patch.dict(os.environ, env, clear=True):
            assert RedisConfig().url == "redis://:pw@cache:6380/2"


class TestTableConfig:
    """Tests for TableConfig class."""

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            config = TableConfig()
            assert config.ante == 10
            assert config.starting_bank == 1000
            assert config.automation_delay == 0.5
            assert config.player_names == ["Player 1"]

    def test_from_env(self):
        env = {
            "TABLE_ANTE": "25",
            "TABLE_STARTING_BANK": "300",
            "AUTOMATION_DELAY_MS": "800",
            "PLAYER_NAMES": "Alice, Bob",
        }
        with patch.dict(os.environ, env, clear=True):
            config = TableConfig()
            assert config.ante == 25
            assert config.starting_bank == 300
            assert config.automation_delay == 0.8
            assert config.player_names == ["Alice", "Bob"]

    def test_player_names_skip_blanks(self):
        with patch.dict(os.environ, {"PLAYER_NAMES": "Alice,, ,Bob"}):
            assert _parse_player_names() == ["Alice", "Bob"]

    def test_negative_ante_rejected(self):
        with pytest.raises(ValueError):
            TableConfig(ante=-1)

    def test_negative_delay_rejected(self):
        with pytest.raises(ValueError):
            TableConfig(automation_delay=-0.1)

    def test_frozen(self):
        with pytest.raises(FrozenInstanceError):
            TableConfig().ante = 5


class TestPersistenceConfig:
    """Tests for PersistenceConfig class."""

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            config = PersistenceConfig()
            assert config.backend == "memory"
            assert config.file_path is None
            assert config.key_prefix == "cardtable:"
            assert config.max_log_entries == 100

    def test_unknown_backend(self):
        with patch.dict(os.environ, {"PERSISTENCE_BACKEND": "postgres"}):
            with pytest.raises(ValueError):
                PersistenceConfig()


class TestAppConfig:
    """Tests for AppConfig class."""

    def test_app_config_has_nested_configs(self):
        config = AppConfig()
        assert isinstance(config.table, TableConfig)
        assert isinstance(config.persistence, PersistenceConfig)
        assert isinstance(config.redis, RedisConfig)
        assert config.session_ttl == 3600

    def test_log_level_upper_cased(self):
        with patch.dict(os.environ, {"LOG_LEVEL": "debug"}):
            assert AppConfig().log_level == "DEBUG"
