"""Unit tests for server configuration settings model.

Tests verify that the Settings model binds every variable documented in the
root .env.example and that the grouped configuration views are built from it.
"""

from pathlib import Path
from typing import Dict

import pytest

from backoffice.server.core import constant
from backoffice.server.core.config import (
    AuditConfig,
    CORSConfig,
    InventoryConfig,
    PerformanceCacheConfig,
    PostgreSQLConfig,
    Settings,
)

SETTINGS_ALIASES = [field.alias for field in Settings.model_fields.values()]


@pytest.fixture
def env_example_vars() -> Dict[str, str]:
    """Parse the root .env.example file."""
    path = Path(__file__).resolve().parents[4] / ".env.example"
    env_vars = {}
    with open(path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            env_vars[key.strip()] = value.strip()
    return env_vars


@pytest.fixture
def clean_env(monkeypatch):
    for alias in SETTINGS_ALIASES:
        monkeypatch.delenv(alias, raising=False)
    return monkeypatch


def load_settings() -> Settings:
    return Settings(_env_file=None)


class TestDefaults:
    def test_server_defaults(self, clean_env):
        settings = load_settings()
        assert settings.server_host == "0.0.0.0"
        assert settings.server_port == 8000
        assert settings.log_level == "INFO"
        assert settings.database_url.startswith("postgresql+asyncpg://")

    def test_grouped_defaults(self, clean_env):
        settings = load_settings()

        assert settings.postgres == PostgreSQLConfig()
        assert settings.cors == CORSConfig()
        assert settings.inventory.low_stock_list_threshold == 10
        assert settings.inventory.expiry_warning_days == 30
        assert settings.inventory.default_low_stock_threshold == 10
        assert settings.inventory.default_out_of_stock_threshold == 3
        assert settings.performance_cache == PerformanceCacheConfig(
            performance_metrics_ttl=300, leaderboard_ttl=600, team_stats_ttl=180, commission_data_ttl=3600
        )
        assert settings.audit.retention_days == 90


class TestSettingsBinding:
    """Test Settings model environment variable binding."""

    def test_every_documented_variable_is_known(self, env_example_vars: Dict[str, str]):
        settings_keys = {key for key in env_example_vars if not key.startswith(("LOG_", "LOGFIRE_", "ENABLE_"))}
        assert settings_keys <= set(SETTINGS_ALIASES)

    def test_env_example_values_bind(self, env_example_vars: Dict[str, str], clean_env):
        for key, value in env_example_vars.items():
            clean_env.setenv(key, value)

        settings = load_settings()
        assert settings.server_port == int(env_example_vars["BACKOFFICE_SERVER_PORT"])
        assert settings.postgres.db == env_example_vars["POSTGRES_DB"]
        assert settings.cors.origins == ["*"]
        assert settings.audit.retention_days == int(env_example_vars["AUDIT_RETENTION_DAYS"])

    def test_server_overrides(self, clean_env):
        clean_env.setenv("BACKOFFICE_SERVER_HOST", "127.0.0.1")
        clean_env.setenv("BACKOFFICE_SERVER_PORT", "9100")
        clean_env.setenv("BACKOFFICE_LOG_LEVEL", "DEBUG")
        clean_env.setenv("DATABASE_URL", "sqlite+aiosqlite:///./bo.db")

        settings = load_settings()
        assert settings.server_host == "127.0.0.1"
        assert settings.server_port == 9100
        assert settings.log_level == "DEBUG"
        assert settings.database_url == "sqlite+aiosqlite:///./bo.db"

    def test_postgres_group(self, clean_env):
        clean_env.setenv("POSTGRES_HOST", "db.internal")
        clean_env.setenv("POSTGRES_PORT", "6543")
        clean_env.setenv("POSTGRES_PASSWORD", "s3cret")

        postgres = load_settings().postgres
        assert isinstance(postgres, PostgreSQLConfig)
        assert (postgres.host, postgres.port, postgres.password) == ("db.internal", 6543, "s3cret")

    def test_cors_group(self, clean_env):
        clean_env.setenv("CORS_ORIGINS", '["https://admin.example.com"]')
        clean_env.setenv("CORS_ALLOW_CREDENTIALS", "false")

        cors = load_settings().cors
        assert isinstance(cors, CORSConfig)
        assert cors.origins == ["https://admin.example.com"]
        assert cors.allow_credentials is False

    def test_inventory_group(self, clean_env):
        clean_env.setenv("INVENTORY_DEFAULT_OUT_OF_STOCK_THRESHOLD", "5")
        clean_env.setenv("INVENTORY_EXPIRY_WARNING_DAYS", "14")

        inventory = load_settings().inventory
        assert isinstance(inventory, InventoryConfig)
        assert inventory.default_out_of_stock_threshold == 5
        assert inventory.expiry_warning_days == 14

    def test_cache_ttls(self, clean_env):
        clean_env.setenv("LEADERBOARD_CACHE_TTL", "60")
        clean_env.setenv("COMMISSION_DATA_CACHE_TTL", "120")

        cache = load_settings().performance_cache
        assert cache.leaderboard_ttl == 60
        assert cache.commission_data_ttl == 120
        assert cache.performance_metrics_ttl == 300

    def test_audit_retention(self, clean_env):
        clean_env.setenv("AUDIT_RETENTION_DAYS", "30")
        audit = load_settings().audit
        assert isinstance(audit, AuditConfig)
        assert audit.retention_days == 30

    def test_invalid_port_is_rejected(self, clean_env):
        clean_env.setenv("BACKOFFICE_SERVER_PORT", "not-a-port")
        with pytest.raises(ValueError):
            load_settings()

    def test_aliases_are_case_sensitive(self, clean_env):
        clean_env.setenv("backoffice_server_port", "9999")
        assert load_settings().server_port == 8000


class TestGroupedModels:
    def test_populate_by_name(self):
        assert PostgreSQLConfig(host="localhost").host == "localhost"
        assert InventoryConfig(low_stock_list_threshold=4).low_stock_list_threshold == 4

    def test_populate_by_alias(self):
        assert AuditConfig.model_validate({"AUDIT_RETENTION_DAYS": 7}).retention_days == 7


def test_constants():
    assert constant.PROJECT_NAME == "Back Office Server"
    assert constant.API_V1_STR == "/api/v1"
    assert constant.VERSION == "1.0.0"
