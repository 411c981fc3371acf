"""
Configuration Unit Tests

Usage:
    pytest tests/unit/denim_ops/test_config.py -v
"""
import pytest

from core.config import AllocationConfig, DenimOpsConfig, InfraConfig, LoggingConfig, reload_settings

pytestmark = [pytest.mark.unit]


class TestAllocationConfig:

    def test_defaults(self):
        config = AllocationConfig()
        assert config.max_inseam == 36
        assert config.default_priority == "MEDIUM"
        assert config.order_priority == "HIGH"
        assert config.laundry_location == "LAUNDRY"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("DENIM_MAX_INSEAM", "34")
        monkeypatch.setenv("ALLOCATION_MAX_RETRIES", "5")
        monkeypatch.setenv("DENIM_LAUNDRY_LOCATION", "WASH_HOUSE")
        config = AllocationConfig.from_env()
        assert config.max_inseam == 34
        assert config.max_commit_retries == 5
        assert config.laundry_location == "WASH_HOUSE"

    def test_bad_int_falls_back(self, monkeypatch):
        monkeypatch.setenv("DENIM_MAX_INSEAM", "tall")
        assert AllocationConfig.from_env().max_inseam == 36


class TestInfraConfig:

    def test_nats_servers_from_host_and_port(self):
        config = InfraConfig(nats_host="nats", nats_port=4223)
        assert config.nats_servers == "nats://nats:4223"

    def test_nats_url_wins(self):
        config = InfraConfig(nats_url="nats://elsewhere:4222")
        assert config.nats_servers == "nats://elsewhere:4222"

    def test_postgres_dsn(self):
        config = InfraConfig(postgres_user="u", postgres_password="p", postgres_host="db", postgres_db="denim")
        assert config.postgres_dsn == "postgresql://u:p@db:5432/denim"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("POSTGRES_SCHEMA", "denim_test")
        monkeypatch.setenv("NATS_ENABLED", "true")
        config = InfraConfig.from_env()
        assert config.postgres_schema == "denim_test"
        assert config.nats_enabled is True


class TestDenimOpsConfig:

    def test_from_env_combines_sub_configs(self, monkeypatch):
        monkeypatch.setenv("ENV", "testing")
        monkeypatch.setenv("SERVICE_NAME", "denim_ops_test")
        config = DenimOpsConfig.from_env()
        assert config.environment == "testing"
        assert config.debug is False
        assert config.logging.service_name == "denim_ops_test"
        assert isinstance(config.allocation, AllocationConfig)

    def test_reload_settings(self, monkeypatch):
        monkeypatch.setenv("DENIM_ORDER_PRIORITY", "URGENT")
        settings = reload_settings()
        assert settings.allocation.order_priority == "URGENT"
        monkeypatch.delenv("DENIM_ORDER_PRIORITY")
        reload_settings()


class TestLoggingConfig:

    def test_development_logs_debug(self, monkeypatch):
        monkeypatch.setenv("ENV", "development")
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        assert LoggingConfig.from_env().log_level == "DEBUG"

    def test_driver_loggers_from_env(self, monkeypatch):
        monkeypatch.setenv("DRIVER_LOGGERS", "asyncpg, nats ,urllib3")
        monkeypatch.setenv("DRIVER_LOG_LEVEL", "ERROR")
        monkeypatch.setenv("LOG_CONSOLE", "false")
        config = LoggingConfig.from_env()
        assert config.driver_loggers == ["asyncpg", "nats", "urllib3"]
        assert config.driver_log_level == "ERROR"
        assert config.enable_console is False
