"""Tests for settings and logging setup."""

import logging

import pytest

from agencyflow.core.config import Settings
from agencyflow.core.logger import setup_logger


class TestSettings:
    """Tests for environment-driven settings."""

    def test_cors_origins_list(self):
        settings = Settings(cors_origins="https://app.example.com, https://portal.example.com,")
        assert settings.cors_origins_list == ["https://app.example.com", "https://portal.example.com"]

    def test_celery_falls_back_to_redis(self):
        settings = Settings(redis_url="redis://cache:6379/2")
        assert settings.celery_broker == "redis://cache:6379/2"
        assert settings.celery_backend == "redis://cache:6379/2"

    def test_explicit_broker(self):
        settings = Settings(redis_url="redis://cache:6379/2", celery_broker_url="amqp://mq//")
        assert settings.celery_broker == "amqp://mq//"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("OUTBOX_MAX_ATTEMPTS", "9")
        monkeypatch.setenv("METERED_OPERATION_COST", "2")
        settings = Settings()
        assert settings.outbox_max_attempts == 9
        assert settings.metered_operation_cost == 2


class TestSetupLogger:
    """Tests for logger configuration."""

    def test_console_handler(self):
        logger = setup_logger("agencyflow.test_console", level="debug", file_logging=False)
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_repeat_calls_add_no_handlers(self):
        setup_logger("agencyflow.test_repeat", level="INFO", file_logging=False)
        logger = setup_logger("agencyflow.test_repeat", level="WARNING", file_logging=False)
        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING

    def test_file_logging(self, tmp_path):
        logger = setup_logger(
            "agencyflow.test_file", log_dir=str(tmp_path), level="INFO",
            file_logging=True, console_logging=False,
        )
        logger.info("campaign archived")
        for handler in logger.handlers:
            handler.flush()

        assert "campaign archived" in (tmp_path / "agencyflow.test_file.log").read_text()

    def test_invalid_level(self):
        with pytest.raises(ValueError):
            setup_logger("agencyflow.test_invalid", level="LOUD")

    def test_client_libraries_quieted(self):
        setup_logger("agencyflow.test_quiet", level="DEBUG", file_logging=False)
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
