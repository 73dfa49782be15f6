"""Tests for logging setup and SQL parameter hiding."""

import logging
from collections.abc import Iterator

import pytest
import structlog
from structlog.testing import capture_logs

from inkwell.core.logging_config import configure_logging


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    sql = logging.getLogger("sqlalchemy.engine")
    root_level, sql_level = root.level, sql.level
    yield
    root.setLevel(root_level)
    sql.setLevel(sql_level)
    structlog.reset_defaults()


class TestConfigureLogging:
    def test_applies_level_to_root_logger(self):
        level = configure_logging("DEBUG")

        assert level == logging.DEBUG
        assert logging.getLogger().level == logging.DEBUG

    def test_level_name_is_case_insensitive(self):
        assert configure_logging("warning") == logging.WARNING

    def test_defaults_to_settings_level(self, monkeypatch):
        from inkwell.core.config import settings

        monkeypatch.setattr(settings, "log_level", "ERROR")

        assert configure_logging() == logging.ERROR

    def test_sql_engine_logger_stays_quiet_under_debug(self):
        configure_logging("DEBUG")

        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_structlog_filters_below_level(self):
        configure_logging("WARNING")

        with capture_logs() as logs:
            structlog.get_logger().info("dropped")
            structlog.get_logger().warning("kept")

        assert [entry["event"] for entry in logs] == ["kept"]

    def test_unknown_level_rejected(self):
        with pytest.raises(ValueError, match="Unknown log level"):
            configure_logging("LOUD")


class TestEngineParameterHiding:
    def test_engine_hides_bound_parameters(self):
        from inkwell.core.database import engine

        assert engine.sync_engine.hide_parameters is True
        assert engine.sync_engine.echo is False
