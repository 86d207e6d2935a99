"""
Tests for environment configuration and structured logging
"""

import json
import logging
import sys
import pytest
from decimal import Decimal
from datetime import date

from credit_engine import config as config_module
from credit_engine.config import CreditEngineConfig, get_config, reload_config
from credit_engine.credits import create_credit
from credit_engine.currency import Money, Currency
from credit_engine.ledger import due_within
from credit_engine.logging_config import (
    JSONFormatter, setup_logging, setup_logging_from_config, log_action
)


@pytest.fixture
def clean_config(monkeypatch):
    for name in ("DEFAULT_CURRENCY", "UPCOMING_DAYS_AHEAD", "RATE_PRECISION", "LOG_FORMAT"):
        monkeypatch.delenv(f"CREDIT_ENGINE_{name}", raising=False)
    yield monkeypatch
    monkeypatch.undo()
    reload_config()


class TestConfig:
    
    def test_defaults(self):
        """Test configuration defaults"""
        cfg = CreditEngineConfig()
        assert cfg.default_schedule_type == "annuity"
        assert cfg.rate_solver_max_iterations == 200
        assert cfg.log_file is None
    
    def test_environment_override(self, clean_config):
        """Test that CREDIT_ENGINE_ variables override defaults"""
        clean_config.setenv("CREDIT_ENGINE_DEFAULT_CURRENCY", "USD")
        clean_config.setenv("CREDIT_ENGINE_UPCOMING_DAYS_AHEAD", "30")
        cfg = reload_config()
        
        assert cfg.default_currency == "USD"
        assert cfg.upcoming_days_ahead == 30
        assert get_config() is cfg
        assert config_module.config is cfg
    
    def test_window_read_at_call_time(self, clean_config):
        """Test that due_within reads the reminder window when called"""
        credit = create_credit('Loan', principal=Money(Decimal('1200'), Currency.RUB),
                               annual_rate_percent=Decimal('0'), term_months=12,
                               start_date=date(2024, 1, 10))
        today = date(2024, 1, 1)
        
        clean_config.setenv("CREDIT_ENGINE_UPCOMING_DAYS_AHEAD", "5")
        reload_config()
        assert due_within([credit], today=today) == []
        
        clean_config.setenv("CREDIT_ENGINE_UPCOMING_DAYS_AHEAD", "40")
        reload_config()
        assert [d.month_number for d in due_within([credit], today=today)] == [1, 2]


class TestJSONFormatter:
    """Test structured log output"""
    
    def _record(self, **attributes):
        record = logging.LogRecord("credit_engine.ledger", logging.INFO, __file__, 10,
                                   "Recorded payment %s", ("RUB 100.00",), None)
        for key, value in attributes.items():
            setattr(record, key, value)
        return record
    
    def test_basic_fields(self):
        """Test the fields present on every log entry"""
        entry = json.loads(JSONFormatter().format(self._record()))
        
        assert entry["level"] == "INFO"
        assert entry["logger"] == "credit_engine.ledger"
        assert entry["message"] == "Recorded payment RUB 100.00"
        assert "credit_id" not in entry
        assert "timestamp" in entry
    
    def test_structured_fields(self):
        """Test credit_id, action and extra on log entries"""
        record = self._record(credit_id="credit-1", action="apply_payment", extra={"month": 3})
        entry = json.loads(JSONFormatter().format(record))
        
        assert entry["credit_id"] == "credit-1"
        assert entry["action"] == "apply_payment"
        assert entry["extra"] == {"month": 3}
    
    def test_exception_included(self):
        """Test that tracebacks are written to the entry"""
        try:
            raise ValueError("boom")
        except ValueError:
            record = self._record()
            record.exc_info = sys.exc_info()
        
        entry = json.loads(JSONFormatter().format(record))
        assert "ValueError: boom" in entry["exception"]


class TestSetupLogging:
    
    def test_json_to_file(self, tmp_path):
        """Test JSON logging to a file through log_action"""
        log_file = tmp_path / "engine.log"
        logger = setup_logging(level="DEBUG", log_format="json",
                               logger_name="credit_engine.test_file", log_file=str(log_file))
        log_action(logger, "info", "Migrated credit", credit_id="c-1", action="migrate",
                   extra={"items": 12})
        for handler in logger.handlers:
            handler.flush()
        
        entry = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert entry["message"] == "Migrated credit"
        assert entry["credit_id"] == "c-1"
        assert entry["extra"] == {"items": 12}
        assert not logger.propagate
    
    def test_replaces_handlers(self):
        """Test that repeated setup does not stack handlers"""
        logger = setup_logging(logger_name="credit_engine.test_handlers")
        logger = setup_logging(logger_name="credit_engine.test_handlers", log_format="text")
        
        assert len(logger.handlers) == 1
        assert not isinstance(logger.handlers[0].formatter, JSONFormatter)
    
    def test_log_action_respects_level(self, tmp_path):
        """Test that log_action skips disabled levels"""
        log_file = tmp_path / "quiet.log"
        logger = setup_logging(level="WARNING", logger_name="credit_engine.test_quiet",
                               log_file=str(log_file))
        log_action(logger, "info", "Not written")
        for handler in logger.handlers:
            handler.flush()
        assert log_file.read_text() == ""
    
    def test_from_config(self):
        """Test logging setup from configuration values"""
        cfg = CreditEngineConfig(log_level="ERROR", log_format="text")
        logger = setup_logging_from_config(cfg)
        
        assert logger.name == "credit_engine"
        assert logger.level == logging.ERROR
        setup_logging_from_config(CreditEngineConfig(log_level="WARNING"))
