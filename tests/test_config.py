"""
Tests for configuration and structured logging
"""

import io
import json
import logging

import pytest
from pydantic import ValidationError

from bank_ledger import config as config_module
from bank_ledger.config import LedgerConfig, get_config, reload_config
from bank_ledger.logging_config import JSONFormatter, setup_logging, get_logger, log_action


class TestLedgerConfig:
    """Test configuration defaults, validation and environment overrides"""

    def test_defaults(self):
        """Test default values"""
        cfg = LedgerConfig()
        assert cfg.bank_name == "SBI"
        assert cfg.account_number_length == 12
        assert cfg.savings_min_balance == "1000.00"
        assert cfg.auto_checkpoint is True

    def test_environment_override(self, monkeypatch):
        """Test LEDGER_ prefixed environment variables"""
        monkeypatch.setenv("LEDGER_BANK_NAME", "HDFC")
        monkeypatch.setenv("LEDGER_ACCOUNT_NUMBER_LENGTH", "10")
        monkeypatch.setenv("LEDGER_STORAGE_BACKEND", "MEMORY")

        cfg = LedgerConfig()
        assert cfg.bank_name == "HDFC"
        assert cfg.account_number_length == 10
        assert cfg.storage_backend == "memory"

    def test_invalid_values(self):
        """Test validators reject bad settings"""
        with pytest.raises(ValidationError):
            LedgerConfig(storage_backend="postgres")
        with pytest.raises(ValidationError):
            LedgerConfig(log_format="xml")
        with pytest.raises(ValidationError):
            LedgerConfig(account_number_length=0)
        with pytest.raises(ValidationError):
            LedgerConfig(savings_min_balance="-5")
        with pytest.raises(ValidationError):
            LedgerConfig(default_annual_interest_percent="abc")

    def test_reload_config(self, monkeypatch):
        """Test that reload picks up new environment"""
        original = get_config()
        monkeypatch.setenv("LEDGER_PASSWORD_MIN_LENGTH", "12")
        try:
            reloaded = reload_config()
            assert reloaded.password_min_length == 12
            assert get_config() is reloaded
        finally:
            config_module.config = original


class TestLogging:
    """Test structured log output"""

    def setup_method(self):
        self.stream = io.StringIO()
        self.logger = logging.getLogger("bank_ledger.test_logging")
        self.handler = logging.StreamHandler(self.stream)
        self.handler.setFormatter(JSONFormatter())
        self.logger.addHandler(self.handler)
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False

    def teardown_method(self):
        self.logger.removeHandler(self.handler)

    def test_log_action_fields(self):
        """Test that structured fields appear in the JSON record"""
        log_action(
            self.logger, "warning", "Withdrawal rejected",
            action="withdraw", resource="account:123", account_no="123",
            error_code="insufficient_funds", extra={"amount": "10.00"}
        )

        entry = json.loads(self.stream.getvalue())
        assert entry["level"] == "WARNING"
        assert entry["message"] == "Withdrawal rejected"
        assert entry["action"] == "withdraw"
        assert entry["account_no"] == "123"
        assert entry["error_code"] == "insufficient_funds"
        assert entry["extra"] == {"amount": "10.00"}
        assert "username" not in entry

    def test_log_action_respects_level(self):
        """Test that disabled levels produce nothing"""
        self.logger.setLevel(logging.ERROR)
        log_action(self.logger, "info", "ignored", action="noop")
        assert self.stream.getvalue() == ""

    def test_setup_logging_text_to_file(self, tmp_path):
        """Test plain-text file logging"""
        log_file = tmp_path / "ledger.log"
        logger = setup_logging(level="DEBUG", log_format="text", log_file=str(log_file),
                               logger_name="bank_ledger.test_setup")
        logger.info("hello ledger")
        for handler in logger.handlers:
            handler.flush()

        assert "hello ledger" in log_file.read_text()
        assert logger.propagate is False
        assert get_logger("bank_ledger.test_setup") is logger

        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            handler.close()
