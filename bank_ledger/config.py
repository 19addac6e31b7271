"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerConfig(BaseSettings):
    """Bank ledger configuration"""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage configuration
    storage_backend: str = "sqlite"  # sqlite or memory
    database_path: str = "bank_ledger.db"
    auto_checkpoint: bool = True  # Checkpoint after every mutating call

    # Business rules configuration
    bank_name: str = "SBI"
    account_number_length: int = 12
    savings_min_balance: str = "1000.00"
    default_annual_interest_percent: str = "3.5"

    # Security configuration
    password_min_length: int = 8

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stderr

    @field_validator("storage_backend")
    @classmethod
    def _check_backend(cls, value: str) -> str:
        value = value.lower()
        if value not in ("sqlite", "memory"):
            raise ValueError("storage_backend must be 'sqlite' or 'memory'")
        return value

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return value

    @field_validator("account_number_length", "password_min_length")
    @classmethod
    def _check_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    @field_validator("savings_min_balance", "default_annual_interest_percent")
    @classmethod
    def _check_decimal(cls, value: str) -> str:
        try:
            parsed = Decimal(value)
        except InvalidOperation:
            raise ValueError(f"'{value}' is not a decimal number")
        if not parsed.is_finite() or parsed < 0:
            raise ValueError(f"'{value}' must be a non-negative number")
        return value


# Global configuration instance
config = LedgerConfig()


def get_config() -> LedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LedgerConfig:
    """Reload configuration from environment"""
    global config
    config = LedgerConfig()
    return config
