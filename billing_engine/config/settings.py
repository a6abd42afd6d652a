"""
Configuration management for the billing engine.
"""

import re
from decimal import Decimal
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BillingSystemConfig(BaseSettings):
    """Application settings for the billing engine."""

    # Ledger storage
    ledger_dir: str = Field(default="./ledger", alias="LEDGER_DIR")

    # Billing defaults applied to every billing run
    default_currency: str = Field(default="USD", alias="DEFAULT_CURRENCY")
    default_tax_rate: Decimal = Field(default=Decimal("0"), alias="DEFAULT_TAX_RATE")
    default_discount_rate: Decimal = Field(
        default=Decimal("0"), alias="DEFAULT_DISCOUNT_RATE"
    )
    payment_terms_days: int = Field(default=30, ge=0, alias="PAYMENT_TERMS_DAYS")
    late_fee_percentage: Decimal = Field(
        default=Decimal("1.5"), alias="LATE_FEE_PERCENTAGE"
    )
    invoice_number_prefix: str = Field(default="INV", alias="INVOICE_NUMBER_PREFIX")

    # Application Configuration
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Processing Configuration
    scheduler_max_workers: int = Field(default=4, ge=1, alias="SCHEDULER_MAX_WORKERS")
    max_retries: int = Field(default=3, ge=0, alias="MAX_RETRIES")
    retry_delay: float = Field(default=1.0, ge=0, alias="RETRY_DELAY")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        populate_by_name=True,
    )

    @field_validator("default_currency")
    @classmethod
    def validate_currency(cls, v):
        """Ensure currency is a three-letter code."""
        code = v.strip().upper()
        if not re.fullmatch(r"[A-Z]{3}", code):
            raise ValueError(f"Currency must be a three-letter ISO code, got {v!r}")
        return code

    @field_validator("default_tax_rate", "default_discount_rate", "late_fee_percentage")
    @classmethod
    def validate_percentage(cls, v):
        """Ensure percentages fall within 0-100."""
        if not Decimal("0") <= v <= Decimal("100"):
            raise ValueError(f"Percentage must be between 0 and 100, got {v}")
        return v

    @field_validator("invoice_number_prefix")
    @classmethod
    def validate_prefix(cls, v):
        """Ensure the invoice prefix is a short alphanumeric token."""
        if not re.fullmatch(r"[A-Za-z0-9]{1,10}", v):
            raise ValueError(f"Invoice number prefix must be alphanumeric, got {v!r}")
        return v.upper()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Ensure environment is valid."""
        valid_envs = ["development", "testing", "production"]
        if v.lower() not in valid_envs:
            raise ValueError(f"Environment must be one of: {valid_envs}")
        return v.lower()


def load_config(env_file: Optional[str] = None) -> BillingSystemConfig:
    """Load configuration from environment variables and .env file."""
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    return BillingSystemConfig()


# Global configuration instance
_config: Optional[BillingSystemConfig] = None


def get_config() -> BillingSystemConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config(env_file: Optional[str] = None) -> BillingSystemConfig:
    """Reload configuration (useful for testing)."""
    global _config
    _config = load_config(env_file)
    return _config
