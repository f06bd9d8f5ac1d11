"""Engine configuration management using Pydantic Settings."""

import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError
from .models.national_pension import NationalPensionConfig
from .models.pension_tax import PensionTaxRules
from .models.ratios import BandTables, ScoringRules
from .models.scenarios import DEFAULT_OUTLOOKS, DEFAULT_RETURN_SCENARIOS

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Application Environment
    app_env: str = Field(default="development", alias="APP_ENV")

    # Logging Configuration
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Assumptions file (JSON) overriding pension constants and ratio bands
    assumptions_file: Optional[str] = Field(default=None, alias="ASSUMPTIONS_FILE")

    # Household defaults
    currency_exponent: int = Field(default=0, ge=0, le=4, alias="CURRENCY_EXPONENT")
    life_expectancy: int = Field(default=90, ge=30, le=120, alias="LIFE_EXPECTANCY")
    pension_start_age: int = Field(default=65, ge=30, le=100, alias="PENSION_START_AGE")
    default_retirement_age: int = Field(default=60, ge=30, le=100, alias="DEFAULT_RETIREMENT_AGE")
    post_retirement_expense_ratio: Decimal = Field(
        default=Decimal("0.7"), gt=0, le=2, alias="POST_RETIREMENT_EXPENSE_RATIO"
    )
    pension_payout_years: int = Field(default=20, ge=1, le=60, alias="PENSION_PAYOUT_YEARS")
    default_amortization_months: int = Field(
        default=360, ge=1, le=600, alias="DEFAULT_AMORTIZATION_MONTHS"
    )

    # Projection defaults
    default_return_pct: Decimal = Field(
        default=Decimal("5"), ge=-100, le=100, alias="DEFAULT_RETURN_PCT"
    )
    inflation_rate_pct: Decimal = Field(
        default=Decimal("2"), ge=-100, le=100, alias="INFLATION_RATE_PCT"
    )
    scenario_max_workers: int = Field(default=1, ge=1, le=64, alias="SCENARIO_MAX_WORKERS")

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v):
        """Validate application environment."""
        allowed_envs = {"development", "testing", "production"}
        if v not in allowed_envs:
            raise ValueError(f"APP_ENV must be one of {allowed_envs}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed_levels:
            raise ValueError(f"LOG_LEVEL must be one of {allowed_levels}")
        return v.upper()


class Assumptions(BaseModel):
    """Validated lookup tables and constants used by the engine."""

    model_config = ConfigDict(frozen=True)

    national_pension: NationalPensionConfig = Field(default_factory=NationalPensionConfig)
    bands: BandTables = Field(default_factory=BandTables)
    tax_rules: PensionTaxRules = Field(default_factory=PensionTaxRules)
    outlooks: Tuple[Tuple[str, Decimal], ...] = Field(default=DEFAULT_OUTLOOKS, min_length=1)
    return_scenarios: Tuple[Tuple[str, Decimal], ...] = Field(
        default=DEFAULT_RETURN_SCENARIOS, min_length=1
    )
    scoring: ScoringRules = Field(default_factory=ScoringRules)

    def for_currency(self, exponent: int) -> "Assumptions":
        """Copy whose major-unit amounts convert to Money with ``exponent`` digits."""
        return self.model_copy(
            update={
                "national_pension": self.national_pension.for_currency(exponent),
                "tax_rules": self.tax_rules.for_currency(exponent),
            }
        )


def get_settings(env_file: Optional[str] = None) -> Settings:
    """Get engine settings instance."""
    if env_file is not None:
        return Settings(_env_file=env_file)
    return Settings()


def load_assumptions(settings: Settings) -> Assumptions:
    """
    Load assumptions, applying the overrides in ``settings.assumptions_file``.

    Args:
        settings: Engine settings

    Returns:
        Validated Assumptions

    Raises:
        ConfigurationError: If the file is missing, unreadable or malformed
    """
    if settings.assumptions_file is None:
        return Assumptions().for_currency(settings.currency_exponent)

    path = Path(settings.assumptions_file)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigurationError(f"Assumptions file not found: {path}") from e
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Could not read assumptions file {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Assumptions file {path} must contain a JSON object")

    try:
        assumptions = Assumptions.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid assumptions in {path}: {e}") from e

    logger.info(f"Loaded assumptions from {path}")
    return assumptions.for_currency(settings.currency_exponent)


# Global settings instance - will be created when first requested
_settings: Optional[Settings] = None


def get_global_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = get_settings()
    return _settings


def reset_global_settings() -> None:
    """Reset global settings instance (useful for testing)."""
    global _settings
    _settings = None
