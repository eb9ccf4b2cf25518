"""
Configuration management using pydantic-settings.

Loads configuration from environment variables and .env file.
"""
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from odds_engine.config.constants import (
    DEFAULT_STAKE,
    DROP_THRESHOLD_PRESETS,
    QUICK_STAKE_AMOUNTS,
    OddsFormat,
)


class OddsFormatSettings(BaseSettings):
    """Settings for odds display."""

    model_config = SettingsConfigDict(env_prefix="ODDS_")

    default_format: OddsFormat = Field(
        default=OddsFormat.DECIMAL,
        description="Format odds are rendered in when the user has no preference",
    )


class ArbitrageSettings(BaseSettings):
    """Settings for sure bet detection."""

    model_config = SettingsConfigDict(env_prefix="ARB_")

    default_stake: float = Field(
        default=100.0,
        gt=0,
        description="Total stake distributed across outcomes by default",
    )
    min_profit_percent: float = Field(
        default=0.0,
        description="Minimum profit percentage for an opportunity to be reported",
    )
    excluded_bookmakers: list[str] = Field(
        default_factory=list,
        description="Bookmakers to exclude from arbitrage scanning",
    )


class MovementSettings(BaseSettings):
    """Settings for dropping odds detection."""

    model_config = SettingsConfigDict(env_prefix="DROP_")

    threshold_presets: list[float] = Field(
        default_factory=lambda: list(DROP_THRESHOLD_PRESETS),
        description="Drop percentages offered as filters",
    )
    default_threshold: float = Field(
        default=DROP_THRESHOLD_PRESETS[0],
        description="Drop percentage used when no filter is chosen",
    )
    default_page_size: int = Field(default=20, gt=0)

    @model_validator(mode="after")
    def validate_default_threshold(self) -> "MovementSettings":
        if self.default_threshold not in self.threshold_presets:
            raise ValueError(
                f"default_threshold must be one of {self.threshold_presets}"
            )
        return self


class BetSlipSettings(BaseSettings):
    """Settings for the betslip."""

    model_config = SettingsConfigDict(env_prefix="SLIP_")

    default_stake: str = Field(
        default=DEFAULT_STAKE,
        description="Stake pre-filled when a selection is added",
    )
    quick_stake_amounts: list[str] = Field(
        default_factory=lambda: list(QUICK_STAKE_AMOUNTS),
        description="Amounts offered as one-click stake buttons",
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="INFO")
    debug: bool = Field(default=False)

    # Sub-settings
    odds: OddsFormatSettings = Field(default_factory=OddsFormatSettings)
    arbitrage: ArbitrageSettings = Field(default_factory=ArbitrageSettings)
    movement: MovementSettings = Field(default_factory=MovementSettings)
    betslip: BetSlipSettings = Field(default_factory=BetSlipSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]
        level = v.upper()
        if level not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return level


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
