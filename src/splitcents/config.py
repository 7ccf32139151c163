"""Configuration management for splitcents."""

from decimal import Decimal
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError
from .money import SUPPORTED_CURRENCIES


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SPLITCENTS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Display
    default_currency: str = "USD"

    # Validation tolerances
    exact_amount_tolerance_cents: int = 1  # absorbs upstream float->cents drift
    percentage_tolerance: Decimal = Decimal("0.01")

    # Settlement planning
    min_settlement_cents: int = 0  # drop merged payments smaller than this

    # Default ledger file for the CLI and MCP server
    ledger_path: Path | None = None

    @field_validator("default_currency")
    @classmethod
    def _supported_currency(cls, value: str) -> str:
        code = value.upper()
        if code not in SUPPORTED_CURRENCIES:
            raise ValueError(
                f"Unsupported currency {value!r}; "
                f"expected one of {', '.join(SUPPORTED_CURRENCIES)}"
            )
        return code

    @field_validator("exact_amount_tolerance_cents", "min_settlement_cents")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must be >= 0")
        return value


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check your SPLITCENTS_* environment "
            f"variables or .env file. See .env.example for reference.\n"
            f"Error: {e}"
        ) from e
