from decimal import Decimal
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]

# Thresholds are configured in percent and compared as 18-decimal fractions.
PERCENT_SCALE = 10 ** 16


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    log_level: str = Field(default="INFO", description="Logging level")

    # Chain defaults
    default_chain_id: int = Field(default=1, description="Chain used before the wallet reports one")

    # Order economics
    order_execute_gas_limit: int = Field(
        default=400_000,
        ge=0,
        description="Gas units charged when a limit order is executed",
    )
    slippage_warning_percent: int = Field(
        default=30,
        ge=0,
        description="Unfavourable deviation from the market rate that raises a slippage warning",
    )
    execution_warning_percent: int = Field(
        default=3,
        ge=0,
        description="Deviation of the gas-adjusted execution rate that raises an execution warning",
    )
    native_balance_reserve: Decimal = Field(
        default=Decimal("0.1"),
        description="Native amount left untouched when the user selects their maximum input",
    )

    # Gas price feed
    gas_price_api_url: str = Field(
        default="https://www.gasnow.org/api/v3/gas/price",
        description="JSON endpoint returning gas prices in wei under data.<speed>",
    )
    gas_price_speed: str = Field(default="fast", description="Gas price tier to read")
    gas_price_timeout_seconds: int = Field(default=10, description="Gas price request timeout")

    # Market quotes
    relay_base_url: str = Field(
        default="",
        description="Override the default Relay API base URL",
    )
    relay_quote_user: str = Field(
        default="0x000000000000000000000000000000000000dEaD",
        description="Address quoted on behalf of when no wallet is connected",
    )
    quote_timeout_seconds: int = Field(default=20, description="Quote request timeout")

    # Persistence
    order_store_path: str = Field(
        default="",
        description="JSON file backing placed orders; empty keeps them in memory",
    )

    @property
    def slippage_warning_threshold(self) -> int:
        return self.slippage_warning_percent * PERCENT_SCALE

    @property
    def execution_warning_threshold(self) -> int:
        return self.execution_warning_percent * PERCENT_SCALE


# Global settings instance
settings = Settings()
