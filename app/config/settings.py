"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from decimal import Decimal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Redis (Dramatiq broker)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Logging
    log_level: str = "INFO"
    log_file: str = "logs/ledger.log"
    log_rotation: str = "1 day"
    log_retention: str = "7 days"

    # Health check server
    health_check_port: int = Field(
        default=8080,
        gt=0,
        lt=65536,
        description="Port for the worker health endpoint",
    )

    # Scheduling
    business_timezone: str = Field(
        default="Asia/Shanghai",
        description="Timezone that defines the business day for dividends",
    )
    daily_dividend_hour: int = Field(
        default=0,
        ge=0,
        le=23,
        description="Local hour when the daily dividend pass runs",
    )
    monthly_dividend_day: int = Field(
        default=1,
        ge=1,
        le=28,
        description="Day of month when the monthly dividend pass runs",
    )
    expiry_batch_size: int = Field(
        default=500,
        gt=0,
        description="Max positions matured per lifecycle run",
    )
    expiry_max_attempts: int = Field(
        default=5,
        gt=0,
        description="Failed expiry attempts before a position is parked",
    )

    # Reconciliation
    balance_epsilon: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        description="Drift tolerance between stored and recomputed balance",
    )
    reconcile_include_promo_credits: bool = Field(
        default=False,
        description="Count promo credits as an income source when reconciling",
    )
    reconcile_interval_hours: int = Field(
        default=24,
        gt=0,
        description="Interval of the periodic report-only reconciliation",
    )

    # Emergency stops
    emergency_stop_expiry: bool = Field(
        default=False,
        description="Skip the lifecycle sweep (positions stay active)",
    )
    emergency_stop_dividends: bool = Field(
        default=False,
        description="Skip dividend passes",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(
            ('postgresql://', 'postgresql+asyncpg://', 'sqlite+aiosqlite://')
        ):
            raise ValueError(
                'DATABASE_URL must start with postgresql+asyncpg:// '
                'or sqlite+aiosqlite://'
            )
        return v

    @field_validator('business_timezone')
    @classmethod
    def validate_business_timezone(cls, v: str) -> str:
        """Validate timezone name."""
        try:
            ZoneInfo(v)
        except ZoneInfoNotFoundError as e:
            raise ValueError(f'Unknown timezone: {v}') from e
        return v

    @property
    def async_database_url(self) -> str:
        """Database URL with the async driver."""
        if self.database_url.startswith('postgresql://'):
            return self.database_url.replace(
                'postgresql://', 'postgresql+asyncpg://', 1
            )
        return self.database_url


# Global settings instance
settings = Settings()
