"""
screenbot/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (DB URI, provider credentials, thresholds)
- Validates configuration on startup
- Builds the immutable config values injected into the screening core
"""

from dataclasses import dataclass
from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_HANDOFF_LINK = (
    "https://wa.me/573022379539?text=Hi%20Maria%2C%20I%20passed%20screening"
    "%20and%20would%20like%20to%20schedule%20my%20interview."
)


@dataclass(frozen=True)
class ScreeningConfig:
    """Thresholds and hand-off settings consumed by the state machine and orchestrator."""
    min_weekly_hours: int = 15
    part_time_max_hours: int = 29
    low_availability_max_hours: int = 0
    age_cutoff: int = 35
    handoff_link: str = DEFAULT_HANDOFF_LINK


@dataclass(frozen=True)
class OutboundConfig:
    """Pacing and retry settings for the outbound channel."""
    min_delay_seconds: float = 2.0
    max_delay_seconds: float = 4.0
    max_attempts: int = 4
    quick_replies_enabled: bool = True


@dataclass(frozen=True)
class GuardConfig:
    """Per-user rate limit window."""
    rate_limit_max: int = 5
    rate_limit_window_ms: int = 10_000


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # MongoDB (TTL key/value store)
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="screenbot",
        description="MongoDB database name"
    )

    # Messaging provider
    MESSAGING_PROVIDER: Literal["greenapi", "twilio"] = Field(
        default="greenapi",
        description="Which WhatsApp provider sends outbound messages"
    )
    GREENAPI_ID_INSTANCE: Optional[str] = Field(
        default=None,
        description="Green-API instance id"
    )
    GREENAPI_API_TOKEN: Optional[str] = Field(
        default=None,
        description="Green-API instance token"
    )
    GREENAPI_BASE_URL: str = Field(
        default="https://api.green-api.com",
        description="Green-API REST base URL"
    )
    TWILIO_ACCOUNT_SID: Optional[str] = Field(default=None)
    TWILIO_AUTH_TOKEN: Optional[str] = Field(default=None)
    TWILIO_WHATSAPP_NUMBER: Optional[str] = Field(
        default=None,
        description="Sender address, e.g. whatsapp:+14155238886"
    )
    QUICK_REPLIES_ENABLED: bool = Field(
        default=True,
        description="Send button-style quick replies when the provider supports them"
    )
    PROVIDER_TIMEOUT_SECONDS: float = Field(default=10.0)

    # Result hand-off
    RESULT_WEBHOOK_URL: Optional[str] = Field(
        default=None,
        description="Optional URL receiving screening results (fire-and-forget)"
    )
    HANDOFF_LINK: str = Field(
        default=DEFAULT_HANDOFF_LINK,
        description="Link sent to candidates who pass screening"
    )

    # Screening thresholds
    MIN_WEEKLY_HOURS: int = Field(default=15, ge=0)
    PART_TIME_MAX_HOURS: int = Field(default=29, ge=0)
    LOW_AVAILABILITY_MAX_HOURS: int = Field(default=0, ge=0)
    AGE_CUTOFF: int = Field(
        default=35,
        description="Candidates with age >= this value are declined"
    )

    # Rate limiting
    RATE_LIMIT_MAX: int = Field(
        default=5,
        ge=1,
        description="Maximum messages per user per window"
    )
    RATE_LIMIT_WINDOW_MS: int = Field(
        default=10_000,
        ge=1,
        description="Sliding window length in milliseconds"
    )

    # Outbound pacing and retry
    SEND_DELAY_MIN_SECONDS: float = Field(default=2.0, ge=0)
    SEND_DELAY_MAX_SECONDS: float = Field(default=4.0, ge=0)
    SEND_MAX_ATTEMPTS: int = Field(default=4, ge=1)

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="",
        description="API route prefix"
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown LOG_LEVEL: {v}")
        return level

    @model_validator(mode="after")
    def validate_send_delay(self):
        """Pacing bounds must form a valid range."""
        if self.SEND_DELAY_MIN_SECONDS > self.SEND_DELAY_MAX_SECONDS:
            raise ValueError("SEND_DELAY_MIN_SECONDS must not exceed SEND_DELAY_MAX_SECONDS")
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    def screening_config(self) -> ScreeningConfig:
        return ScreeningConfig(
            min_weekly_hours=self.MIN_WEEKLY_HOURS,
            part_time_max_hours=self.PART_TIME_MAX_HOURS,
            low_availability_max_hours=self.LOW_AVAILABILITY_MAX_HOURS,
            age_cutoff=self.AGE_CUTOFF,
            handoff_link=self.HANDOFF_LINK,
        )

    def outbound_config(self) -> OutboundConfig:
        return OutboundConfig(
            min_delay_seconds=self.SEND_DELAY_MIN_SECONDS,
            max_delay_seconds=self.SEND_DELAY_MAX_SECONDS,
            max_attempts=self.SEND_MAX_ATTEMPTS,
            quick_replies_enabled=self.QUICK_REPLIES_ENABLED,
        )

    def guard_config(self) -> GuardConfig:
        return GuardConfig(
            rate_limit_max=self.RATE_LIMIT_MAX,
            rate_limit_window_ms=self.RATE_LIMIT_WINDOW_MS,
        )


# Global settings instance
settings = Settings()


def validate_settings(current: Optional[Settings] = None) -> bool:
    """
    Validates critical settings on application startup.
    Raises ConfigurationError if any required setting is missing or invalid.
    """
    from screenbot.core.exceptions import ConfigurationError

    current = current or settings
    errors = []

    if not current.MONGODB_URL:
        errors.append("MONGODB_URL is required")

    # Credentials are only mandatory outside development
    if not current.is_development:
        if current.MESSAGING_PROVIDER == "greenapi":
            if not current.GREENAPI_ID_INSTANCE:
                errors.append("GREENAPI_ID_INSTANCE is required")
            if not current.GREENAPI_API_TOKEN:
                errors.append("GREENAPI_API_TOKEN is required")
        else:
            if not current.TWILIO_ACCOUNT_SID:
                errors.append("TWILIO_ACCOUNT_SID is required")
            if not current.TWILIO_AUTH_TOKEN:
                errors.append("TWILIO_AUTH_TOKEN is required")
            if not current.TWILIO_WHATSAPP_NUMBER:
                errors.append("TWILIO_WHATSAPP_NUMBER is required")

    if errors:
        raise ConfigurationError(
            f"Configuration validation failed: {', '.join(errors)}",
            details=errors,
        )

    return True
