"""Configuration schema models using Pydantic."""

from enum import Enum

from pydantic import BaseModel, Field, field_validator

from .duration import DurationParseError, parse_duration


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


def _validate_duration(value: str) -> str:
    try:
        parse_duration(value)
    except DurationParseError as e:
        raise ValueError(str(e)) from e
    return value


class FeedConfig(BaseModel):
    """Upstream listing feed settings."""

    url: str = Field("http://opencpa.castman.net/", min_length=1, description="Feed page URL")
    timeout_seconds: int = Field(
        30, ge=5, le=300, description="Hard timeout for the feed request (seconds)"
    )
    user_agent: str = Field("jobnotify/0.1", min_length=1)

    @field_validator("url", "user_agent")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Field cannot be empty or whitespace-only")
        return stripped


class AccessibilityRules(BaseModel):
    """Phrases used to derive the accessibility-certificate flag.

    A listing requires the certificate when its eligibility text contains
    ``requirement_phrase`` and the phrase is not followed by
    ``preference_qualifier`` within ``preference_window`` characters, or when
    its title contains ``requirement_phrase``.
    """

    requirement_phrase: str = Field("具身心障礙證明", min_length=1)
    preference_qualifier: str = Field("優先", min_length=1)
    preference_window: int = Field(10, ge=0, le=100)


class LedgerConfig(BaseModel):
    """Notification ledger retention."""

    capacity: int = Field(50_000, ge=1, description="Maximum remembered listing ids")


class DeliveryConfig(BaseModel):
    """Delivery worker and queue behaviour."""

    max_attempts: int = Field(
        4, ge=1, le=20, description="Attempt count at which a job is terminal"
    )
    inline_limit: int = Field(10, ge=1, le=50, description="Listings sent as individual messages")
    view_ttl: str = Field("7d", description="Lifetime of overflow view artifacts")
    retry_delay: str = Field("30s", description="Delay before a failed job is redelivered")
    visibility_timeout: str = Field(
        "5m", description="Lease on a received job before it is redelivered"
    )
    batch_size: int = Field(10, ge=1, le=100, description="Jobs pulled per worker batch")

    @field_validator("view_ttl", "retry_delay", "visibility_timeout")
    @classmethod
    def validate_durations(cls, v: str) -> str:
        return _validate_duration(v)

    @property
    def view_ttl_seconds(self) -> int:
        return parse_duration(self.view_ttl)

    @property
    def retry_delay_seconds(self) -> int:
        return parse_duration(self.retry_delay)

    @property
    def visibility_timeout_seconds(self) -> int:
        return parse_duration(self.visibility_timeout)


class NotifyConfig(BaseModel):
    """Push channel endpoint."""

    api_url: str = Field("https://notify-api.line.me/api/notify", min_length=1)
    timeout_seconds: int = Field(15, ge=1, le=120)
    unsubscribe_url: str = Field("https://notify-bot.line.me/my/", min_length=1)


class ScheduleConfig(BaseModel):
    """Daemon-mode triggers (UTC)."""

    refresh_cron: str = Field("30 9 * * *", description="When to refresh the listing snapshot")
    notify_cron: str = Field("0 10 * * *", description="When to run the notify cycle")
    delivery_interval: str = Field("1m", description="How often the delivery queue is drained")

    @field_validator("refresh_cron", "notify_cron")
    @classmethod
    def validate_cron(cls, v: str) -> str:
        if len(v.split()) != 5:
            raise ValueError(f"Expected a 5-field crontab expression, got: '{v}'")
        return v.strip()

    @field_validator("delivery_interval")
    @classmethod
    def validate_interval(cls, v: str) -> str:
        return _validate_duration(v)

    @property
    def delivery_interval_seconds(self) -> int:
        return parse_duration(self.delivery_interval)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(LogFormat.KEY_VALUE, description="json or key-value")

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object. Every section has working defaults."""

    feed: FeedConfig = Field(default_factory=FeedConfig)
    accessibility: AccessibilityRules = Field(default_factory=AccessibilityRules)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)
    notify: NotifyConfig = Field(default_factory=NotifyConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
