"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import Optional

from apscheduler.triggers.cron import CronTrigger
from pydantic import BaseModel, Field, field_validator


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


def build_cron_trigger(expression: str, timezone: str = "UTC") -> CronTrigger:
    """Build an APScheduler trigger from a five-field crontab expression.

    Day-of-week names (``mon``) are preferred over numbers because APScheduler
    counts Monday as 0, unlike classic cron.
    """
    return CronTrigger.from_crontab(expression.strip(), timezone=timezone)


class ScheduleConfig(BaseModel):
    """Cron expressions for the three alert cycles."""

    timezone: str = Field("UTC", min_length=1, description="Timezone the cron fields are read in")
    immediate_cron: str = Field("0 * * * *", description="Cycle for immediate alerts (hourly)")
    daily_cron: str = Field("0 9 * * *", description="Cycle for daily alerts")
    weekly_cron: str = Field("0 10 * * mon", description="Cycle for weekly alerts")

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        stripped = v.strip()
        try:
            build_cron_trigger("0 0 * * *", timezone=stripped)
        except Exception as e:
            raise ValueError(f"Unknown timezone '{stripped}': {e}") from e
        return stripped

    @field_validator("immediate_cron", "daily_cron", "weekly_cron")
    @classmethod
    def validate_cron(cls, v: str) -> str:
        """Reject expressions APScheduler cannot parse."""
        stripped = v.strip()
        if len(stripped.split()) != 5:
            raise ValueError(
                f"Invalid cron expression '{v}': expected 5 fields "
                "(minute hour day month day_of_week)"
            )
        try:
            build_cron_trigger(stripped)
        except ValueError as e:
            raise ValueError(f"Invalid cron expression '{v}': {e}") from e
        return stripped

    def cron_for(self, frequency: str) -> str:
        return getattr(self, f"{frequency}_cron")


class MatchingConfig(BaseModel):
    """Caps and lookback windows used by the matcher."""

    digest_limit: int = Field(
        10, ge=0, description="Maximum jobs per digest (0 = unbounded)"
    )
    matching_jobs_limit: int = Field(
        20, ge=0, description="Maximum jobs returned by the matching-jobs query (0 = unbounded)"
    )
    recent_matches_limit: int = Field(
        10, ge=0, description="Maximum jobs returned by the recent-matches query (0 = unbounded)"
    )
    recent_lookback_days: int = Field(
        7, ge=1, le=365, description="Lookback window for recent matches"
    )
    test_lookback_days: int = Field(
        30, ge=1, le=365, description="Lookback window for manual test alerts"
    )


class EmailConfig(BaseModel):
    """Email notification settings."""

    use_tls: bool = Field(True, description="Use TLS/STARTTLS for secure connection")
    timeout_seconds: int = Field(
        10, ge=1, le=120, description="Socket timeout for the SMTP conversation"
    )
    subject: str = Field(
        "New Job Matches Found - HireSphere Job Alert",
        min_length=1,
        description="Subject line for alert digests",
    )

    @field_validator("subject")
    @classmethod
    def strip_subject(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("subject cannot be empty")
        return stripped


class TextGenerationConfig(BaseModel):
    """Settings for the optional personalization note."""

    enabled: bool = Field(False, description="Ask the text generator for a personalization note")
    model: str = Field("gemini-1.5-pro", min_length=1, description="Generative model name")
    timeout_seconds: int = Field(10, ge=1, le=120, description="Request timeout in seconds")
    max_output_tokens: int = Field(512, ge=16, le=8192, description="Upper bound on answer length")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object for the job alert service."""

    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig, description="Cycle cadences")
    matching: MatchingConfig = Field(default_factory=MatchingConfig, description="Matching caps")
    email: EmailConfig = Field(default_factory=EmailConfig, description="Email settings")
    text_generation: TextGenerationConfig = Field(
        default_factory=TextGenerationConfig, description="Personalization settings"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    frontend_url: str = Field(
        "http://localhost:3000", description="Base URL used for job and manage links"
    )

    @field_validator("frontend_url")
    @classmethod
    def validate_frontend_url(cls, v: str) -> str:
        stripped = v.strip().rstrip("/")
        if not stripped.startswith(("http://", "https://")):
            raise ValueError(f"frontend_url must start with http:// or https://, got '{v}'")
        return stripped

    def with_frontend_url(self, url: Optional[str]) -> "AppConfig":
        """Return a copy whose frontend_url is ``url`` (validated), if given."""
        if not url:
            return self
        data = self.model_dump()
        data["frontend_url"] = url
        return AppConfig.model_validate(data)
