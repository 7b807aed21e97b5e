"""
FeedPoster Configuration System
===============================

Simple configuration management with environment variables and Pydantic models.
Environment variables override Field defaults with clear precedence.
"""

from pathlib import Path
from typing import Optional
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from ..utils.exceptions import ConfigurationError, ErrorCode


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ContentMode(str, Enum):
    """How a feed entry's post body is sourced."""
    INLINE = "inline"   # entry content is the post body
    LINK = "link"       # fetch the linked page and extract a region


class DatabaseSettings(BaseModel):
    """Database configuration."""
    path: str = Field(default="data/feedposter.db", description="SQLite database file path")
    pool_size: int = Field(default=5, ge=1, le=20, description="Connection pool size")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default="logs/feedposter.log", description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging")
    console_logging: bool = Field(default=True, description="Enable console logging")


class FetchingSettings(BaseModel):
    """Outbound HTTP settings for feed and page fetches."""
    request_timeout: int = Field(default=30, ge=1, le=300, description="Request timeout in seconds")
    user_agent: str = Field(
        default="FeedPoster/1.0 (+https://github.com/feedposter/feedposter)",
        description="User-Agent header for outbound requests",
    )


class ContentSettings(BaseModel):
    """Post body construction."""
    mode: ContentMode = Field(default=ContentMode.INLINE, description="Default content mode for feeds")
    selector: str = Field(
        default=".entry-content",
        description="CSS selector of the content region on linked pages",
    )
    attribution_prefix: str = Field(default="Via:", description="Prefix of the attribution line")

    @field_validator('selector')
    @classmethod
    def validate_selector(cls, v):
        """Ensure selector is not blank."""
        if not v or not v.strip():
            raise ValueError("selector cannot be empty")
        return v.strip()


class ForumSettings(BaseModel):
    """Forum API access and anti-spam delays."""
    base_url: Optional[str] = Field(default=None, description="Forum base URL")
    api_token: Optional[str] = Field(default=None, description="Bearer token for the forum write API")
    default_uid: int = Field(default=1, ge=1, description="Poster uid when the username cannot be resolved")
    post_delay: int = Field(default=10, ge=0, description="Fallback postDelay in seconds")
    newbie_post_delay: int = Field(default=10, ge=0, description="Fallback newbiePostDelay in seconds")
    local_time_index: bool = Field(
        default=False,
        description="Backdate into the object_fields/sorted_sets tables of our own database "
        "(only meaningful when the forum reads those tables)",
    )


class SchedulerSettings(BaseModel):
    """Poll scheduler configuration."""
    default_entries_to_pull: int = Field(default=4, ge=1, le=100, description="Entries pulled per poll when unset")
    run_on_start: bool = Field(default=False, description="Run every interval once when the scheduler starts")


class FeedPosterSettings(BaseSettings):
    """Main application settings."""

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    fetching: FetchingSettings = Field(default_factory=FetchingSettings)
    content: ContentSettings = Field(default_factory=ContentSettings)
    forum: ForumSettings = Field(default_factory=ForumSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)

    app_name: str = Field(default="FeedPoster", description="Application name")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "FEEDPOSTER_",
        "extra": "ignore",
    }

    def validate_configuration(self) -> None:
        """Validate complete configuration."""
        errors = []

        try:
            db_path = Path(self.database.path)
            db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            errors.append(f"Invalid database path: {e}")

        if self.logging.file_path:
            try:
                log_path = Path(self.logging.file_path)
                log_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid log file path: {e}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID
            )

    def get_effective_log_level(self) -> str:
        """Get effective log level considering debug mode."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def load_settings() -> FeedPosterSettings:
    """Load settings from environment variables and defaults.

    Returns:
        Loaded and validated settings

    Raises:
        ConfigurationError: If configuration is invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        settings = FeedPosterSettings()
        settings.validate_configuration()
        return settings

    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(
            f"Failed to initialize settings: {e}",
            error_code=ErrorCode.CONFIG_INVALID
        )


# Global settings instance
_settings: Optional[FeedPosterSettings] = None


def get_settings(reload: bool = False) -> FeedPosterSettings:
    """Get global settings instance (singleton pattern).

    Args:
        reload: Force reload of settings

    Returns:
        Global settings instance
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings
