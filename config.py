"""Configuration management for the EdBrief digest pipeline.

This module provides centralized configuration for all pipeline components.
All settings are loaded from environment variables with sensible defaults.

Environment Variables:
    Required:
        GEMINI_API_KEY: Google Gemini API key for the primary provider
        GOOGLE_API_KEY: Google Custom Search API key
        GOOGLE_CSE_ID: Google Custom Search engine id
        DB_PATH: SQLite database file (seen sources + stored digests)

    Providers (PydanticAI format - provider:model):
        PRIMARY_MODEL: Model used for digest generation
        SECONDARY_MODEL: Optional fallback model tried once after the primary
        GENERATION_ATTEMPTS: Primary provider attempts before giving up
        GENERATION_RETRY_DELAY: Seconds between primary attempts

    Search:
        SEARCH_QUERY: Query sent to the search provider
        SEARCH_COUNT: Maximum candidate results (capped at 100)
        SEARCH_DAYS: Recency window in days

    Scraping:
        SCRAPE_CONCURRENCY: Extractions per batch
        BATCH_PAUSE_SECONDS: Pause between batches
        NAV_TIMEOUT_SECONDS: Navigation timeout per attempt
        NAV_ATTEMPTS: Navigation attempts per URL
        NAV_RETRY_DELAY: Seconds between navigation attempts

    Digest:
        MAX_DOCUMENTS: Documents included in the prompt
        CONTENT_CHAR_CAP: Characters kept per document
        SEEN_CAPACITY: Maximum remembered source URLs
        MESSAGE_TYPE: Document-store key for the digest message

    Delivery:
        TEMPLATE_WEBHOOK_URL: HTTP endpoint of the messaging template API
        TEMPLATE_NAME: Template identifier sent with the parameters

    Optional Features:
        ENABLE_LOGFIRE: Enable Logfire/OpenTelemetry tracing
        LOGFIRE_TOKEN: Logfire write token

    Logging:
        LOG_DIR: Directory for rotated log files
        LOG_LEVEL: Logging verbosity (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_BACKUP_COUNT: Number of rotated log files to keep
        LOG_MAX_BYTES: Max log file size in bytes (0 = time-based rotation)
        LOG_FORMAT: Log format ('text' or 'json' for structured logging)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path


def _env(key: str, default: str = "") -> str:
    """Get string environment variable with optional default.

    Args:
        key: Environment variable name
        default: Value to return if not set

    Returns:
        Environment variable value or default
    """
    return os.environ.get(key, default)


def _env_int(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Raises:
        ValueError: If value is set but cannot be parsed as integer
    """
    val = os.environ.get(key)
    if not val:
        return default
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"Invalid integer value for {key}: '{val}'")


def _env_float(key: str, default: float) -> float:
    """Get float environment variable with default.

    Raises:
        ValueError: If value is set but cannot be parsed as float
    """
    val = os.environ.get(key)
    if not val:
        return default
    try:
        return float(val)
    except ValueError:
        raise ValueError(f"Invalid float value for {key}: '{val}'")


def _env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable with default.

    Recognizes truthy values: '1', 'true', 'yes', 'on'
    Recognizes falsy values: '0', 'false', 'no', 'off'
    """
    val = os.environ.get(key, "").lower()
    if val in ("1", "true", "yes", "on"):
        return True
    if val in ("0", "false", "no", "off"):
        return False
    return default


DEFAULT_SEARCH_QUERY = "education technology teaching learning tools"


@dataclass
class Config:
    """Application configuration loaded from environment variables.

    Use Config.load() to create an instance with values from the environment.

    Example:
        >>> config = Config.load()
        >>> if error := config.validate():
        ...     print(f"Config error: {error}")
    """

    # === Required ===
    gemini_api_key: str = ""  # GEMINI_API_KEY
    google_api_key: str = ""  # GOOGLE_API_KEY
    google_cse_id: str = ""  # GOOGLE_CSE_ID
    db_path: Path = field(default_factory=lambda: Path("edbrief.db"))  # DB_PATH

    # === Providers ===
    primary_model: str = "google-gla:gemini-2.5-pro"  # PRIMARY_MODEL
    secondary_model: str = ""  # SECONDARY_MODEL - empty disables the fallback
    generation_attempts: int = 3  # GENERATION_ATTEMPTS
    generation_retry_delay: float = 180.0  # GENERATION_RETRY_DELAY - 3 minutes

    # === Search ===
    search_query: str = DEFAULT_SEARCH_QUERY  # SEARCH_QUERY
    search_count: int = 25  # SEARCH_COUNT
    search_days: int = 21  # SEARCH_DAYS

    # === Scraping ===
    scrape_concurrency: int = 3  # SCRAPE_CONCURRENCY
    batch_pause_seconds: float = 2.0  # BATCH_PAUSE_SECONDS
    nav_timeout_seconds: float = 30.0  # NAV_TIMEOUT_SECONDS
    nav_attempts: int = 3  # NAV_ATTEMPTS
    nav_retry_delay: float = 2.0  # NAV_RETRY_DELAY

    # === Digest ===
    max_documents: int = 10  # MAX_DOCUMENTS
    content_char_cap: int = 4000  # CONTENT_CHAR_CAP
    seen_capacity: int = 1000  # SEEN_CAPACITY
    message_type: str = "edtech_daily_summary"  # MESSAGE_TYPE

    # === Delivery ===
    template_webhook_url: str = ""  # TEMPLATE_WEBHOOK_URL
    template_name: str = "edtech_digest"  # TEMPLATE_NAME

    # === Output Directories ===
    log_dir: Path = field(default_factory=lambda: Path("log"))  # LOG_DIR

    # === Logging Configuration ===
    log_level: str = "INFO"  # LOG_LEVEL
    log_backup_count: int = 30  # LOG_BACKUP_COUNT
    log_max_bytes: int = 0  # LOG_MAX_BYTES
    log_format: str = "text"  # LOG_FORMAT

    # === Optional: Observability ===
    # Requires: pip install logfire
    enable_logfire: bool = False  # ENABLE_LOGFIRE
    logfire_token: str = ""  # LOGFIRE_TOKEN

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls(
            gemini_api_key=_env("GEMINI_API_KEY"),
            google_api_key=_env("GOOGLE_API_KEY"),
            google_cse_id=_env("GOOGLE_CSE_ID"),
            db_path=Path(_env("DB_PATH", "edbrief.db")),
            primary_model=_env("PRIMARY_MODEL", "google-gla:gemini-2.5-pro"),
            secondary_model=_env("SECONDARY_MODEL"),
            generation_attempts=_env_int("GENERATION_ATTEMPTS", 3),
            generation_retry_delay=_env_float("GENERATION_RETRY_DELAY", 180.0),
            search_query=_env("SEARCH_QUERY", DEFAULT_SEARCH_QUERY),
            search_count=_env_int("SEARCH_COUNT", 25),
            search_days=_env_int("SEARCH_DAYS", 21),
            scrape_concurrency=_env_int("SCRAPE_CONCURRENCY", 3),
            batch_pause_seconds=_env_float("BATCH_PAUSE_SECONDS", 2.0),
            nav_timeout_seconds=_env_float("NAV_TIMEOUT_SECONDS", 30.0),
            nav_attempts=_env_int("NAV_ATTEMPTS", 3),
            nav_retry_delay=_env_float("NAV_RETRY_DELAY", 2.0),
            max_documents=_env_int("MAX_DOCUMENTS", 10),
            content_char_cap=_env_int("CONTENT_CHAR_CAP", 4000),
            seen_capacity=_env_int("SEEN_CAPACITY", 1000),
            message_type=_env("MESSAGE_TYPE", "edtech_daily_summary"),
            template_webhook_url=_env("TEMPLATE_WEBHOOK_URL"),
            template_name=_env("TEMPLATE_NAME", "edtech_digest"),
            log_dir=Path(_env("LOG_DIR", "log")),
            enable_logfire=_env_bool("ENABLE_LOGFIRE", False),
            logfire_token=_env("LOGFIRE_TOKEN"),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            log_backup_count=_env_int("LOG_BACKUP_COUNT", 30),
            log_max_bytes=_env_int("LOG_MAX_BYTES", 0),
            log_format=_env("LOG_FORMAT", "text").lower(),
        )

    def validate_providers(self) -> str | None:
        """Validate only the model provider settings (used by the `check` command).

        Returns:
            Error message string if invalid, None if valid.
        """
        if not self.gemini_api_key:
            return "Missing required environment variables: GEMINI_API_KEY"
        if not self.primary_model:
            return "PRIMARY_MODEL must not be empty"
        if self.generation_attempts <= 0:
            return "GENERATION_ATTEMPTS must be positive"
        if self.generation_retry_delay < 0:
            return "GENERATION_RETRY_DELAY must be non-negative"
        return None

    def validate(self) -> str | None:
        """Validate configuration for required fields and valid values.

        Returns:
            Error message string if invalid, None if valid.
        """
        # Path("") becomes ".", so an empty DB_PATH shows up as the current directory
        db_path = "" if str(self.db_path) in ("", ".") else str(self.db_path)
        missing = [
            name
            for name, value in (
                ("GEMINI_API_KEY", self.gemini_api_key),
                ("GOOGLE_API_KEY", self.google_api_key),
                ("GOOGLE_CSE_ID", self.google_cse_id),
                ("DB_PATH", db_path),
            )
            if not value
        ]
        if missing:
            return f"Missing required environment variables: {', '.join(missing)}"
        if error := self.validate_providers():
            return error
        if self.search_count <= 0:
            return "SEARCH_COUNT must be positive"
        if self.search_days <= 0:
            return "SEARCH_DAYS must be positive"
        if self.scrape_concurrency <= 0:
            return "SCRAPE_CONCURRENCY must be positive"
        if self.batch_pause_seconds < 0:
            return "BATCH_PAUSE_SECONDS must be non-negative"
        if self.nav_timeout_seconds <= 0:
            return "NAV_TIMEOUT_SECONDS must be positive"
        if self.nav_attempts <= 0:
            return "NAV_ATTEMPTS must be positive"
        if self.nav_retry_delay < 0:
            return "NAV_RETRY_DELAY must be non-negative"
        if self.max_documents <= 0:
            return "MAX_DOCUMENTS must be positive"
        if self.content_char_cap <= 0:
            return "CONTENT_CHAR_CAP must be positive"
        if self.seen_capacity <= 0:
            return "SEEN_CAPACITY must be positive"
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return f"Invalid LOG_LEVEL '{self.log_level}' - must be DEBUG, INFO, WARNING, ERROR, or CRITICAL"
        if self.log_format not in ("text", "json"):
            return f"Invalid LOG_FORMAT '{self.log_format}' - must be 'text' or 'json'"
        if self.log_backup_count < 0:
            return "LOG_BACKUP_COUNT must be non-negative"
        if self.log_max_bytes < 0:
            return "LOG_MAX_BYTES must be non-negative"
        return None
