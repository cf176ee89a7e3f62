from pathlib import Path
import json
import logging

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from f1viewer.exceptions import ConfigurationError


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "config.json"


class CommandTemplate(BaseModel):
    """User-defined playback command.

    Each entry of ``commands`` is one argv list. Tokens may contain ``$url``
    (resolved stream URL) and ``$file`` (path of the downloaded playlist).
    """

    title: str
    commands: list[list[str]] = Field(default_factory=list)
    watchphrase: str = ""
    command_to_watch: int = -1

    @property
    def watch_enabled(self) -> bool:
        """True when a watch phrase targets an existing command"""
        return bool(self.watchphrase) and 0 <= self.command_to_watch < len(self.commands)


class CustomSettings(BaseSettings):
    """Viewer settings loaded from the JSON config file and the environment.

    Validates configuration at startup to catch misconfiguration early.
    """

    preferred_language: str = "en"
    custom_playback_options: list[CommandTemplate] = Field(default_factory=list)

    api_base_url: str = "https://f1tv.formula1.com"
    request_timeout_sec: float = 15.0
    request_max_retries: int = 3
    request_backoff_factor: float = 2.0
    max_concurrent_fetches: int = 100  # Ceiling for the episode fetch pool
    blink_interval_sec: float = 0.2
    download_dir: str = "."

    log_file: str = "f1viewer.log"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="F1VIEWER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("preferred_language")
    @classmethod
    def validate_language(cls, value: str) -> str:
        """Normalize the audio language code."""
        value = value.strip().lower()
        if not value:
            return "en"
        return value

    @field_validator("api_base_url")
    @classmethod
    def validate_base_url(cls, value: str) -> str:
        """Validate API base URL is HTTP/HTTPS."""
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError(f"api_base_url must be HTTP/HTTPS: {value}")
        return value.rstrip("/")

    @field_validator("request_timeout_sec", "blink_interval_sec")
    @classmethod
    def validate_positive_floats(cls, value: float, info) -> float:
        """Ensure durations are positive."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("request_max_retries", "max_concurrent_fetches")
    @classmethod
    def validate_positive_ints(cls, value: int, info) -> int:
        """Ensure counts are positive integers."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("request_backoff_factor")
    @classmethod
    def validate_backoff_factor(cls, value: float) -> float:
        """Ensure the backoff multiplier is at least 1."""
        if value < 1:
            raise ValueError("request_backoff_factor must be >= 1")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate logging level name."""
        normalized = value.upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return normalized

    @model_validator(mode="after")
    def validate_playback_options(self):
        """Warn about custom commands that can never run."""
        for option in self.custom_playback_options:
            if not any(option.commands):
                logger.warning("Custom playback option '%s' has no commands", option.title)
            elif option.watchphrase and not option.watch_enabled:
                logger.warning(
                    "Custom playback option '%s' watches command %s which does not exist",
                    option.title,
                    option.command_to_watch,
                )
        return self

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        logger.info("Configuration loaded:")
        logger.info("  API: %s", self.api_base_url)
        logger.info("  Preferred Language: %s", self.preferred_language)
        logger.info("  Custom Playback Options: %s configured", len(self.custom_playback_options))
        logger.info("  Request Timeout: %ss (retries: %s)", self.request_timeout_sec, self.request_max_retries)
        logger.info("  Max Concurrent Fetches: %s", self.max_concurrent_fetches)
        logger.info("  Download Directory: %s", self.download_dir)

    @classmethod
    def from_file(cls, config_file: Path | str = DEFAULT_CONFIG_FILE) -> "CustomSettings":
        """
        Build settings from a JSON config file.

        A missing file falls back to defaults; everything else that goes
        wrong is fatal.

        Args:
            config_file: Path to the JSON configuration

        Returns:
            Validated settings

        Raises:
            ConfigurationError: If the file is unreadable, malformed or invalid
        """
        path = Path(config_file)
        data: dict = {}
        if path.is_file():
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError) as exc:
                raise ConfigurationError(f"Cannot read configuration file '{path}': {exc}") from exc
            except json.JSONDecodeError as exc:
                raise ConfigurationError(f"Malformed configuration file '{path}': {exc}") from exc
            if not isinstance(data, dict):
                raise ConfigurationError(f"Configuration file '{path}' must contain a JSON object")
        else:
            logger.info("No configuration file found at %s, using defaults", path)

        try:
            return cls(**data)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration in '{path}': {exc}") from exc


def setup_logging(log_file: str | None = None, level: str = "INFO") -> None:
    """Configure application logging.

    The terminal is owned by the UI, so records go to ``log_file``.
    """
    logging.basicConfig(
        filename=log_file,
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
