"""
Configuration management for mailflow.

This module provides configuration loading from environment variables
and an optional TOML file, with type-safe settings classes, plus the
loader for the scenario data file and the logging setup.
"""

import json
import logging
import os
import sys
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from pydantic import AliasChoices, Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import InvalidConfigError, MissingConfigError
from .models import Credentials, ScenarioData

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class GmailSettings(BaseSettings):
    """Account and application settings for the webmail under test."""

    model_config = SettingsConfigDict(
        env_prefix="GMAIL_",
        extra="ignore",
        populate_by_name=True,
    )

    username: str = Field(default="", description="Account to sign in with")
    password: Optional[SecretStr] = Field(None, description="Account password")
    handle_interstitials: bool = Field(
        default=True,
        description="Dismiss optional passkey/recovery prompts during sign-in",
    )
    base_url: str = Field(
        default="https://mail.google.com/", description="Webmail entry point"
    )
    logout_url: str = Field(
        default="https://accounts.google.com/Logout",
        description="Direct sign-out endpoint used when the account menu fails",
    )
    recipient_override: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("RECIPIENT_EMAIL", "recipient_override"),
        description="Recipient that replaces every template recipient",
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate the webmail URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return v if v.endswith("/") else f"{v}/"

    @property
    def inbox_url(self) -> str:
        return f"{self.base_url}mail/u/0/#inbox"


class BrowserSettings(BaseSettings):
    """Browser launch and context settings."""

    model_config = SettingsConfigDict(
        env_prefix="E2E_",
        extra="ignore",
    )

    browser: str = Field(default="chromium", description="chromium, firefox or webkit")
    channel: Optional[str] = Field(
        None, description="Browser channel, e.g. chrome or msedge"
    )
    headless: bool = Field(default=True, description="Run without a visible window")
    slow_mo: int = Field(default=0, ge=0, description="Slow motion delay in ms")
    default_timeout: int = Field(
        default=30000, ge=0, description="Default Playwright timeout in ms"
    )
    viewport_width: int = Field(default=1280, ge=1)
    viewport_height: int = Field(default=720, ge=1)
    locale: str = Field(default="en-US", description="Browser locale")
    timezone_id: str = Field(default="America/New_York", description="Timezone")
    record_video: bool = Field(default=False, description="Record video per test")
    results_dir: Path = Field(
        default=Path("test-results"), description="Test artifact directory"
    )
    storage_state: Optional[Path] = Field(
        None, description="Saved storage state to start contexts from"
    )

    @field_validator("browser")
    @classmethod
    def validate_browser(cls, v: str) -> str:
        """Validate browser name."""
        valid = ["chromium", "firefox", "webkit"]
        v_lower = v.lower()
        if v_lower not in valid:
            raise ValueError(f"Browser must be one of: {', '.join(valid)}")
        return v_lower

    def to_launch_options(self) -> dict[str, Any]:
        """Convert to Playwright browser launch options."""
        options: dict[str, Any] = {
            "headless": self.headless,
            "slow_mo": self.slow_mo,
        }
        if self.channel:
            options["channel"] = self.channel
        return options

    def to_context_options(self) -> dict[str, Any]:
        """Convert to Playwright browser context options."""
        options: dict[str, Any] = {
            "viewport": {
                "width": self.viewport_width,
                "height": self.viewport_height,
            },
            "locale": self.locale,
            "timezone_id": self.timezone_id,
        }
        if self.record_video:
            options["record_video_dir"] = str(self.results_dir / "videos")
        if self.storage_state:
            options["storage_state"] = str(self.storage_state)
        return options


class TimeoutSettings(BaseSettings):
    """Wait budgets for every step of the flows, in milliseconds."""

    model_config = SettingsConfigDict(
        env_prefix="MAILFLOW_TIMEOUT_",
        extra="ignore",
    )

    interstitial: int = Field(default=2000, ge=0, description="Per optional prompt")
    password_prompt: int = Field(default=15000, ge=0)
    sign_in: int = Field(default=30000, ge=0, description="Inbox vs. blocked race")
    rejected_sign_in: int = Field(
        default=20000, ge=0, description="Race budget for a rejected identifier"
    )
    compose_open: int = Field(default=10000, ge=0)
    send_success: int = Field(default=10000, ge=0, description="'Message sent' toast")
    send_validation: int = Field(default=8000, ge=0, description="Missing recipient dialog")
    sent_lookup: int = Field(default=20000, ge=0)
    recipient_probe: int = Field(default=1000, ge=0)
    locator_probe: int = Field(
        default=2000, ge=0, description="Per candidate in a selector fallback chain"
    )
    sign_out_menu: int = Field(default=5000, ge=0)
    sign_out: int = Field(default=30000, ge=0)
    inbox: int = Field(default=30000, ge=0, description="Inbox to settle after navigation")


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        extra="ignore",
    )

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default=LOG_FORMAT, description="Log format")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
        return v_upper


class MailFlowSettings(BaseSettings):
    """Main settings aggregating all configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MAILFLOW_",
        extra="ignore",
    )

    data_file: Path = Field(
        default=Path("tests/data/config.json"),
        description="Scenario data file with message templates",
    )
    unique_subjects: bool = Field(
        default=True,
        description="Append a per-run token to every outgoing subject",
    )
    live: bool = Field(default=False, description="Run live scenarios")

    # Sub-settings
    gmail: GmailSettings = Field(default_factory=GmailSettings)
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    timeouts: TimeoutSettings = Field(default_factory=TimeoutSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def from_toml(cls, path: str | Path) -> "MailFlowSettings":
        """
        Load settings from a TOML configuration file.

        Args:
            path: Path to the TOML configuration file.

        Returns:
            MailFlowSettings instance with loaded configuration.

        Raises:
            ConfigurationError: If the file cannot be read or parsed.
        """
        path = Path(path)
        if not path.exists():
            raise MissingConfigError(f"Configuration file not found: {path}")

        try:
            with open(path, "rb") as f:
                config_data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise InvalidConfigError(
                config_key="config_file",
                value=str(path),
                reason=f"Failed to parse TOML: {e}",
            )

        return cls._from_dict(config_data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "MailFlowSettings":
        """
        Create settings from a dictionary.

        Args:
            data: Configuration dictionary.

        Returns:
            MailFlowSettings instance.
        """
        settings_kwargs: dict[str, Any] = {}

        if "app" in data:
            settings_kwargs.update(data["app"])

        if "gmail" in data:
            settings_kwargs["gmail"] = GmailSettings(**data["gmail"])

        if "browser" in data:
            settings_kwargs["browser"] = BrowserSettings(**data["browser"])

        if "timeouts" in data:
            settings_kwargs["timeouts"] = TimeoutSettings(**data["timeouts"])

        if "logging" in data:
            settings_kwargs["logging"] = LoggingSettings(**data["logging"])

        return cls(**settings_kwargs)

    def credentials(self) -> Optional[Credentials]:
        """Return the configured credentials, or None when either part is missing."""
        password = self.gmail.password.get_secret_value() if self.gmail.password else ""
        if not self.gmail.username or not password:
            return None
        return Credentials(username=self.gmail.username, password=password)

    def require_credentials(self) -> Credentials:
        """
        Return the configured credentials.

        Raises:
            MissingConfigError: If the username or password is not set.
        """
        credentials = self.credentials()
        if credentials is None:
            missing = "GMAIL_USERNAME" if not self.gmail.username else "GMAIL_PASSWORD"
            raise MissingConfigError(missing)
        return credentials

    def load_scenario_data(self, path: Optional[Path] = None) -> ScenarioData:
        """
        Load the scenario data file.

        Args:
            path: Overrides ``data_file``.

        Returns:
            Parsed scenario data.

        Raises:
            MissingConfigError: If the file does not exist.
            InvalidConfigError: If the file is not valid JSON or has a bad shape.
        """
        path = Path(path or self.data_file)
        if not path.exists():
            raise MissingConfigError(str(path))

        try:
            with open(path, encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise InvalidConfigError(
                config_key="data_file",
                value=str(path),
                reason=f"Failed to parse JSON: {e}",
            )

        try:
            return ScenarioData.model_validate(raw)
        except ValidationError as e:
            raise InvalidConfigError(
                config_key="data_file",
                value=str(path),
                reason=str(e),
            )


def configure_logging(
    settings: Optional[LoggingSettings] = None, debug: bool = False
) -> None:
    """
    Configure logging for the flows and the test suite.

    Args:
        settings: Logging settings; read from the environment when omitted.
        debug: Force DEBUG level regardless of settings.
    """
    settings = settings or LoggingSettings()
    level = logging.DEBUG if debug else getattr(logging, settings.level)

    logging.basicConfig(
        level=level,
        format=settings.format,
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    # Cancelled detector tasks are reported by asyncio in debug mode only.
    if not debug:
        logging.getLogger("asyncio").setLevel(logging.WARNING)


@lru_cache()
def get_settings() -> MailFlowSettings:
    """
    Get cached settings.

    Settings come from environment variables, or from the TOML file named
    by ``MAILFLOW_CONFIG_FILE`` when it exists. The result is cached.

    Returns:
        MailFlowSettings instance.
    """
    config_file = os.getenv("MAILFLOW_CONFIG_FILE")

    if config_file and Path(config_file).exists():
        settings = MailFlowSettings.from_toml(config_file)
    else:
        settings = MailFlowSettings()

    return settings


def reload_settings() -> MailFlowSettings:
    """
    Reload settings, clearing the cache.

    Returns:
        Fresh MailFlowSettings instance.
    """
    get_settings.cache_clear()
    return get_settings()
