"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Reminder service configuration. All values come from environment variables."""

    # Database
    database_path: Path = Field(default=Path("data/reminders.db"))

    # Turso (hosted libSQL): when set, overrides local database_path
    turso_database_url: str = Field(default="")
    turso_auth_token: str = Field(default="")

    # Telnyx SMS
    telnyx_api_key: str = Field(default="")
    telnyx_phone_number: str = Field(default="")
    sms_simulate: bool = Field(default=False)
    default_country_code: str = Field(default="1")

    # Reminder loop
    reminder_check_interval_minutes: int = Field(default=15, ge=1)
    reminder_due_window_minutes: int = Field(default=60, ge=0)
    reminder_pacing_seconds: float = Field(default=1.0, ge=0)
    reminder_max_failed_attempts: int = Field(default=0, ge=0)

    # Scheduler (also the timezone reminder messages are rendered in)
    scheduler_timezone: str = Field(default="America/Chicago")

    # HTTP API
    api_port: int = Field(default=3000)
    api_secret: str = Field(default="")

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_file=_env_file(), env_file_encoding="utf-8", extra="forbid"
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    @property
    def sms_configured(self) -> bool:
        """True when both Telnyx credentials are present."""
        return bool(self.telnyx_api_key and self.telnyx_phone_number)


settings = Settings()
