"""Application configuration loaded from ``CONTACTS_*`` environment variables."""

import logging
from typing import Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from errors import ConfigurationError

DEFAULT_DB_PATH = "contacts.db"
DEFAULT_DB_TIMEOUT = 5.0


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CONTACTS_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Database
    db_path: str = Field(default=DEFAULT_DB_PATH, min_length=1)
    db_timeout: float = Field(default=DEFAULT_DB_TIMEOUT, ge=0)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000, ge=0, le=65535)

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, value):
        return value.strip().upper() if isinstance(value, str) else value


def get_settings() -> Settings:
    try:
        return Settings()
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


def configure_logging(*, level: str = "INFO", force: bool = False) -> None:
    """Initialise the root logger once.

    Pass ``force=True`` to reconfigure during tests.
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
