"""
Process-level settings for rowsync.
Loaded from ROWSYNC_* environment variables and .env.
"""
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings that apply before a config file is read."""

    model_config = SettingsConfigDict(
        env_prefix='ROWSYNC_',
        env_file='.env',
        case_sensitive=True,
        extra='ignore',
    )

    CONFIG_FILE: str = Field(
        default='rowsync.yaml',
        description="Config file used when none is given on the command line"
    )
    LOG_LEVEL: Optional[str] = Field(
        default=None,
        description="Overrides logging.log_level from the config file"
    )
    LOG_DIR: Optional[str] = Field(
        default=None,
        description="Overrides logging.log_dir from the config file"
    )

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is a standard level name."""
        if v is None:
            return v
        v = v.upper()
        if v not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ValueError("LOG_LEVEL must be DEBUG, INFO, WARNING, ERROR or CRITICAL")
        return v


def get_settings() -> Settings:
    """Read settings from the current environment."""
    return Settings()
