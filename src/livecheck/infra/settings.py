"""
Application settings for livecheck.

This module defines all configuration settings using Pydantic BaseSettings.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Main application settings using Pydantic BaseSettings."""

    # We expect every fetch to be fast.
    request_timeout_seconds: float = Field(default=5.0, gt=0, alias="LIVECHECK_REQUEST_TIMEOUT")

    log_level: str = Field(default="INFO", alias="LIVECHECK_LOG_LEVEL")
    log_json: bool = Field(default=True, alias="LIVECHECK_LOG_JSON")
    env: str = Field(default="dev", alias="LIVECHECK_ENV")  # dev|prod|test

    model_config: SettingsConfigDict = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


def _resolve_env_file() -> str | None:
    # 1) Explicit override
    explicit = os.getenv("LIVECHECK_ENV_FILE")
    if explicit and Path(explicit).is_file():
        return explicit

    # 2) CWD .env
    cwd_env = Path.cwd() / ".env"
    if cwd_env.is_file():
        return str(cwd_env)
    return None


_env_file = _resolve_env_file()
settings = Settings(_env_file=_env_file) if _env_file else Settings()  # type: ignore[call-arg]
