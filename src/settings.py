"""Toolkit settings using Pydantic Settings.

Loads configuration from environment variables (prefix ``CFN_``) and an
optional ``.env`` file in the working directory.
"""
from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CfnToolkitSettings(BaseSettings):
    """Toolkit configuration.

    Settings are loaded from:
    1. Environment variables (highest priority)
    2. .env file in current directory
    3. Default values (lowest priority)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="CFN_",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR) (env: CFN_LOG_LEVEL)",
    )

    log_format: Literal["json", "console"] = Field(
        default="json",
        description="Log renderer; json keeps stderr machine-readable (env: CFN_LOG_FORMAT)",
    )

    output_format: Literal["yaml", "json"] = Field(
        default="yaml",
        description="Default serialization for rendered templates (env: CFN_OUTPUT_FORMAT)",
    )

    stack_name: str = Field(
        default="vpc-ec2-stack",
        description="Default stack name used in the console guide (env: CFN_STACK_NAME)",
    )

    region: str = Field(
        default="us-east-1",
        description="Region the console guide points at (env: CFN_REGION)",
    )


_settings: CfnToolkitSettings | None = None


def get_settings() -> CfnToolkitSettings:
    """Get the global settings instance, creating it on first call."""
    global _settings
    if _settings is None:
        _settings = CfnToolkitSettings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
