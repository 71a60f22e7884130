# File: shadow_translate/core/config.py
"""
Configuration settings for shadow-translate.

This module defines library settings using Pydantic's BaseSettings,
which supports environment variable loading and validation.
"""

import json
from typing import Annotated, List, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings loaded from environment variables.

    Values here are the defaults used when a behavior is attached without
    the corresponding option.
    """

    PROJECT_NAME: str = "shadow-translate"

    # Database
    DATABASE_URL: str = "sqlite:///:memory:"
    DB_ECHO: bool = False
    DB_DEFAULT_QUERY_LIMIT: int = 500  # Safety limit for unbounded finds

    # ================================
    # Localization Configuration
    # ================================

    # Locale whose values live in the primary table itself; no join is needed
    DEFAULT_LOCALE: str = "en_US"

    # Empty means "any locale"
    SUPPORTED_LOCALES: Annotated[List[str], NoDecode] = []

    # Honor translations that exist but are intentionally blank
    ALLOW_EMPTY_TRANSLATIONS: bool = True

    # Naming of derived aliases
    TRANSLATION_TABLE_SUFFIX: str = "Translations"
    HAS_ONE_SUFFIX: str = "One"

    # Columns of the translation table that form its key
    TRANSLATION_KEY_COLUMNS: Annotated[List[str], NoDecode] = ["id", "locale"]

    # Translation Audit Settings
    LOG_TRANSLATION_OPERATIONS: bool = True
    TRANSLATION_LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        extra="ignore",
    )

    @field_validator("SUPPORTED_LOCALES", "TRANSLATION_KEY_COLUMNS", mode="before")
    @classmethod
    def parse_list(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse lists given as JSON or comma-separated strings."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return parsed
            except json.JSONDecodeError:
                pass
            return [i.strip() for i in v.split(",") if i.strip()]
        return v or []

    @field_validator("TRANSLATION_KEY_COLUMNS")
    @classmethod
    def validate_key_columns(cls, v: List[str]) -> List[str]:
        """The translation key needs a foreign key and a locale column."""
        if len(v) != 2:
            raise ValueError("TRANSLATION_KEY_COLUMNS must name exactly two columns")
        return v

    @field_validator("DB_DEFAULT_QUERY_LIMIT")
    @classmethod
    def validate_query_limit(cls, v: int) -> int:
        """Clamp the default limit to a sane range."""
        return max(1, min(v, 100000))

    @field_validator("TRANSLATION_LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        return v.upper() if v.upper() in valid_levels else "INFO"


# Create settings instance
settings = Settings()
