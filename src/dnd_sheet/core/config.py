"""Configuration management for dnd-sheet.

Settings cover how the engine runs (logging, formula sandbox limits), never
what the game rules are: rules always arrive as data inside GameData.

Environment Variables:
    DND_SHEET_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    DND_SHEET_JSON_LOGS: Emit JSON log lines instead of console output
    DND_SHEET_FORMULA_MAX_LENGTH: Longest formula string accepted
    DND_SHEET_FORMULA_MAX_DEPTH: Deepest expression nesting accepted
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dnd_sheet.core.exceptions import ConfigurationError


class FormulaSettings(BaseSettings):
    """Limits applied by the sandboxed formula evaluator.

    Attributes:
        max_length: Maximum number of characters in a formula string.
        max_depth: Maximum nesting depth of a parsed expression.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_SHEET_FORMULA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_length: int = Field(
        default=512,
        ge=1,
        le=10_000,
        description="Maximum formula length in characters",
    )
    max_depth: int = Field(
        default=32,
        ge=1,
        le=64,
        description="Maximum expression nesting depth",
    )

    @model_validator(mode="after")
    def validate_depth_within_length(self) -> "FormulaSettings":
        """Ensure the depth limit is reachable within the length limit.

        Raises:
            ConfigurationError: If max_depth exceeds max_length.
        """
        if self.max_depth > self.max_length:
            raise ConfigurationError(
                f"max_depth ({self.max_depth}) must not exceed max_length ({self.max_length})",
                config_key="max_depth",
            )
        return self


class Settings(BaseSettings):
    """Main engine settings.

    Attributes:
        app_name: Application name.
        app_version: Application version string.
        log_level: Logging level.
        json_logs: Emit JSON logs.
        formula: Formula evaluator limits.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_SHEET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(default="dnd-sheet", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    json_logs: bool = Field(default=False, description="Emit JSON log lines")

    formula: FormulaSettings = Field(default_factory=FormulaSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "FormulaSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
