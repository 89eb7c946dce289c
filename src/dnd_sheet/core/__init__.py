"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        DndSheetError: Base exception for all engine errors.
        ComputationError: Base for failures while deriving a character.
        FormulaError: Data-supplied formula could not be evaluated.
        DataIntegrityError: Required game data reference is missing.
        ConfigurationError: Configuration-related errors.
        ValidationError: Invalid character choices.

    Configuration:
        Settings, FormulaSettings, get_settings, clear_settings_cache

    Logging:
        configure_logging, get_logger, bind_context, clear_context
"""

from __future__ import annotations

from dnd_sheet.core.config import (
    FormulaSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from dnd_sheet.core.exceptions import (
    ComputationError,
    ConfigurationError,
    DataIntegrityError,
    DndSheetError,
    FormulaError,
    ValidationError,
)
from dnd_sheet.core.logging import (
    bind_context,
    clear_context,
    configure_from_settings,
    configure_logging,
    get_logger,
)


__all__ = [
    # Exceptions
    "DndSheetError",
    "ComputationError",
    "FormulaError",
    "DataIntegrityError",
    "ConfigurationError",
    "ValidationError",
    # Configuration
    "Settings",
    "FormulaSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "bind_context",
    "clear_context",
]
