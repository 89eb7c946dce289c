"""Custom exception hierarchy for the dnd-sheet computation engine.

All exceptions inherit from DndSheetError, enabling unified error handling
at the call boundary while preserving domain-specific context. The engine
never catches or translates these internally: a resolver that cannot
produce a correct value raises instead of returning a defaulted one.

Example:
    >>> from dnd_sheet.core.exceptions import DataIntegrityError
    >>> raise DataIntegrityError("Unknown class", entity_type="class", key="artificer")
"""

from __future__ import annotations

from typing import Any


class DndSheetError(Exception):
    """Base exception for all dnd-sheet errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        """Return a detailed string representation of the exception."""
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Computation Domain Exceptions
# =============================================================================


class ComputationError(DndSheetError):
    """Base exception for failures while deriving a character.

    Raised by any resolver in the computation pipeline. Callers at the
    presentation boundary should catch this to show a recoverable error
    state instead of a partial sheet.
    """


class FormulaError(ComputationError):
    """Raised when a data-supplied formula cannot be evaluated.

    Covers malformed expressions, unresolved variables, disallowed
    functions, missing lookup tables or keys, and non-finite results.
    """

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        table: str | None = None,
        key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize formula error with expression context.

        Args:
            message: Human-readable error description.
            expression: The formula string that failed.
            table: Lookup table involved in the failure, if any.
            key: Lookup key involved in the failure, if any.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if expression is not None:
            combined_details["expression"] = expression
        if table is not None:
            combined_details["table"] = table
        if key is not None:
            combined_details["key"] = key
        self.expression = expression
        self.table = table
        self.key = key
        super().__init__(message, details=combined_details)


class DataIntegrityError(ComputationError):
    """Raised when a required reference is absent from the game data.

    A class key listed on a character but missing from the class table is
    reported here rather than skipped, since skipping would silently drop
    hit points, proficiencies, and features for that class.
    """

    def __init__(
        self,
        message: str,
        *,
        entity_type: str | None = None,
        key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize data integrity error with reference context.

        Args:
            message: Human-readable error description.
            entity_type: Kind of content referenced (race, class, item, ...).
            key: The key that could not be resolved.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if entity_type:
            combined_details["entity_type"] = entity_type
        if key is not None:
            combined_details["key"] = key
        self.entity_type = entity_type
        self.key = key
        super().__init__(message, details=combined_details)


# =============================================================================
# Configuration & Validation Exceptions
# =============================================================================


class ConfigurationError(DndSheetError):
    """Raised when engine configuration is invalid.

    This includes bad settings values and evaluator function tables that
    expose something other than plain callables under valid names.
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


class ValidationError(DndSheetError):
    """Raised when a character choice is not valid under the rules.

    The computation pipeline assumes structurally valid choices and never
    raises this; it is used by the creation helpers (point buy, arrays).
    """

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        invalid_value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error with field context.

        Args:
            message: Human-readable error description.
            field_name: Name of the field that failed validation.
            invalid_value: The value that failed validation.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if field_name:
            combined_details["field_name"] = field_name
        if invalid_value is not None:
            combined_details["invalid_value"] = invalid_value
        super().__init__(message, details=combined_details)


__all__ = [
    "DndSheetError",
    "ComputationError",
    "FormulaError",
    "DataIntegrityError",
    "ConfigurationError",
    "ValidationError",
]
