"""Centralized error handling for the case hierarchy explorer.

Errors fall into three groups:
- FetchError: the backend fetch failed, surfaced verbatim and never retried here
- NormalizationWarning: one field of one node could not be shaped (logged, defaulted)
- ConfigurationWarning: a column commit produced a degenerate result (non-fatal)

Only FetchError and ConfigError are exceptions. Warnings are value objects that
are recorded and handed back to the caller, they never interrupt processing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from loguru import logger

DEFAULT_FETCH_ERROR_MESSAGE = "An error occurred while loading the case hierarchy."


class ExplorerError(Exception):
    """Base exception for explorer errors."""
    pass


class FetchError(ExplorerError):
    """Backend fetch failed."""

    def __init__(self, message: str, payload: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.payload = payload


class ConfigError(ExplorerError):
    """Explorer configuration is invalid."""
    pass


@dataclass(frozen=True)
class NormalizationWarning:
    """Node-local problem found while normalizing a record."""

    node_id: str
    field: Optional[str]
    kind: str
    message: str


@dataclass(frozen=True)
class ConfigurationWarning:
    """Session-local problem found while committing a column configuration."""

    kind: str
    message: str


class ErrorHandler:
    """Centralized error handling."""

    @staticmethod
    def handle_fetch_error(error: Any) -> FetchError:
        """Build a FetchError from whatever the fetch boundary handed us.

        Accepts ``{"message": ...}``, the platform shape
        ``{"body": {"message": ...}}``, an exception or a bare string.

        Args:
            error: Error payload from the fetch collaborator

        Returns:
            FetchError carrying the message verbatim
        """
        message: Optional[str] = None
        if isinstance(error, FetchError):
            return error
        if isinstance(error, Mapping):
            body = error.get("body")
            if isinstance(body, Mapping) and body.get("message"):
                message = str(body["message"])
            elif error.get("message"):
                message = str(error["message"])
        elif isinstance(error, BaseException):
            message = str(error) or None
        elif isinstance(error, str) and error:
            message = error

        fetch_error = FetchError(message or DEFAULT_FETCH_ERROR_MESSAGE, payload=error)
        logger.error(f"Case hierarchy fetch failed: {fetch_error.message}")
        return fetch_error

    @staticmethod
    def record_normalization_warning(warning: NormalizationWarning) -> NormalizationWarning:
        """Log a normalization warning and hand it back for collection."""
        logger.warning(
            f"Normalization warning [{warning.kind}] node={warning.node_id or '?'} "
            f"field={warning.field}: {warning.message}"
        )
        return warning

    @staticmethod
    def record_configuration_warning(warning: ConfigurationWarning) -> ConfigurationWarning:
        """Log a configuration warning and hand it back for collection."""
        logger.warning(f"Configuration warning [{warning.kind}]: {warning.message}")
        return warning

    @staticmethod
    def handle_validation_error(error: Exception, field: str) -> str:
        """Handle validation errors.

        Args:
            error: The exception that occurred
            field: Field name that failed validation

        Returns:
            User-friendly error message
        """
        logger.warning(f"Validation Error for {field}: {error}")
        return f"Invalid {field}: {str(error)}"
