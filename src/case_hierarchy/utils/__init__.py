"""Shared utilities."""

from case_hierarchy.utils.errors import (
    ConfigError,
    ConfigurationWarning,
    ErrorHandler,
    ExplorerError,
    FetchError,
    NormalizationWarning,
)

__all__ = [
    "ConfigError",
    "ConfigurationWarning",
    "ErrorHandler",
    "ExplorerError",
    "FetchError",
    "NormalizationWarning",
]
