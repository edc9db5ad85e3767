"""Configuration schemas."""

from case_hierarchy.config.schemas.explorer import ColumnsConfig, DisplayConfig, NormalizerConfig
from case_hierarchy.config.schemas.logging import LoggingConfig
from case_hierarchy.config.schemas.root import ExplorerConfig

__all__ = [
    "ColumnsConfig",
    "DisplayConfig",
    "ExplorerConfig",
    "LoggingConfig",
    "NormalizerConfig",
]
