"""Configuration system using OmegaConf and Pydantic."""

from pathlib import Path
from typing import List, Optional

from .manager import ConfigManager
from .schemas.explorer import ColumnsConfig, DisplayConfig, NormalizerConfig
from .schemas.logging import LoggingConfig
from .schemas.root import ExplorerConfig


def load_config(
    config_path: Optional[str] = None,
    overrides: Optional[List[str]] = None,
    env_prefix: str = "CASE_HIERARCHY",
) -> ExplorerConfig:
    """
    Convenience function to load configuration.

    Examples:
        config = load_config()
        config = load_config(overrides=["display.expansion_policy=preserve"])
    """
    manager = ConfigManager()
    return manager.load_config(Path(config_path) if config_path else None, overrides, env_prefix)


__all__ = [
    "ColumnsConfig",
    "ConfigManager",
    "DisplayConfig",
    "ExplorerConfig",
    "LoggingConfig",
    "NormalizerConfig",
    "load_config",
]
