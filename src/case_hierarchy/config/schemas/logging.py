"""Logging configuration schema."""

from pathlib import Path
from typing import Literal, Optional

from pydantic import field_validator
from pydantic.dataclasses import dataclass


@dataclass
class LoggingConfig:
    """Configuration for loguru-based logging."""

    level: str = "INFO"
    log_dir: Optional[str] = None  # None = console only

    console_format: Literal["default", "minimal", "detailed"] = "default"
    colorize: bool = True
    serialize: bool = False  # JSON lines in the log file

    rotation: str = "10 MB"
    retention: str = "14 days"

    intercept_standard_logging: bool = True

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    def get_log_path(self) -> Optional[Path]:
        """Get resolved log directory path."""
        if self.log_dir:
            return Path(self.log_dir).expanduser().resolve()
        return None
