"""Root configuration schema."""

from typing import Optional

from pydantic import field_validator
from pydantic.dataclasses import dataclass

from case_hierarchy.config.schemas.explorer import ColumnsConfig, DisplayConfig, NormalizerConfig
from case_hierarchy.config.schemas.logging import LoggingConfig


@dataclass
class ExplorerConfig:
    """Complete explorer configuration."""

    project: str = "case-hierarchy-explorer"
    environment: str = "development"

    normalizer: Optional[NormalizerConfig] = None
    columns: Optional[ColumnsConfig] = None
    display: Optional[DisplayConfig] = None
    logging: Optional[LoggingConfig] = None

    def __post_init__(self):
        """Initialize nested configs with defaults if not provided."""
        if self.normalizer is None:
            self.normalizer = NormalizerConfig()
        if self.columns is None:
            self.columns = ColumnsConfig()
        if self.display is None:
            self.display = DisplayConfig()
        if self.logging is None:
            self.logging = LoggingConfig()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is one of the allowed values."""
        allowed_environments = {"development", "testing", "production"}
        if v not in allowed_environments:
            raise ValueError(f"Invalid environment: {v}. Must be one of {allowed_environments}")
        return v
