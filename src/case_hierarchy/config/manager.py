"""Configuration manager using OmegaConf for the case hierarchy explorer."""

import os
from pathlib import Path
from typing import Dict, List, Optional, Union

from loguru import logger
from omegaconf import DictConfig, OmegaConf

from case_hierarchy.config.schemas.root import ExplorerConfig
from case_hierarchy.utils.errors import ConfigError


class ConfigManager:
    """Loads and merges explorer configuration with OmegaConf."""

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize ConfigManager.

        Args:
            config_dir: Directory containing configuration files. Defaults to "config".
        """
        self.config_dir = config_dir or Path("config")
        self._cache: Dict[str, DictConfig] = {}

    def load_config(
        self,
        config_path: Optional[Union[Path, str]] = None,
        overrides: Optional[List[str]] = None,
        env_prefix: str = "CASE_HIERARCHY",
    ) -> ExplorerConfig:
        """
        Load configuration with a layered approach.

        Resolution order:
        1. Pydantic defaults
        2. YAML config (explicit path, else config/defaults/config.yaml if present)
        3. Runtime overrides (e.g. ["display.expansion_policy=preserve"])
        4. Environment variables (CASE_HIERARCHY__DISPLAY__EXPANSION_POLICY=preserve)
        5. Pydantic validation

        Raises:
            FileNotFoundError: If an explicit config file does not exist
            ConfigError: If the merged configuration does not validate
        """
        logger.debug(f"Loading config: path={config_path}, overrides={overrides}, env_prefix={env_prefix}")

        base_config = OmegaConf.create({})

        if config_path:
            config_path = Path(config_path)
            base_config = OmegaConf.merge(base_config, self._load_yaml(config_path))
            logger.debug(f"Merged YAML config from {config_path}")
        else:
            default_cfg_path = self.config_dir / "defaults" / "config.yaml"
            if default_cfg_path.exists():
                base_config = OmegaConf.merge(base_config, self._load_yaml(default_cfg_path))
                logger.debug(f"Merged default config from {default_cfg_path}")

        if overrides:
            base_config = OmegaConf.merge(base_config, OmegaConf.from_dotlist(overrides))
            logger.debug(f"Applied overrides: {overrides}")

        env_config = self._load_env_vars(env_prefix)
        if env_config:
            base_config = OmegaConf.merge(base_config, env_config)
            logger.debug(f"Applied environment variables with prefix {env_prefix}")

        try:
            config_dict = OmegaConf.to_container(base_config, resolve=True)
            validated_config = ExplorerConfig(**(config_dict or {}))
            logger.info("Configuration loaded and validated successfully")
            return validated_config
        except Exception as e:
            logger.error(f"Configuration validation failed: {e}")
            raise ConfigError(f"Invalid configuration: {e}") from e

    def _load_yaml(self, path: Path) -> DictConfig:
        """Load YAML configuration file with caching."""
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        path_str = str(path)
        if path_str in self._cache:
            logger.debug(f"Using cached config for {path}")
            return self._cache[path_str]

        try:
            config = OmegaConf.load(path)
        except Exception as e:
            raise ConfigError(f"Failed to load YAML config from {path}: {e}") from e
        self._cache[path_str] = config
        return config

    def _load_env_vars(self, prefix: str) -> Optional[DictConfig]:
        """
        Collect ``{prefix}__SECTION__KEY`` variables as dotlist overrides.

        Only the strict double-underscore form is considered, so unrelated
        variables sharing the prefix never reach validation.
        """
        env_vars = {}
        strict_prefix = f"{prefix}__"

        for key, value in os.environ.items():
            if key.startswith(strict_prefix):
                config_key = key[len(strict_prefix):].lower().replace("__", ".")
                env_vars[config_key] = value

        if env_vars:
            logger.debug(f"Found config override env vars: {list(env_vars.keys())}")
            return OmegaConf.from_dotlist([f"{k}={v}" for k, v in env_vars.items()])
        return None
