"""Unit tests for configuration loading and validation."""

import os
from pathlib import Path

import pytest

from case_hierarchy.config import load_config
from case_hierarchy.config.manager import ConfigManager
from case_hierarchy.config.schemas.explorer import ColumnsConfig, NormalizerConfig
from case_hierarchy.config.schemas.logging import LoggingConfig
from case_hierarchy.config.schemas.root import ExplorerConfig
from case_hierarchy.models import ExpansionPolicy
from case_hierarchy.utils.errors import ConfigError

REPO_DEFAULTS = Path(__file__).resolve().parents[2] / "config" / "defaults" / "config.yaml"


@pytest.fixture
def manager(tmp_path):
    """ConfigManager pointed at an empty config directory."""
    return ConfigManager(config_dir=tmp_path)


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    """Keep developer environment overrides out of the tests."""
    for key in list(os.environ):
        if key.startswith("CASE_HIERARCHY__"):
            monkeypatch.delenv(key)


class TestSchemas:
    """Test schema defaults and validators."""

    def test_defaults(self):
        config = ExplorerConfig()
        assert config.environment == "development"
        assert config.normalizer.id_lengths == [15, 18]
        assert config.normalizer.no_data_sentinel == "no-cases"
        assert config.columns.new_column_field == "subject"
        assert config.columns.default_fields[0] == "caseNumber"
        assert config.display.expansion_policy is ExpansionPolicy.RESET
        assert config.logging.level == "INFO"

    def test_invalid_environment(self):
        with pytest.raises(ValueError, match="Invalid environment"):
            ExplorerConfig(environment="staging")

    def test_unknown_default_field(self):
        with pytest.raises(ValueError, match="Unknown default column fields"):
            ColumnsConfig(default_fields=["caseNumber", "bogus"])

    def test_unknown_new_column_field(self):
        with pytest.raises(ValueError):
            ColumnsConfig(new_column_field="bogus")

    def test_empty_id_lengths(self):
        with pytest.raises(ValueError):
            NormalizerConfig(id_lengths=[])

    def test_blank_sentinel(self):
        with pytest.raises(ValueError):
            NormalizerConfig(no_data_sentinel="  ")

    def test_log_level_normalized(self):
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValueError):
            LoggingConfig(level="LOUD")

    def test_log_path(self, tmp_path):
        assert LoggingConfig().get_log_path() is None
        assert LoggingConfig(log_dir=str(tmp_path)).get_log_path() == tmp_path.resolve()


class TestConfigManager:
    """Test layered loading."""

    def test_pydantic_defaults_without_files(self, manager):
        config = manager.load_config()
        assert config.display.expansion_policy is ExpansionPolicy.RESET

    def test_repo_defaults_file(self, manager):
        config = manager.load_config(config_path=REPO_DEFAULTS)
        assert config.project == "case-hierarchy-explorer"
        assert config.normalizer.id_lengths == [15, 18]
        assert list(config.columns.default_fields) == list(ExplorerConfig().columns.default_fields)

    def test_yaml_file(self, manager, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text(
            "environment: testing\n"
            "display:\n"
            "  expansion_policy: preserve\n"
            "columns:\n"
            "  default_fields: [status, priority]\n"
        )
        config = manager.load_config(config_path=path)
        assert config.environment == "testing"
        assert config.display.expansion_policy is ExpansionPolicy.PRESERVE
        assert config.columns.default_fields == ["status", "priority"]

    def test_default_file_in_config_dir(self, tmp_path):
        defaults = tmp_path / "defaults"
        defaults.mkdir()
        (defaults / "config.yaml").write_text("normalizer:\n  no_data_sentinel: nothing\n")
        config = ConfigManager(config_dir=tmp_path).load_config()
        assert config.normalizer.no_data_sentinel == "nothing"

    def test_overrides(self, manager):
        config = manager.load_config(overrides=["display.expansion_policy=preserve", "logging.level=debug"])
        assert config.display.expansion_policy is ExpansionPolicy.PRESERVE
        assert config.logging.level == "DEBUG"

    def test_env_vars(self, manager, monkeypatch):
        monkeypatch.setenv("CASE_HIERARCHY__DISPLAY__EXPANSION_POLICY", "preserve")
        monkeypatch.setenv("CASE_HIERARCHY__NORMALIZER__LINK_PREFIX", "/r/")
        config = manager.load_config()
        assert config.display.expansion_policy is ExpansionPolicy.PRESERVE
        assert config.normalizer.link_prefix == "/r/"

    def test_env_beats_overrides(self, manager, monkeypatch):
        monkeypatch.setenv("CASE_HIERARCHY__ENVIRONMENT", "production")
        config = manager.load_config(overrides=["environment=testing"])
        assert config.environment == "production"

    def test_prefix_without_separator_ignored(self, manager, monkeypatch):
        monkeypatch.setenv("CASE_HIERARCHY_ENVIRONMENT", "bogus")
        assert manager.load_config().environment == "development"

    def test_invalid_value(self, manager):
        with pytest.raises(ConfigError, match="Invalid configuration"):
            manager.load_config(overrides=["environment=staging"])

    def test_missing_file(self, manager, tmp_path):
        with pytest.raises(FileNotFoundError):
            manager.load_config(config_path=tmp_path / "missing.yaml")

    def test_load_config_helper(self):
        config = load_config(config_path=str(REPO_DEFAULTS), overrides=["environment=testing"])
        assert config.environment == "testing"
