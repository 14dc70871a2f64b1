"""
Configuration loading and validation.
"""

import json
import logging
import os

import pytest

from exporthub import ConfigError, ConfigLoader, DuplicatePolicy, HubConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("EXPORTHUB_"):
            monkeypatch.delenv(key)


# ============================================================================
# HubConfig
# ============================================================================

class TestHubConfig:

    def test_defaults(self):
        config = HubConfig()
        assert config.duplicate_policy is DuplicatePolicy.ALLOW
        assert config.warn_on_ambiguous is True
        assert config.resource_paths == ["resources"]
        assert config.auto_bootstrap is True
        assert config.log_level == "WARNING"

    def test_coerces_policy_and_level(self):
        config = HubConfig(duplicate_policy="replace", log_level="debug")
        assert config.duplicate_policy is DuplicatePolicy.REPLACE
        assert config.log_level == "DEBUG"

    def test_resource_paths_string(self):
        config = HubConfig(resource_paths=os.pathsep.join(["a", "b"]))
        assert config.resource_paths == ["a", "b"]

    def test_collects_every_error(self):
        with pytest.raises(ConfigError) as exc_info:
            HubConfig(duplicate_policy="sometimes", auto_bootstrap="yes", log_level="LOUD")

        assert len(exc_info.value.errors) == 3
        assert "duplicate_policy" in str(exc_info.value)

    def test_to_dict(self):
        assert HubConfig(duplicate_policy="raise").to_dict() == {
            "duplicate_policy": "raise",
            "warn_on_ambiguous": True,
            "resource_paths": ["resources"],
            "auto_bootstrap": True,
            "log_level": "WARNING",
        }


# ============================================================================
# ConfigLoader
# ============================================================================

class TestConfigLoader:

    def test_defaults_without_sources(self):
        assert ConfigLoader.load().to_dict() == HubConfig().to_dict()

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "hub.yaml"
        path.write_text("duplicate_policy: ignore\nresource_paths:\n  - conf\n")

        config = ConfigLoader.load(path=str(path))

        assert config.duplicate_policy is DuplicatePolicy.IGNORE
        assert config.resource_paths == ["conf"]

    def test_nested_section(self, tmp_path):
        path = tmp_path / "app.yaml"
        path.write_text("exporthub:\n  warn_on_ambiguous: false\n")
        assert ConfigLoader.load(path=str(path)).warn_on_ambiguous is False

    def test_json_file(self, tmp_path):
        path = tmp_path / "hub.json"
        path.write_text(json.dumps({"auto_bootstrap": False}))
        assert ConfigLoader.load(path=str(path)).auto_bootstrap is False

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            ConfigLoader.load(path=str(tmp_path / "absent.yaml"))

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "hub.yaml"
        path.write_text("- a\n")
        with pytest.raises(ConfigError):
            ConfigLoader.load(path=str(path))

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("EXPORTHUB_DUPLICATE_POLICY", "raise")
        monkeypatch.setenv("EXPORTHUB_WARN_ON_AMBIGUOUS", "false")
        monkeypatch.setenv("EXPORTHUB_RESOURCE_PATHS", os.pathsep.join(["x", "y"]))

        config = ConfigLoader.load()

        assert config.duplicate_policy is DuplicatePolicy.RAISE
        assert config.warn_on_ambiguous is False
        assert config.resource_paths == ["x", "y"]

    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("EXPORTHUB_LOG_LEVEL=info\nOTHER=1\n")
        assert ConfigLoader.load(env_file=str(env_file)).log_level == "INFO"

    def test_precedence(self, tmp_path, monkeypatch):
        path = tmp_path / "hub.yaml"
        path.write_text("duplicate_policy: ignore\nlog_level: ERROR\n")
        env_file = tmp_path / ".env"
        env_file.write_text("EXPORTHUB_DUPLICATE_POLICY=replace\n")
        monkeypatch.setenv("EXPORTHUB_DUPLICATE_POLICY", "raise")

        config = ConfigLoader.load(
            path=str(path),
            env_file=str(env_file),
            overrides={"log_level": "DEBUG"},
        )

        assert config.duplicate_policy is DuplicatePolicy.RAISE
        assert config.log_level == "DEBUG"

    def test_custom_prefix(self, monkeypatch):
        monkeypatch.setenv("HUB_AUTO_BOOTSTRAP", "no")
        assert ConfigLoader.load(env_prefix="HUB_").auto_bootstrap is False

    def test_unknown_keys_warn(self, caplog):
        with caplog.at_level(logging.WARNING, logger="exporthub.config"):
            ConfigLoader.load(overrides={"colour": "blue"})
        assert "colour" in caplog.text

    def test_invalid_value(self, monkeypatch):
        monkeypatch.setenv("EXPORTHUB_DUPLICATE_POLICY", "sometimes")
        with pytest.raises(ConfigError):
            ConfigLoader.load()
