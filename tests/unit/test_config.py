"""Tests for layered configuration loading (defaults -> TOML -> env)."""

import logging

import pytest

from spectree.config import (
    NormalizerSettings,
    SpecTreeConfig,
    VirtualTreeSettings,
    get_config,
    set_config,
)


class TestDefaults:
    def test_default_values(self):
        config = SpecTreeConfig()
        assert config.log_level == "WARNING"
        assert config.structured_logging is True
        assert config.virtual_tree == VirtualTreeSettings(item_height=36, overscan=5)
        assert config.normalizer == NormalizerSettings(default_model="gpt-3.5-turbo-16k")

    def test_from_env_without_sources(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert SpecTreeConfig.from_env() == SpecTreeConfig()


class TestTomlLoading:
    @pytest.fixture
    def config_content(self):
        return """
[logging]
level = "debug"
structured = false

[virtual_tree]
item_height = 40
overscan = 2

[normalizer]
default_model = "gpt-4o"
"""

    def test_explicit_file(self, tmp_path, config_content):
        path = tmp_path / "custom.toml"
        path.write_text(config_content)

        config = SpecTreeConfig.from_env(str(path))
        assert config.log_level == "DEBUG"
        assert config.structured_logging is False
        assert config.virtual_tree.item_height == 40
        assert config.virtual_tree.overscan == 2
        assert config.normalizer.default_model == "gpt-4o"

    def test_file_from_env_var(self, tmp_path, config_content, monkeypatch):
        path = tmp_path / "from-env.toml"
        path.write_text(config_content)
        monkeypatch.setenv("SPECTREE_CONFIG_FILE", str(path))

        assert SpecTreeConfig.from_env().virtual_tree.item_height == 40

    @pytest.mark.parametrize("filename", ["spectree.toml", ".spectree.toml"])
    def test_default_locations(self, tmp_path, config_content, monkeypatch, filename):
        (tmp_path / filename).write_text(config_content)
        monkeypatch.chdir(tmp_path)

        assert SpecTreeConfig.from_env().normalizer.default_model == "gpt-4o"

    def test_missing_file_warns(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING, logger="spectree"):
            config = SpecTreeConfig.from_env(str(tmp_path / "absent.toml"))
        assert config == SpecTreeConfig()
        assert "Config file not found" in caplog.text

    def test_invalid_toml_logged(self, tmp_path, caplog):
        path = tmp_path / "broken.toml"
        path.write_text("[logging\nlevel = ")
        with caplog.at_level(logging.ERROR, logger="spectree"):
            config = SpecTreeConfig.from_env(str(path))
        assert config == SpecTreeConfig()
        assert "Error loading config file" in caplog.text

    def test_invalid_numbers_ignored(self, tmp_path):
        path = tmp_path / "bad-numbers.toml"
        path.write_text("[virtual_tree]\nitem_height = 0\noverscan = \"many\"\n")
        config = SpecTreeConfig.from_env(str(path))
        assert config.virtual_tree == VirtualTreeSettings()


class TestEnvOverrides:
    def test_env_beats_toml(self, tmp_path, monkeypatch):
        path = tmp_path / "spectree.toml"
        path.write_text("[logging]\nlevel = \"ERROR\"\n[virtual_tree]\noverscan = 1\n")
        monkeypatch.setenv("SPECTREE_LOG_LEVEL", "info")
        monkeypatch.setenv("SPECTREE_OVERSCAN", "0")
        monkeypatch.setenv("SPECTREE_ITEM_HEIGHT", "24")
        monkeypatch.setenv("SPECTREE_STRUCTURED_LOGGING", "no")
        monkeypatch.setenv("SPECTREE_DEFAULT_MODEL", "gpt-4o-mini")

        config = SpecTreeConfig.from_env(str(path))
        assert config.log_level == "INFO"
        assert config.virtual_tree.overscan == 0
        assert config.virtual_tree.item_height == 24
        assert config.structured_logging is False
        assert config.normalizer.default_model == "gpt-4o-mini"

    def test_invalid_env_number_ignored(self, tmp_path, monkeypatch, caplog):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("SPECTREE_ITEM_HEIGHT", "tall")
        with caplog.at_level(logging.WARNING, logger="spectree"):
            config = SpecTreeConfig.from_env()
        assert config.virtual_tree.item_height == 36
        assert "SPECTREE_ITEM_HEIGHT" in caplog.text


class TestGlobalConfig:
    def test_get_config_is_cached(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert get_config() is get_config()

    def test_set_config(self):
        custom = SpecTreeConfig(log_level="DEBUG")
        set_config(custom)
        assert get_config() is custom

    def test_setup_logging(self):
        SpecTreeConfig(log_level="ERROR", structured_logging=False).setup_logging()
        root = logging.getLogger("spectree")
        assert root.level == logging.ERROR
        assert len(root.handlers) == 1
