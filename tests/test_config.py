"""
Tests for qsfilter/config.py configuration management.

Tests the hierarchical configuration system with sensible defaults,
including file loading, environment variables and saving.
"""
import os
import pytest
from pathlib import Path

import tomli

import qsfilter.config as config_module
from qsfilter.config import QsfilterConfig, get_config, init_config


@pytest.fixture
def clean_env(monkeypatch):
    """Remove any existing QSFILTER_ environment variables."""
    for key in list(os.environ.keys()):
        if key.startswith("QSFILTER_"):
            monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture
def sandbox(tmp_path, monkeypatch, clean_env):
    """Run in an empty working directory with an empty home."""
    monkeypatch.chdir(tmp_path)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return tmp_path


class TestDefaults:
    """Test default configuration values."""

    def test_defaults(self):
        config = QsfilterConfig()
        assert config.database == "qsfilter.db"
        assert config.database_url is None
        assert config.default_page_size == 20
        assert config.max_page_size == 100
        assert config.strict_conditions is False
        assert config.output_format == "table"

    def test_load_without_files_returns_defaults(self, sandbox):
        config = QsfilterConfig.load()
        assert config.database == "qsfilter.db"
        assert config.strict_conditions is False


class TestConfigLoading:
    """Test configuration loading from files."""

    def test_local_file(self, sandbox):
        (sandbox / "qsfilter.toml").write_text('database = "local.db"\ndefault_page_size = 50\n')
        config = QsfilterConfig.load()
        assert config.database == "local.db"
        assert config.default_page_size == 50

    def test_rc_file(self, sandbox):
        (sandbox / ".qsfilterrc").write_text('strict_conditions = true\n')
        assert QsfilterConfig.load().strict_conditions is True

    def test_local_overrides_user(self, sandbox):
        user_dir = sandbox / "home" / ".config" / "qsfilter"
        user_dir.mkdir(parents=True)
        (user_dir / "config.toml").write_text('database = "user.db"\nmax_page_size = 500\n')
        (sandbox / "qsfilter.toml").write_text('database = "local.db"\n')

        config = QsfilterConfig.load()
        assert config.database == "local.db"
        assert config.max_page_size == 500

    def test_explicit_file_overrides_all(self, sandbox):
        (sandbox / "qsfilter.toml").write_text('database = "local.db"\n')
        explicit = sandbox / "explicit.toml"
        explicit.write_text('database = "explicit.db"\n')
        assert QsfilterConfig.load(config_file=explicit).database == "explicit.db"

    def test_unknown_keys_ignored(self, sandbox):
        (sandbox / "qsfilter.toml").write_text('nonsense = 1\n')
        config = QsfilterConfig.load()
        assert not hasattr(config, "nonsense")


class TestEnvironmentVariables:
    """Test environment variable overrides."""

    def test_string(self, sandbox, monkeypatch):
        monkeypatch.setenv("QSFILTER_DATABASE", "env.db")
        assert QsfilterConfig.load().database == "env.db"

    def test_bool(self, sandbox, monkeypatch):
        monkeypatch.setenv("QSFILTER_STRICT_CONDITIONS", "yes")
        assert QsfilterConfig.load().strict_conditions is True

    def test_int(self, sandbox, monkeypatch):
        monkeypatch.setenv("QSFILTER_DEFAULT_PAGE_SIZE", "15")
        assert QsfilterConfig.load().default_page_size == 15

    def test_env_overrides_file(self, sandbox, monkeypatch):
        (sandbox / "qsfilter.toml").write_text('database = "file.db"\n')
        monkeypatch.setenv("QSFILTER_DATABASE", "env.db")
        assert QsfilterConfig.load().database == "env.db"


class TestSaveAndUrls:
    """Test saving and database URL helpers."""

    def test_save_round_trip(self, tmp_path):
        config = QsfilterConfig(database="saved.db", max_page_size=42)
        path = tmp_path / "out" / "config.toml"
        config.save(path)

        with open(path, "rb") as f:
            data = tomli.load(f)
        assert data["database"] == "saved.db"
        assert data["max_page_size"] == 42
        assert "database_url" not in data

    def test_sqlite_url_from_path(self):
        config = QsfilterConfig(database="/tmp/app.db")
        assert config.get_database_url() == "sqlite:////tmp/app.db"
        assert config.is_sqlite()

    def test_explicit_url(self):
        config = QsfilterConfig(database_url="postgresql://u:p@localhost/app")
        assert config.get_database_url() == "postgresql://u:p@localhost/app"
        assert not config.is_sqlite()


class TestGlobalConfig:
    """Test the global configuration accessors."""

    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_init_config_overrides(self):
        config = init_config(database="cli.db", strict_conditions=True, output_format=None)
        assert config.database == "cli.db"
        assert config.strict_conditions is True
        assert config.output_format == "table"

    def test_reload(self, sandbox):
        config_module._config = None
        first = get_config()
        assert get_config(reload=True) is not first
