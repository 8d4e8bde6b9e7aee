"""Tests for configuration loading."""

import os

import pytest

from chronos.config import Config, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep CHRONOS_* variables from the host out of the tests."""
    for key in list(os.environ):
        if key.startswith("CHRONOS_"):
            monkeypatch.delenv(key)


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults(self):
        """Test the defaults run offline with the usual timings."""
        config = load_config()

        assert config.app.name == "chronos"
        assert config.cloud.enabled is False
        assert config.cloud.is_configured is False
        assert config.save.debounce_seconds == 0.8
        assert config.save.saved_display_seconds == 1.5
        assert config.server.port == 8080

    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_config(tmp_path / "nope.yaml")
        assert config == Config()

    def test_yaml_sections(self, tmp_path):
        """Test each YAML section is parsed."""
        path = tmp_path / "config.yaml"
        path.write_text(
            """
app:
  name: my-journal
storage:
  db_path: /tmp/chronos.db
cloud:
  enabled: true
  project_id: demo-project
  user_id: user-1
  base_url: http://localhost:8085/v1
save:
  debounce_seconds: 0.5
server:
  port: 9000
"""
        )

        config = load_config(path)

        assert config.app.name == "my-journal"
        assert config.storage.db_path == "/tmp/chronos.db"
        assert config.storage.export_dir == "~/.chronos/exports"
        assert config.cloud.is_configured is True
        assert config.cloud.user_id == "user-1"
        assert config.cloud.base_url == "http://localhost:8085/v1"
        assert config.cloud.database == "(default)"
        assert config.save.debounce_seconds == 0.5
        assert config.save.saved_display_seconds == 1.5
        assert config.server.port == 9000
        assert config.server.host == "127.0.0.1"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(path) == Config()

    def test_enabled_without_project(self, tmp_path):
        """Test sync needs a project id as well as the flag."""
        path = tmp_path / "config.yaml"
        path.write_text("cloud:\n  enabled: true\n")

        assert load_config(path).cloud.is_configured is False


class TestEnvOverrides:
    """Tests for CHRONOS_* environment overrides."""

    def test_env_overrides_yaml(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("server:\n  port: 9000\n")
        monkeypatch.setenv("CHRONOS_SERVER_PORT", "9100")

        assert load_config(path).server.port == 9100

    def test_cloud_env(self, monkeypatch):
        """Test cloud settings can come entirely from the environment."""
        monkeypatch.setenv("CHRONOS_CLOUD_ENABLED", "yes")
        monkeypatch.setenv("CHRONOS_CLOUD_PROJECT_ID", "demo-project")
        monkeypatch.setenv("CHRONOS_CLOUD_USER_ID", "user-1")
        monkeypatch.setenv("CHRONOS_CLOUD_TIMEOUT", "2.5")

        config = load_config()

        assert config.cloud.is_configured is True
        assert config.cloud.user_id == "user-1"
        assert config.cloud.timeout_seconds == 2.5

    @pytest.mark.parametrize("value", ["false", "0", "no"])
    def test_cloud_disabled_env(self, monkeypatch, value):
        monkeypatch.setenv("CHRONOS_CLOUD_ENABLED", value)
        assert load_config().cloud.enabled is False

    def test_paths_and_debounce(self, monkeypatch):
        monkeypatch.setenv("CHRONOS_DB_PATH", "/data/cache.db")
        monkeypatch.setenv("CHRONOS_EXPORT_DIR", "/data/exports")
        monkeypatch.setenv("CHRONOS_SAVE_DEBOUNCE", "0.2")

        config = load_config()

        assert config.storage.db_path == "/data/cache.db"
        assert config.storage.export_dir == "/data/exports"
        assert config.save.debounce_seconds == 0.2

    def test_database_and_display(self, monkeypatch):
        """Test the database id and saved-indicator time can be overridden."""
        monkeypatch.setenv("CHRONOS_CLOUD_DATABASE", "journal-db")
        monkeypatch.setenv("CHRONOS_SAVE_DISPLAY", "3")

        config = load_config()

        assert config.cloud.database == "journal-db"
        assert config.save.saved_display_seconds == 3.0
