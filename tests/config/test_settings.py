"""Tests for KernelSettings and load_settings()."""

import logging

import pytest

from budget_kernel.config import KernelSettings, load_settings
from budget_kernel.exceptions import ConfigurationError


@pytest.fixture
def settings_file(tmp_path):
    def _write(text: str):
        path = tmp_path / "budget.yaml"
        path.write_text(text, encoding="utf-8")
        return path

    return _write


class TestDefaults:
    def test_defaults(self):
        settings = KernelSettings()
        assert settings.database_url.startswith("sqlite")
        assert settings.log_level == "INFO"
        assert settings.snapshot_format_version == "1.0.0"
        assert settings.accepted_snapshot_versions == ("1.0.0",)
        assert settings.max_attachment_bytes == 50 * 1024 * 1024

    def test_no_file_no_environment(self):
        assert load_settings(environ={}) == KernelSettings()

    def test_log_level_number(self):
        assert KernelSettings(log_level="debug").log_level_number == logging.DEBUG


class TestYamlFile:
    def test_values_from_file(self, settings_file):
        path = settings_file(
            "database_url: postgresql://budget@localhost/budget\n"
            "log_level: DEBUG\n"
            "echo_sql: true\n"
            "accepted_snapshot_versions: 1.0.0\n"
            "max_attachment_bytes: '1024'\n"
        )
        settings = load_settings(path, environ={})
        assert settings.database_url == "postgresql://budget@localhost/budget"
        assert settings.log_level == "DEBUG"
        assert settings.echo_sql is True
        assert settings.accepted_snapshot_versions == ("1.0.0",)
        assert settings.max_attachment_bytes == 1024

    def test_file_named_by_environment(self, settings_file):
        path = settings_file("log_level: ERROR\n")
        settings = load_settings(environ={"BUDGET_SETTINGS_FILE": str(path)})
        assert settings.log_level == "ERROR"

    def test_empty_file_means_defaults(self, settings_file):
        assert load_settings(settings_file(""), environ={}) == KernelSettings()

    def test_environment_wins_over_file(self, settings_file):
        path = settings_file("database_url: sqlite+pysqlite:///from-file.db\nlog_level: DEBUG\n")
        settings = load_settings(
            path,
            environ={
                "DATABASE_URL": "sqlite+pysqlite:///from-env.db",
                "BUDGET_LOG_LEVEL": "WARNING",
            },
        )
        assert settings.database_url == "sqlite+pysqlite:///from-env.db"
        assert settings.log_level == "WARNING"


class TestInvalidSettings:
    def test_unknown_key(self, settings_file):
        path = settings_file("databse_url: sqlite://\n")
        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(path, environ={})
        assert "databse_url" in str(exc_info.value)
        assert exc_info.value.source == str(path)
        assert exc_info.value.code == "CONFIGURATION_ERROR"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_settings(tmp_path / "absent.yaml", environ={})

    def test_malformed_yaml(self, settings_file):
        with pytest.raises(ConfigurationError):
            load_settings(settings_file("log_level: [DEBUG\n"), environ={})

    def test_document_must_be_a_mapping(self, settings_file):
        with pytest.raises(ConfigurationError):
            load_settings(settings_file("- DEBUG\n- INFO\n"), environ={})

    def test_bad_log_level(self):
        with pytest.raises(ConfigurationError):
            load_settings(environ={"BUDGET_LOG_LEVEL": "LOUD"})

    @pytest.mark.parametrize("value", ["0", "lots"])
    def test_bad_attachment_limit(self, settings_file, value):
        with pytest.raises(ConfigurationError):
            load_settings(settings_file(f"max_attachment_bytes: {value}\n"), environ={})

    def test_export_version_must_be_accepted(self):
        with pytest.raises(ConfigurationError):
            KernelSettings(snapshot_format_version="2.0.0")

    def test_blank_database_url(self):
        with pytest.raises(ConfigurationError):
            KernelSettings(database_url="  ")
