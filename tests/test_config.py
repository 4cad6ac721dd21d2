from pathlib import Path

import pytest

from mssql_backup.config import (
    DEFAULT_ARCHIVE_DIRECTORY,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_OUTPUT_DIRECTORY,
    AppConfig,
    ConfigError,
    load_config,
    save_config,
)


def test_load_config_returns_defaults_when_file_missing(tmp_path):
    config = load_config(tmp_path / "missing.yaml")

    assert config == AppConfig()
    assert config.command_timeout == 3600
    assert config.native_compression is False
    assert config.archive_enabled is True


def test_load_config_reads_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "connection_string: SERVER=db01;UID=sa;PWD=pw\n"
        "output_directory: /srv/backups\n"
        "archive_directory: /srv/archive\n"
        "command_timeout: 0\n"
        "databases:\n"
        "  - TZKLLDB\n"
        "  - KCLHRM\n",
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.connection_string == "SERVER=db01;UID=sa;PWD=pw"
    assert config.output_path == Path("/srv/backups")
    assert config.archive_path == Path("/srv/archive")
    assert config.command_timeout == 0
    assert config.databases == ["TZKLLDB", "KCLHRM"]


@pytest.mark.parametrize("value", ["soon", -5, "", None])
def test_invalid_command_timeout_falls_back_to_default(value):
    config = AppConfig.from_dict({"command_timeout": value})

    assert config.command_timeout == DEFAULT_COMMAND_TIMEOUT


def test_blank_directories_fall_back_to_defaults():
    config = AppConfig.from_dict({"output_directory": "  ", "archive_directory": None})

    assert config.output_directory == DEFAULT_OUTPUT_DIRECTORY
    assert config.archive_directory == DEFAULT_ARCHIVE_DIRECTORY


def test_databases_must_be_a_list_of_names():
    with pytest.raises(ConfigError, match="list"):
        AppConfig.from_dict({"databases": "TZKLLDB"})
    with pytest.raises(ConfigError, match="blank"):
        AppConfig.from_dict({"databases": ["TZKLLDB", " "]})


def test_load_config_rejects_invalid_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("databases: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="Cannot parse"):
        load_config(path)


def test_save_config_writes_loadable_file(tmp_path):
    path = tmp_path / "nested" / "config.yaml"
    config = AppConfig(connection_string_secret="mssql-admin", databases=["A", "B"], command_timeout=60)

    save_config(config, path)

    assert load_config(path) == config


def test_null_database_entry_is_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("databases:\n  -\n  - A\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="blank"):
        load_config(path)
    with pytest.raises(ConfigError, match="blank"):
        AppConfig.from_dict({"databases": [None, "A"]})


@pytest.mark.parametrize("key", ["archive_enabled", "native_compression"])
@pytest.mark.parametrize("value", ["false", "no", 0, 1])
def test_flags_accept_only_booleans(key, value):
    with pytest.raises(ConfigError, match=key):
        AppConfig.from_dict({key: value})


def test_flags_read_yaml_booleans(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("archive_enabled: no\nnative_compression: yes\n", encoding="utf-8")

    config = load_config(path)

    assert config.archive_enabled is False
    assert config.native_compression is True
