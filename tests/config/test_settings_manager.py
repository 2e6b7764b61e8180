import json
from pathlib import Path
import pytest
from unittest.mock import MagicMock

# The module under test
from perflog.config.settings_manager import (
    LoggerSettings,
    get_logger_settings,
    get_setting,
    load_config_data,
    set_settings,
    validate_setting,
    DEFAULT_MAX_STORED_SESSIONS,
)


# Mock the ConfigPaths dependency
@pytest.fixture
def mock_config_file(tmp_path: Path, monkeypatch):
    """Fixture to mock ConfigPaths.get_config_file to return a temp file path."""
    temp_config_file = tmp_path / "config.json"
    mock_config_paths = MagicMock()
    mock_config_paths.get_config_file.return_value = temp_config_file

    monkeypatch.setattr(
        "perflog.config.settings_manager.ConfigPaths", mock_config_paths
    )

    return temp_config_file


def test_load_config_data_missing_file(mock_config_file: Path):
    """Test loading data when the config file does not exist."""
    assert not mock_config_file.exists()
    assert load_config_data() == {}


def test_load_config_data_empty_file(mock_config_file: Path):
    """Test loading data from an empty config file."""
    mock_config_file.write_text("")
    assert load_config_data() == {}


def test_load_config_data_corrupt_json(mock_config_file: Path):
    """Test loading data from a file with invalid JSON."""
    mock_config_file.write_text("this is not json")
    assert load_config_data() == {}


def test_load_config_data_not_an_object(mock_config_file: Path):
    """Test loading data from a file holding a JSON list."""
    mock_config_file.write_text("[1, 2, 3]")
    assert load_config_data() == {}


def test_set_settings_merges(mock_config_file: Path):
    """Test setting new configuration and merging with existing data."""
    mock_config_file.write_text(json.dumps({"max_stored_sessions": 10}))

    set_settings({"persist_sessions": False})

    content = json.loads(mock_config_file.read_text())
    assert content == {"max_stored_sessions": 10, "persist_sessions": False}
    assert get_setting("persist_sessions") is False
    assert get_setting("missing", "fallback") == "fallback"


def test_get_logger_settings_defaults(mock_config_file: Path):
    """Test that missing config yields default settings."""
    settings = get_logger_settings()
    assert settings == LoggerSettings()
    assert settings.max_stored_sessions == DEFAULT_MAX_STORED_SESSIONS
    assert settings.persist_sessions is True


def test_get_logger_settings_from_file(mock_config_file: Path):
    """Test that valid config values are applied."""
    mock_config_file.write_text(
        json.dumps(
            {
                "max_stored_sessions": 20,
                "max_storage_bytes": 4096,
                "max_operation_duration": 60,
                "persist_sessions": False,
            }
        )
    )
    settings = get_logger_settings()
    assert settings.max_stored_sessions == 20
    assert settings.max_storage_bytes == 4096
    assert settings.max_operation_duration == 60
    assert settings.persist_sessions is False


@pytest.mark.parametrize(
    "key,value",
    [
        ("max_stored_sessions", 0),
        ("max_stored_sessions", "50"),
        ("max_stored_sessions", True),
        ("max_storage_bytes", -1),
        ("max_operation_duration", 0),
        ("persist_sessions", "yes"),
    ],
)
def test_invalid_values_fall_back(key, value):
    """Test that invalid values are replaced by defaults."""
    settings = LoggerSettings.from_config({key: value})
    assert getattr(settings, key) == getattr(LoggerSettings(), key)


def test_validate_setting():
    """Test validation used when changing a single setting."""
    validate_setting("max_stored_sessions", 10)
    validate_setting("persist_sessions", False)
    with pytest.raises(ValueError, match="Invalid value"):
        validate_setting("max_stored_sessions", 0)
    with pytest.raises(ValueError, match="Unknown setting"):
        validate_setting("theme", "dark")
