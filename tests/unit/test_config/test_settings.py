"""Tests for settings loading and validation."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from dbclip.settings import MonitorSettings, Settings, SettingsManager, StorageSettings
from dbclip.services.settings_service import SettingsService


def test_settings_defaults():
    settings = Settings()

    assert settings.storage.database_path == "clipboard-history.db"
    assert settings.storage.images_folder == "images"
    assert settings.storage.imports_folder == "imports"
    assert settings.monitor.poll_interval == 1.0
    assert settings.monitor.idle_backoff == 0.5
    assert settings.monitor.capture_text is True
    assert settings.monitor.capture_images is True
    assert settings.logging.level == "INFO"
    assert settings.logging.file is None


def test_poll_interval_must_be_positive():
    with pytest.raises(ValidationError):
        MonitorSettings(poll_interval=0)


def test_idle_backoff_may_be_zero():
    assert MonitorSettings(idle_backoff=0).idle_backoff == 0


def test_blank_paths_rejected():
    with pytest.raises(ValidationError):
        StorageSettings(images_folder="   ")


def test_log_level_normalized_to_upper_case():
    settings = Settings(logging={"level": "debug"})

    assert settings.logging.level == "DEBUG"


def test_unknown_log_level_rejected():
    with pytest.raises(ValidationError):
        Settings(logging={"level": "chatty"})


def test_load_missing_file_uses_defaults(tmp_path: Path):
    manager = SettingsManager(config_path=tmp_path / "nonexistent.yml")

    assert manager.poll_interval == 1.0
    assert manager.database_path == "clipboard-history.db"


def test_load_from_file(temp_config_path: Path):
    temp_config_path.write_text(yaml.safe_dump({
        "storage": {"database_path": "data/clips.db", "images_folder": "data/images"},
        "monitor": {"poll_interval": 2.5, "idle_backoff": 0.25, "capture_images": False},
        "logging": {"level": "warning", "file": "logs/dbclip.log"},
    }))

    manager = SettingsManager(config_path=temp_config_path)

    assert manager.database_path == "data/clips.db"
    assert manager.images_folder == "data/images"
    assert manager.imports_folder == "imports"
    assert manager.poll_interval == 2.5
    assert manager.idle_backoff == 0.25
    assert manager.capture_text is True
    assert manager.capture_images is False
    assert manager.log_level == "WARNING"
    assert manager.log_file == "logs/dbclip.log"


def test_empty_file_uses_defaults(temp_config_path: Path):
    temp_config_path.write_text("")

    manager = SettingsManager(config_path=temp_config_path)

    assert manager.settings == Settings()


def test_invalid_yaml_uses_defaults(temp_config_path: Path):
    temp_config_path.write_text("monitor: [unclosed")

    manager = SettingsManager(config_path=temp_config_path)

    assert manager.settings == Settings()


def test_invalid_values_use_defaults(temp_config_path: Path):
    temp_config_path.write_text(yaml.safe_dump({"monitor": {"poll_interval": -1}}))

    manager = SettingsManager(config_path=temp_config_path)

    assert manager.poll_interval == 1.0


def test_settings_service_exposes_settings(temp_config_path: Path):
    temp_config_path.write_text(yaml.safe_dump({"storage": {"imports_folder": "incoming"}}))

    service = SettingsService(temp_config_path)

    assert service.imports_folder == "incoming"
    assert service.poll_interval == 1.0
    assert service.log_level == "INFO"


def test_settings_file_is_never_rewritten(temp_config_path: Path):
    original = "# hand edited\nmonitor:\n  poll_interval: 2\n"
    temp_config_path.write_text(original)

    service = SettingsService(temp_config_path)

    assert service.poll_interval == 2.0
    assert temp_config_path.read_text() == original
    assert not hasattr(service, "update_settings")
