#!/usr/bin/env python3
"""
dbclip Settings Management
Loads and validates settings from settings.yml using Pydantic
"""

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("settings.yml")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class StorageSettings(BaseModel):
    """Where the clip log, captured images and extracted imports live"""
    database_path: str = Field(
        default="clipboard-history.db",
        description="SQLite database file (':memory:' for a throwaway log)"
    )
    images_folder: str = Field(
        default="images",
        description="Base folder for captured images, partitioned by week"
    )
    imports_folder: str = Field(
        default="imports",
        description="Folder that extracted export archives are unpacked into"
    )

    @field_validator('database_path', 'images_folder', 'imports_folder')
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Paths must not be empty"""
        if not v or not v.strip():
            raise ValueError("path must not be empty")
        return v.strip()


class MonitorSettings(BaseModel):
    """Poll loop timing and captured formats"""
    poll_interval: float = Field(
        default=1.0,
        gt=0,
        le=60,
        description="Seconds to wait between clipboard samples"
    )
    idle_backoff: float = Field(
        default=0.5,
        ge=0,
        le=60,
        description="Extra seconds to wait after a tick that committed nothing"
    )
    capture_text: bool = Field(default=True, description="Record plain text copies")
    capture_images: bool = Field(default=True, description="Record bitmap copies as PNG files")


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO", description="Root log level")
    file: Optional[str] = Field(default=None, description="Optional log file in addition to stderr")

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Accept any case, store upper case"""
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"level must be one of {', '.join(LOG_LEVELS)}")
        return level


class Settings(BaseModel):
    """Main settings model"""
    storage: StorageSettings = Field(default_factory=StorageSettings)
    monitor: MonitorSettings = Field(default_factory=MonitorSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


class SettingsManager:
    """Manages loading and accessing settings"""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize settings manager

        Args:
            config_path: Path to settings.yml file. Defaults to ./settings.yml
        """
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        self.config_path = Path(config_path)
        self.settings = self._load_settings()

    def _load_settings(self) -> Settings:
        """Load and validate settings from YAML file"""
        if not self.config_path.exists():
            logger.info(f"Settings file not found at {self.config_path}, using defaults")
            return Settings()

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Error reading settings file {self.config_path}: {e}")
            logger.warning("Using default settings")
            return Settings()

        if config_data is None:
            logger.info("Settings file is empty, using defaults")
            return Settings()

        try:
            settings = Settings(**config_data)
        except (TypeError, ValidationError) as e:
            logger.warning(f"Invalid settings in {self.config_path}: {e}")
            logger.warning("Using default settings")
            return Settings()

        logger.info(f"Loaded settings from {self.config_path}")
        return settings

    @property
    def database_path(self) -> str:
        return self.settings.storage.database_path

    @property
    def images_folder(self) -> str:
        return self.settings.storage.images_folder

    @property
    def imports_folder(self) -> str:
        return self.settings.storage.imports_folder

    @property
    def poll_interval(self) -> float:
        return self.settings.monitor.poll_interval

    @property
    def idle_backoff(self) -> float:
        return self.settings.monitor.idle_backoff

    @property
    def capture_text(self) -> bool:
        return self.settings.monitor.capture_text

    @property
    def capture_images(self) -> bool:
        return self.settings.monitor.capture_images

    @property
    def log_level(self) -> str:
        return self.settings.logging.level

    @property
    def log_file(self) -> Optional[str]:
        return self.settings.logging.file
