#!/usr/bin/env python3
"""
Settings Service - Wrapper for settings management
"""
import logging
from pathlib import Path
from typing import Optional

from dbclip.settings import SettingsManager

logger = logging.getLogger(__name__)


class SettingsService:
    """Service for managing application settings"""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize settings service

        Args:
            config_path: Optional path to settings file
        """
        logger.info("[SettingsService.__init__] Starting initialization...")
        logger.info(f"[SettingsService.__init__] Loading settings from: {config_path or 'default path'}")
        self._manager = SettingsManager(config_path)
        logger.info("[SettingsService.__init__] Initialization complete")

    @property
    def database_path(self) -> str:
        """Get the clip database path"""
        return self._manager.database_path

    @property
    def images_folder(self) -> str:
        """Get the base folder for captured images"""
        return self._manager.images_folder

    @property
    def imports_folder(self) -> str:
        """Get the folder for extracted imports"""
        return self._manager.imports_folder

    @property
    def poll_interval(self) -> float:
        """Get the poll interval in seconds"""
        return self._manager.poll_interval

    @property
    def idle_backoff(self) -> float:
        """Get the idle backoff in seconds"""
        return self._manager.idle_backoff

    @property
    def capture_text(self) -> bool:
        return self._manager.capture_text

    @property
    def capture_images(self) -> bool:
        return self._manager.capture_images

    @property
    def log_level(self) -> str:
        return self._manager.log_level

    @property
    def log_file(self) -> Optional[str]:
        return self._manager.log_file
