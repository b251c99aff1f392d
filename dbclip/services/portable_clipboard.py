#!/usr/bin/env python3
"""
Portable clipboard backend for non-Windows hosts (pyperclip + Pillow ImageGrab)
"""
import logging
from typing import Optional

import pyperclip
from PIL import Image, ImageGrab

from dbclip.services.clipboard_backend import ClipboardBackend, ClipFormat

logger = logging.getLogger(__name__)


class PortableClipboard(ClipboardBackend):
    """
    Snapshot-based clipboard

    These platforms have no exclusive clipboard lock, so open() reads the
    text and image once and the getters serve that snapshot until close().
    """

    def __init__(self):
        self._text = ""
        self._image: Optional[Image.Image] = None

    def open(self) -> bool:
        self._text = self._paste_text()
        self._image = self._grab_image()
        return True

    def close(self):
        self._text = ""
        self._image = None

    @staticmethod
    def _paste_text() -> str:
        try:
            return pyperclip.paste() or ""
        except (pyperclip.PyperclipException, UnicodeDecodeError) as e:
            logger.debug(f"Clipboard text unavailable: {e}")
            return ""

    @staticmethod
    def _grab_image() -> Optional[Image.Image]:
        try:
            grabbed = ImageGrab.grabclipboard()
        except (NotImplementedError, OSError, Image.DecompressionBombError) as e:
            logger.debug(f"Clipboard image unavailable: {e}")
            return None
        # A list of file names is returned when files were copied
        if isinstance(grabbed, Image.Image):
            grabbed.load()
            return grabbed
        return None

    def is_format_available(self, fmt: ClipFormat) -> bool:
        if fmt is ClipFormat.TEXT:
            return bool(self._text)
        if fmt is ClipFormat.BITMAP:
            return self._image is not None
        return False

    def get_text(self) -> str:
        return self._text

    def get_dib(self) -> Optional[bytes]:
        return None

    def get_bitmap(self) -> Optional[Image.Image]:
        return self._image.copy() if self._image is not None else None
