#!/usr/bin/env python3
"""
Clipboard Backend - OS clipboard access used by the monitor
"""
import logging
import sys
from abc import ABC, abstractmethod
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, Optional

from PIL import Image

logger = logging.getLogger(__name__)


class ClipFormat(Enum):
    TEXT = "text"
    # Device-independent bitmap (packed BITMAPINFO + pixels)
    DIB = "dib"
    # Device-dependent bitmap handle
    BITMAP = "bitmap"


class ClipboardBackend(ABC):
    """
    Exclusive-access clipboard

    Callers must open() before reading and close() afterwards; use
    clipboard_session() so close() runs on every path.
    """

    @abstractmethod
    def open(self) -> bool:
        """Try to take the clipboard. Returns False if another process holds it."""

    @abstractmethod
    def close(self):
        """Release the clipboard"""

    @abstractmethod
    def is_format_available(self, fmt: ClipFormat) -> bool:
        pass

    @abstractmethod
    def get_text(self) -> str:
        """Plain text content, empty if there is none"""

    @abstractmethod
    def get_dib(self) -> Optional[bytes]:
        """Packed DIB bytes, or None"""

    @abstractmethod
    def get_bitmap(self) -> Optional[Image.Image]:
        """Device-dependent bitmap copied into an owned image, or None"""


@contextmanager
def clipboard_session(clipboard: ClipboardBackend) -> Iterator[bool]:
    """
    Hold the clipboard for the duration of a with-block

    Yields whether access was acquired. The clipboard is released on every
    exit path, including exceptions raised inside the block.
    """
    acquired = clipboard.open()
    try:
        yield acquired
    finally:
        if acquired:
            clipboard.close()


def clean_text(text: str) -> str:
    """
    Make clipboard text encodable as UTF-8

    Windows clipboard text is UTF-16 and may hold unpaired surrogates.
    Surrogate pairs are joined into their code point and lone surrogates
    become U+FFFD.
    """
    return text.encode("utf-16-le", "surrogatepass").decode("utf-16-le", "replace")


def read_text(clipboard: ClipboardBackend) -> str:
    """Plain text from an opened clipboard; empty when absent or zero-length"""
    if not clipboard.is_format_available(ClipFormat.TEXT):
        return ""
    return clean_text(clipboard.get_text() or "")


def has_image(clipboard: ClipboardBackend) -> bool:
    return clipboard.is_format_available(ClipFormat.DIB) or clipboard.is_format_available(ClipFormat.BITMAP)


def create_clipboard() -> ClipboardBackend:
    """Clipboard backend for the running platform"""
    if sys.platform == "win32":
        from dbclip.services.win32_clipboard import Win32Clipboard
        logger.info("Using Win32 clipboard backend")
        return Win32Clipboard()

    from dbclip.services.portable_clipboard import PortableClipboard
    logger.info("Using portable clipboard backend (pyperclip + Pillow ImageGrab)")
    return PortableClipboard()
