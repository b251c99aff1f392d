#!/usr/bin/env python3
"""
Win32 clipboard backend using pywin32
"""
import logging
from typing import Optional

import pywintypes
import win32clipboard
import win32con
import win32gui
import win32ui
from PIL import Image

from dbclip.exceptions import CaptureError
from dbclip.services.clipboard_backend import ClipboardBackend, ClipFormat

logger = logging.getLogger(__name__)

FORMAT_CODES = {
    ClipFormat.TEXT: win32con.CF_UNICODETEXT,
    ClipFormat.DIB: win32con.CF_DIB,
    ClipFormat.BITMAP: win32con.CF_BITMAP,
}


class Win32Clipboard(ClipboardBackend):
    """Windows clipboard via win32clipboard; never blocks on contention"""

    def open(self) -> bool:
        try:
            win32clipboard.OpenClipboard()
            return True
        except pywintypes.error as e:
            logger.debug(f"Clipboard busy: {e}")
            return False

    def close(self):
        try:
            win32clipboard.CloseClipboard()
        except pywintypes.error as e:
            logger.debug(f"CloseClipboard failed: {e}")

    def is_format_available(self, fmt: ClipFormat) -> bool:
        return bool(win32clipboard.IsClipboardFormatAvailable(FORMAT_CODES[fmt]))

    def get_text(self) -> str:
        try:
            return win32clipboard.GetClipboardData(win32con.CF_UNICODETEXT) or ""
        except (pywintypes.error, TypeError) as e:
            logger.debug(f"No clipboard text: {e}")
            return ""

    def get_dib(self) -> Optional[bytes]:
        try:
            data = win32clipboard.GetClipboardData(win32con.CF_DIB)
        except (pywintypes.error, TypeError) as e:
            logger.debug(f"No clipboard DIB: {e}")
            return None
        return bytes(data) if data else None

    def get_bitmap(self) -> Optional[Image.Image]:
        """
        Copy the clipboard HBITMAP into a PIL image

        The clipboard owns the source handle, so the pixels are blitted into
        a bitmap we create and free here.
        """
        try:
            source = win32clipboard.GetClipboardData(win32con.CF_BITMAP)
        except (pywintypes.error, TypeError) as e:
            logger.debug(f"No clipboard bitmap: {e}")
            return None
        if not source:
            return None

        try:
            info = win32gui.GetObject(source)
        except pywintypes.error as e:
            raise CaptureError(f"Invalid clipboard bitmap handle: {e}") from e
        width, height = info.bmWidth, info.bmHeight

        screen_dc = win32gui.GetDC(0)
        src_dc = win32gui.CreateCompatibleDC(screen_dc)
        dest_dc = win32gui.CreateCompatibleDC(screen_dc)
        copy = win32gui.CreateCompatibleBitmap(screen_dc, width, height)
        try:
            old_src = win32gui.SelectObject(src_dc, source)
            old_dest = win32gui.SelectObject(dest_dc, copy)
            win32gui.BitBlt(dest_dc, 0, 0, width, height, src_dc, 0, 0, win32con.SRCCOPY)
            win32gui.SelectObject(src_dc, old_src)
            win32gui.SelectObject(dest_dc, old_dest)

            bits = win32ui.CreateBitmapFromHandle(copy).GetBitmapBits(True)
            image = Image.frombuffer("RGB", (width, height), bits, "raw", "BGRX", 0, 1)
            return image.copy()
        except (pywintypes.error, win32ui.error, ValueError) as e:
            raise CaptureError(f"Cannot copy clipboard bitmap: {e}") from e
        finally:
            win32gui.DeleteDC(src_dc)
            win32gui.DeleteDC(dest_dc)
            win32gui.ReleaseDC(0, screen_dc)
            win32gui.DeleteObject(copy)
