#!/usr/bin/env python3
"""
Image Service - Converts clipboard bitmaps to PNG files partitioned by week
"""
import logging
import struct
import time
from io import BytesIO
from pathlib import Path
from typing import Optional

from PIL import Image

from dbclip.exceptions import CaptureError
from dbclip.services.clipboard_backend import ClipboardBackend, ClipFormat

logger = logging.getLogger(__name__)

PNG_MIME = "image/png"

BITMAPFILEHEADER_SIZE = 14
BITMAPINFOHEADER_SIZE = 40
BI_BITFIELDS = 3
BI_ALPHABITFIELDS = 6

# Modes the PNG encoder accepts as-is
PNG_MODES = ("1", "L", "LA", "P", "RGB", "RGBA", "I", "I;16")


def dib_to_image(dib_data: bytes) -> Image.Image:
    """
    Decode a packed DIB (CF_DIB payload) into an owned PIL image

    A DIB is a BMP file without its 14-byte file header, so the header is
    synthesised with the pixel offset computed from the info header and
    colour table.
    """
    if len(dib_data) < BITMAPINFOHEADER_SIZE:
        raise CaptureError(f"DIB too short ({len(dib_data)} bytes)")

    header_size, _, _, _, bit_count, compression = struct.unpack_from("<IiiHHI", dib_data, 0)
    colors_used = struct.unpack_from("<I", dib_data, 32)[0]

    if colors_used:
        color_table = colors_used * 4
    elif bit_count <= 8:
        color_table = (1 << bit_count) * 4
    else:
        color_table = 0

    masks = 0
    if header_size == BITMAPINFOHEADER_SIZE:
        if compression == BI_BITFIELDS:
            masks = 12
        elif compression == BI_ALPHABITFIELDS:
            masks = 16

    pixel_offset = BITMAPFILEHEADER_SIZE + header_size + masks + color_table
    file_header = struct.pack(
        "<2sIHHI", b"BM", BITMAPFILEHEADER_SIZE + len(dib_data), 0, 0, pixel_offset
    )

    try:
        image = Image.open(BytesIO(file_header + dib_data))
        image.load()
    except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as e:
        raise CaptureError(f"Cannot decode DIB: {e}") from e
    return image


class ImageService:
    """Service for saving clipboard images as week-partitioned PNG files"""

    def __init__(self, base_folder: str = "images"):
        """
        Initialize image service

        Args:
            base_folder: Folder that receives one sub-folder per week label
        """
        logger.info("[ImageService.__init__] Starting initialization...")
        self.base_folder = base_folder
        self._last_suffix = 0
        logger.info(f"[ImageService.__init__] Images will be saved under: {self.base_folder}")

    @staticmethod
    def find_encoder(mime_type: str) -> Optional[str]:
        """
        Find a registered Pillow encoder for a MIME type

        Returns:
            Pillow format name, or None if no plugin can write that type
        """
        Image.init()
        for format_name, format_mime in Image.MIME.items():
            if format_mime == mime_type and format_name in Image.SAVE:
                return format_name
        return None

    def read_clipboard_image(self, clipboard: ClipboardBackend) -> Optional[Image.Image]:
        """
        Copy the clipboard bitmap into an owned image

        CF_DIB is preferred; CF_BITMAP is used only if no DIB is on the
        clipboard. Returns None if neither is present.
        """
        if clipboard.is_format_available(ClipFormat.DIB):
            dib_data = clipboard.get_dib()
            if not dib_data:
                return None
            return dib_to_image(dib_data)

        if clipboard.is_format_available(ClipFormat.BITMAP):
            return clipboard.get_bitmap()

        return None

    def _next_suffix(self) -> int:
        """Nanosecond timestamp, bumped so names never repeat within a run"""
        suffix = max(time.time_ns(), self._last_suffix + 1)
        self._last_suffix = suffix
        return suffix

    def image_path(self, week: str) -> Path:
        """Next output path, creating the week folder if needed"""
        folder = Path(self.base_folder) / week
        folder.mkdir(parents=True, exist_ok=True)
        return folder / f"clip_{self._next_suffix()}.png"

    def save_png(self, image: Image.Image, week: str) -> Optional[str]:
        """
        Encode image as PNG under the week folder

        Returns:
            Path of the written file, or None if no PNG encoder is registered
            or encoding failed
        """
        encoder = self.find_encoder(PNG_MIME)
        if encoder is None:
            logger.warning(f"No encoder registered for {PNG_MIME}, image not saved")
            return None

        if image.mode not in PNG_MODES:
            image = image.convert("RGBA")

        path = None
        try:
            path = self.image_path(week)
            image.save(path, format=encoder)
        except (OSError, ValueError) as e:
            logger.error(f"Error writing clipboard image for {week}: {e}")
            if path is not None:
                path.unlink(missing_ok=True)
            return None

        return str(path)

    def capture(self, clipboard: ClipboardBackend, week: str) -> Optional[str]:
        """
        Save the current clipboard image, if any

        The file is written before anyone knows whether it duplicates the
        previous capture; the caller deletes it in that case.

        Args:
            clipboard: An opened clipboard
            week: Week label used as the sub-folder name

        Returns:
            Path of the PNG file or None
        """
        try:
            image = self.read_clipboard_image(clipboard)
        except CaptureError as e:
            logger.warning(f"Clipboard image skipped: {e}")
            return None

        if image is None:
            return None

        return self.save_png(image, week)
