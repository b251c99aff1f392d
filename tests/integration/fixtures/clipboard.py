"""In-memory clipboard fixtures for tests."""

from typing import Optional

import pytest
from PIL import Image

from dbclip.services.clipboard_backend import ClipboardBackend, ClipFormat


class FakeClipboard(ClipboardBackend):
    """
    Clipboard double.

    A format is present when its attribute is not None, so ``text=""``
    models a present but empty text format.
    """

    def __init__(self, text: Optional[str] = None, dib: Optional[bytes] = None,
                 bitmap: Optional[Image.Image] = None, busy: bool = False):
        self.text = text
        self.dib = dib
        self.bitmap = bitmap
        self.busy = busy
        self.is_open = False
        self.open_calls = 0
        self.close_calls = 0

    def open(self) -> bool:
        self.open_calls += 1
        if self.busy:
            return False
        self.is_open = True
        return True

    def close(self):
        self.close_calls += 1
        self.is_open = False

    def is_format_available(self, fmt: ClipFormat) -> bool:
        assert self.is_open, "clipboard read without open()"
        if fmt is ClipFormat.TEXT:
            return self.text is not None
        if fmt is ClipFormat.DIB:
            return self.dib is not None
        return self.bitmap is not None

    def get_text(self) -> str:
        return self.text or ""

    def get_dib(self) -> Optional[bytes]:
        return self.dib

    def get_bitmap(self) -> Optional[Image.Image]:
        return self.bitmap.copy() if self.bitmap is not None else None


@pytest.fixture
def fake_clipboard() -> FakeClipboard:
    """Empty, available clipboard."""
    return FakeClipboard()
