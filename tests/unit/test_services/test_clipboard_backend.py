"""Tests for clipboard session handling and text capture."""

from typing import Optional

import pytest
from PIL import Image

from dbclip.services.clipboard_backend import (
    ClipboardBackend,
    ClipFormat,
    clean_text,
    clipboard_session,
    has_image,
    read_text,
)


class RecordingClipboard(ClipboardBackend):
    def __init__(self, acquire: bool = True, formats=(), text: str = ""):
        self.acquire = acquire
        self.formats = set(formats)
        self.text = text
        self.events = []

    def open(self) -> bool:
        self.events.append("open")
        return self.acquire

    def close(self):
        self.events.append("close")

    def is_format_available(self, fmt: ClipFormat) -> bool:
        return fmt in self.formats

    def get_text(self) -> str:
        return self.text

    def get_dib(self) -> Optional[bytes]:
        return None

    def get_bitmap(self) -> Optional[Image.Image]:
        return None


def test_session_releases_clipboard():
    clipboard = RecordingClipboard()

    with clipboard_session(clipboard) as acquired:
        assert acquired is True
        assert clipboard.events == ["open"]

    assert clipboard.events == ["open", "close"]


def test_session_releases_clipboard_on_error():
    clipboard = RecordingClipboard()

    with pytest.raises(RuntimeError):
        with clipboard_session(clipboard):
            raise RuntimeError("capture failed")

    assert clipboard.events == ["open", "close"]


def test_session_does_not_close_unacquired_clipboard():
    clipboard = RecordingClipboard(acquire=False)

    with clipboard_session(clipboard) as acquired:
        assert acquired is False

    assert clipboard.events == ["open"]


def test_read_text_returns_text():
    clipboard = RecordingClipboard(formats=[ClipFormat.TEXT], text="hello")

    assert read_text(clipboard) == "hello"


def test_read_text_absent_and_empty_look_the_same():
    absent = RecordingClipboard(formats=[], text="ignored")
    empty = RecordingClipboard(formats=[ClipFormat.TEXT], text="")

    assert read_text(absent) == ""
    assert read_text(empty) == ""


@pytest.mark.parametrize("formats,expected", [
    ([], False),
    ([ClipFormat.TEXT], False),
    ([ClipFormat.DIB], True),
    ([ClipFormat.BITMAP], True),
    ([ClipFormat.DIB, ClipFormat.BITMAP], True),
])
def test_has_image(formats, expected):
    assert has_image(RecordingClipboard(formats=formats)) is expected


def test_read_text_replaces_lone_surrogates():
    lone_high_surrogate = chr(0xD83D)
    clipboard = RecordingClipboard(formats=[ClipFormat.TEXT], text=f"broken {lone_high_surrogate} emoji")

    text = read_text(clipboard)

    assert text.startswith("broken " + chr(0xFFFD))
    assert text.endswith("emoji")
    assert lone_high_surrogate not in text
    text.encode("utf-8")


def test_clean_text_joins_surrogate_pairs():
    pair = chr(0xD83D) + chr(0xDE00)

    assert clean_text(f"smile {pair}") == "smile " + chr(0x1F600)


def test_clean_text_keeps_valid_text():
    text = "héllo wörld " + chr(0x1F600)

    assert clean_text(text) == text
