"""Tests for the pyperclip/ImageGrab clipboard backend."""

import pyperclip
import pytest
from PIL import Image

from dbclip.services import portable_clipboard
from dbclip.services.clipboard_backend import ClipFormat, clipboard_session, create_clipboard, read_text
from dbclip.services.portable_clipboard import PortableClipboard


@pytest.fixture
def clipboard_contents(monkeypatch):
    contents = {"text": "", "image": None}
    monkeypatch.setattr(portable_clipboard.pyperclip, "paste", lambda: contents["text"])
    monkeypatch.setattr(portable_clipboard.ImageGrab, "grabclipboard", lambda: contents["image"])
    return contents


def test_text_snapshot(clipboard_contents):
    clipboard_contents["text"] = "copied"
    clipboard = PortableClipboard()

    with clipboard_session(clipboard) as acquired:
        clipboard_contents["text"] = "changed while open"
        assert acquired is True
        assert read_text(clipboard) == "copied"

    assert clipboard.get_text() == ""


def test_image_snapshot(clipboard_contents):
    clipboard_contents["image"] = Image.new("RGB", (3, 2), (9, 9, 9))
    clipboard = PortableClipboard()

    with clipboard_session(clipboard):
        assert clipboard.is_format_available(ClipFormat.BITMAP)
        assert not clipboard.is_format_available(ClipFormat.DIB)
        bitmap = clipboard.get_bitmap()

    assert bitmap.size == (3, 2)
    assert bitmap is not clipboard_contents["image"]


def test_copied_file_list_is_not_an_image(clipboard_contents):
    clipboard_contents["image"] = ["/tmp/a.png"]
    clipboard = PortableClipboard()

    with clipboard_session(clipboard):
        assert not clipboard.is_format_available(ClipFormat.BITMAP)


def test_unavailable_clipboard_reads_empty(monkeypatch):
    def no_text():
        raise pyperclip.PyperclipException("no copy/paste mechanism")

    def no_image():
        raise NotImplementedError("ImageGrab.grabclipboard() is not supported")

    monkeypatch.setattr(portable_clipboard.pyperclip, "paste", no_text)
    monkeypatch.setattr(portable_clipboard.ImageGrab, "grabclipboard", no_image)
    clipboard = PortableClipboard()

    with clipboard_session(clipboard):
        assert not clipboard.is_format_available(ClipFormat.TEXT)
        assert clipboard.get_bitmap() is None


def test_create_clipboard_off_windows(monkeypatch):
    monkeypatch.setattr("sys.platform", "linux")

    assert isinstance(create_clipboard(), PortableClipboard)


def test_undecodable_clipboard_text_reads_empty(monkeypatch):
    def bad_bytes():
        return b"\xff\xfe".decode("utf-8")

    monkeypatch.setattr(portable_clipboard.pyperclip, "paste", bad_bytes)
    monkeypatch.setattr(portable_clipboard.ImageGrab, "grabclipboard", lambda: None)
    clipboard = PortableClipboard()

    with clipboard_session(clipboard):
        assert read_text(clipboard) == ""
