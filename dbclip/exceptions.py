"""Exception hierarchy for dbclip."""


class DbClipError(Exception):
    """Base class for all dbclip errors"""


class StoreError(DbClipError):
    """The clip database could not be opened or its schema created"""


class CaptureError(DbClipError):
    """Clipboard content could not be converted or encoded"""


class ArchiveError(DbClipError):
    """An export archive is missing, malformed or failed validation"""
