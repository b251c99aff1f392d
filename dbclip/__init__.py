"""dbclip - clipboard history logger backed by SQLite"""

__version__ = "1.0.0"
