#!/usr/bin/env python3
"""
Database Service - Builds clip entries and writes them to the clip log
"""
import getpass
import logging
import socket
from typing import Dict, List, Optional, Tuple

from dbclip.database import ClipDB
from dbclip.models import ClipEntry, ImportBatch, InsertResult
from dbclip.utils.hashing import content_hash
from dbclip.utils.timestamps import resolve_timestamp, timestamp_text, week_label

logger = logging.getLogger(__name__)

UNKNOWN_USER = "UnknownUser"
UNKNOWN_HOST = "UnknownHost"


def get_identity() -> Tuple[str, str]:
    """Username and workstation name of the running process"""
    try:
        username = getpass.getuser() or UNKNOWN_USER
    except (KeyError, OSError):
        username = UNKNOWN_USER
    try:
        workstation = socket.gethostname() or UNKNOWN_HOST
    except OSError:
        workstation = UNKNOWN_HOST
    return username, workstation


class DatabaseService:
    """Service for recording clip entries on behalf of one user and workstation"""

    def __init__(self, db: ClipDB, username: str = None, workstation: str = None):
        """
        Initialize database service

        Args:
            db: Open clip database
            username: Provenance user; read from the OS when omitted
            workstation: Provenance host; read from the OS when omitted
        """
        logger.info("[DatabaseService.__init__] Starting initialization...")
        self.db = db
        if username is None or workstation is None:
            os_username, os_workstation = get_identity()
            username = username if username is not None else os_username
            workstation = workstation if workstation is not None else os_workstation
        self.username = username
        self.workstation = workstation
        logger.info(f"[DatabaseService.__init__] Recording as {self.username}@{self.workstation}")

    @classmethod
    def open(cls, db_path: Optional[str] = None, **kwargs) -> "DatabaseService":
        """Open the database at db_path and wrap it"""
        logger.info(f"[DatabaseService.open] Connecting to database: {db_path or 'default path'}")
        return cls(ClipDB(db_path), **kwargs)

    def build_entry(self, text: str = "", image_path: str = "", timestamp: str = None) -> ClipEntry:
        """
        Build an entry for the current user and workstation

        Args:
            text: Clipboard text, empty for image entries
            image_path: Path of the saved PNG, empty for text entries
            timestamp: ``YYYY-MM-DD HH:MM:SS``; missing or malformed values
                fall back to the current local time
        """
        moment = resolve_timestamp(timestamp)
        stamp = timestamp_text(moment)
        return ClipEntry(
            text=text or "",
            image_path=image_path or "",
            username=self.username,
            workstation=self.workstation,
            week=week_label(moment),
            timestamp=stamp,
            content_hash=content_hash(text, image_path, stamp),
        )

    def save_entry(self, text: str = "", image_path: str = "", timestamp: str = None) -> InsertResult:
        """Build and insert an entry; see build_entry"""
        return self.db.insert(self.build_entry(text, image_path, timestamp))

    def insert(self, entry: ClipEntry) -> InsertResult:
        return self.db.insert(entry)

    def get_entry(self, entry_id: int) -> Optional[ClipEntry]:
        return self.db.get_entry(entry_id)

    def get_entries(self, limit: int = 50, offset: int = 0, **filters) -> List[ClipEntry]:
        return self.db.get_entries(limit, offset, **filters)

    def get_total_count(self, **filters) -> int:
        return self.db.get_total_count(**filters)

    def get_distinct_values(self) -> Dict[str, List[str]]:
        return self.db.get_distinct_values()

    def content_hash_exists(self, entry_hash: str) -> bool:
        return self.db.content_hash_exists(entry_hash)

    def get_image_paths(self) -> List[str]:
        return self.db.get_image_paths()

    def add_import(self, batch: ImportBatch) -> int:
        return self.db.add_import(batch)

    def get_imports(self) -> List[ImportBatch]:
        return self.db.get_imports()

    def delete_import(self, name: str) -> bool:
        return self.db.delete_import(name)

    def backup_to(self, target_path: str):
        self.db.backup_to(target_path)

    def close(self):
        self.db.close()
