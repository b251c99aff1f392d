#!/usr/bin/env python3
"""
Database layer for dbclip
Handles SQLite storage of the append-only clip log and import records
"""

import logging
import sqlite3
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from dbclip.exceptions import StoreError
from dbclip.models import ClipEntry, ImportBatch, InsertResult

logger = logging.getLogger(__name__)

CLIP_COLUMNS = "id, data, image_path, username, workstation, week, timestamp, content_hash"
IMPORT_COLUMNS = "id, name, imported_at, imported_by, path, entry_count, workstation"


def _is_content_hash_violation(error: sqlite3.IntegrityError) -> bool:
    message = str(error)
    return "UNIQUE" in message and "content_hash" in message


class ClipDB:
    """SQLite database for clipboard entries"""

    def __init__(self, db_path: str = None, read_only: bool = False):
        """
        Open (or create) the clip log

        Args:
            db_path: SQLite file, or ":memory:"
            read_only: Open an existing file without creating it or its
                tables; the clip table must already exist
        """
        if db_path is None:
            db_path = "clipboard-history.db"

        self.db_path = str(db_path)
        self.read_only = read_only
        if read_only:
            self.conn = self._connect_read_only()
        else:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            try:
                self.conn = sqlite3.connect(self.db_path)
            except sqlite3.Error as e:
                raise StoreError(f"Cannot open database {self.db_path}: {e}") from e
        self.conn.row_factory = sqlite3.Row
        try:
            if read_only:
                self._require_clip_table()
            else:
                self.ensure_schema()
        except StoreError:
            self.close()
            raise

    def _connect_read_only(self) -> sqlite3.Connection:
        path = Path(self.db_path)
        if not path.is_file():
            raise StoreError(f"Database not found: {self.db_path}")
        try:
            return sqlite3.connect(f"{path.resolve().as_uri()}?mode=ro", uri=True)
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open database {self.db_path}: {e}") from e

    def _require_clip_table(self):
        try:
            row = self.conn.execute(
                "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'clip'"
            ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Cannot read database {self.db_path}: {e}") from e
        if row is None:
            raise StoreError(f"No clip table in {self.db_path}")

    def ensure_schema(self):
        """Create the clip and imports tables if they do not exist yet"""
        try:
            cursor = self.conn.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS clip (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    data TEXT COLLATE NOCASE,
                    image_path TEXT,
                    username TEXT COLLATE NOCASE,
                    workstation TEXT COLLATE NOCASE,
                    week TEXT,
                    timestamp DATETIME DEFAULT CURRENT_TIMESTAMP,
                    content_hash TEXT UNIQUE
                )
            """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS imports (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT,
                    imported_at TEXT,
                    imported_by TEXT,
                    path TEXT,
                    entry_count INTEGER,
                    workstation TEXT
                )
            """
            )
            self.conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Cannot create schema in {self.db_path}: {e}") from e

        logger.info(f"Database initialized or already exists at: {self.db_path}")

    def insert(self, entry: ClipEntry) -> InsertResult:
        """
        Append an entry to the clip log

        Args:
            entry: Entry with a precomputed content hash

        Returns:
            INSERTED with the new row id, DUPLICATE if the content hash is
            already stored (no row is written), FAILED for any other error
        """
        try:
            cursor = self.conn.execute(
                """
                INSERT INTO clip (data, image_path, username, workstation, week, timestamp, content_hash)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    entry.text,
                    entry.image_path,
                    entry.username,
                    entry.workstation,
                    entry.week,
                    entry.timestamp,
                    entry.content_hash,
                ),
            )
            self.conn.commit()
        except sqlite3.IntegrityError as e:
            self.conn.rollback()
            if _is_content_hash_violation(e):
                logger.debug(f"Duplicate content hash {entry.content_hash[:16]}..., not inserted")
                return InsertResult.duplicate()
            logger.error(f"Integrity error inserting {entry.kind} entry: {e}")
            return InsertResult.failed(str(e))
        except sqlite3.Error as e:
            self.conn.rollback()
            logger.error(f"Database error inserting {entry.kind} entry: {e}")
            return InsertResult.failed(str(e))

        entry_id = cursor.lastrowid
        logger.debug(
            f"Added entry to DB: ID={entry_id}, Kind={entry.kind}, "
            f"Hash={entry.content_hash[:16]}..., Timestamp={entry.timestamp}"
        )
        return InsertResult.inserted(entry_id)

    def content_hash_exists(self, content_hash: str) -> bool:
        cursor = self.conn.execute(
            "SELECT COUNT(*) AS count FROM clip WHERE content_hash = ?",
            (content_hash,),
        )
        return cursor.fetchone()["count"] > 0

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> ClipEntry:
        return ClipEntry(
            id=row["id"],
            text=row["data"] or "",
            image_path=row["image_path"] or "",
            username=row["username"] or "",
            workstation=row["workstation"] or "",
            week=row["week"] or "",
            timestamp=str(row["timestamp"] or ""),
            content_hash=row["content_hash"] or "",
        )

    def get_entry(self, entry_id: int) -> Optional[ClipEntry]:
        cursor = self.conn.execute(
            f"SELECT {CLIP_COLUMNS} FROM clip WHERE id = ?", (entry_id,)
        )
        row = cursor.fetchone()
        return self._row_to_entry(row) if row else None

    def iter_entries(self) -> Iterator[ClipEntry]:
        """All entries in insertion order"""
        cursor = self.conn.execute(f"SELECT {CLIP_COLUMNS} FROM clip ORDER BY id")
        for row in cursor:
            yield self._row_to_entry(row)

    @staticmethod
    def _build_filters(
        query: str = None,
        username: str = None,
        week: str = None,
        workstation: str = None,
    ) -> Tuple[str, list]:
        """WHERE clause for substring filters; NOCASE columns match case-insensitively"""
        where_clauses = []
        params = []

        if query:
            where_clauses.append(
                "(COALESCE(data, '') LIKE ? OR COALESCE(image_path, '') LIKE ?)"
            )
            params.extend([f"%{query}%", f"%{query}%"])
        if username:
            where_clauses.append("COALESCE(username, '') LIKE ?")
            params.append(f"%{username}%")
        if week:
            where_clauses.append("COALESCE(week, '') LIKE ?")
            params.append(f"%{week}%")
        if workstation:
            where_clauses.append("COALESCE(workstation, '') LIKE ?")
            params.append(f"%{workstation}%")

        where = f"WHERE {' AND '.join(where_clauses)}" if where_clauses else ""
        return where, params

    def get_entries(
        self,
        limit: int = 50,
        offset: int = 0,
        query: str = None,
        username: str = None,
        week: str = None,
        workstation: str = None,
    ) -> List[ClipEntry]:
        """
        Get clip entries, newest first

        Args:
            limit: Maximum number of entries to return
            offset: Number of entries to skip
            query: Substring of the text or image path
            username: Substring of the username
            week: Substring of the week label
            workstation: Substring of the workstation name
        """
        where, params = self._build_filters(query, username, week, workstation)
        cursor = self.conn.execute(
            f"SELECT {CLIP_COLUMNS} FROM clip {where} ORDER BY timestamp DESC, id DESC LIMIT ? OFFSET ?",
            params + [limit, offset],
        )
        return [self._row_to_entry(row) for row in cursor.fetchall()]

    def get_total_count(
        self,
        query: str = None,
        username: str = None,
        week: str = None,
        workstation: str = None,
    ) -> int:
        where, params = self._build_filters(query, username, week, workstation)
        cursor = self.conn.execute(f"SELECT COUNT(*) AS count FROM clip {where}", params)
        return cursor.fetchone()["count"]

    def get_distinct_values(self) -> Dict[str, List[str]]:
        """Distinct non-empty usernames and weeks, sorted"""
        usernames = [
            row[0]
            for row in self.conn.execute(
                "SELECT DISTINCT username FROM clip WHERE COALESCE(username, '') != '' ORDER BY username"
            )
        ]
        weeks = [
            row[0]
            for row in self.conn.execute(
                "SELECT DISTINCT week FROM clip WHERE COALESCE(week, '') != '' ORDER BY week"
            )
        ]
        return {"usernames": usernames, "weeks": weeks}

    def get_image_paths(self) -> List[str]:
        """Distinct non-empty image paths, in insertion order"""
        cursor = self.conn.execute(
            "SELECT image_path FROM clip WHERE COALESCE(image_path, '') != '' GROUP BY image_path ORDER BY MIN(id)"
        )
        return [row["image_path"] for row in cursor.fetchall()]

    def add_import(self, batch: ImportBatch) -> int:
        cursor = self.conn.execute(
            """
            INSERT INTO imports (name, imported_at, imported_by, path, entry_count, workstation)
            VALUES (?, ?, ?, ?, ?, ?)
        """,
            (
                batch.name,
                batch.imported_at,
                batch.imported_by,
                batch.path,
                batch.entry_count,
                batch.workstation,
            ),
        )
        self.conn.commit()
        logger.info(f"Registered import '{batch.name}' ({batch.entry_count} entries)")
        return cursor.lastrowid

    def get_imports(self) -> List[ImportBatch]:
        """All registered imports, most recent first"""
        cursor = self.conn.execute(
            f"SELECT {IMPORT_COLUMNS} FROM imports ORDER BY imported_at DESC, id DESC"
        )
        return [
            ImportBatch(
                id=row["id"],
                name=row["name"] or "",
                imported_at=row["imported_at"] or "",
                imported_by=row["imported_by"] or "",
                path=row["path"] or "",
                entry_count=row["entry_count"] or 0,
                workstation=row["workstation"] or "",
            )
            for row in cursor.fetchall()
        ]

    def delete_import(self, name: str) -> bool:
        cursor = self.conn.execute("DELETE FROM imports WHERE name = ?", (name,))
        self.conn.commit()
        return cursor.rowcount > 0

    def integrity_check(self) -> bool:
        row = self.conn.execute("PRAGMA integrity_check").fetchone()
        return row is not None and row[0] == "ok"

    def backup_to(self, target_path: str):
        """Write a consistent snapshot of the database to target_path"""
        target = sqlite3.connect(str(target_path))
        try:
            self.conn.backup(target)
        finally:
            target.close()

    def close(self):
        """Close database connection"""
        if self.conn:
            self.conn.close()
            self.conn = None
