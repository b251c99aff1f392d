"""Domain records shared by the store, the monitor and the archive tools."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class ClipEntry:
    """One row of the clip log. Exactly one of text/image_path is non-empty."""
    text: str
    image_path: str
    username: str
    workstation: str
    week: str
    timestamp: str
    content_hash: str
    id: Optional[int] = None

    @property
    def kind(self) -> str:
        return "image" if self.image_path else "text"


@dataclass(frozen=True)
class ImportBatch:
    """A registered archive import (row of the imports table)"""
    name: str
    imported_at: str
    imported_by: str
    path: str
    entry_count: int
    workstation: str
    id: Optional[int] = None


class InsertStatus(Enum):
    INSERTED = "inserted"
    DUPLICATE = "duplicate"
    FAILED = "failed"


@dataclass(frozen=True)
class InsertResult:
    """Outcome of a store insert; callers branch on status instead of catching errors"""
    status: InsertStatus
    entry_id: Optional[int] = None
    reason: Optional[str] = None

    @classmethod
    def inserted(cls, entry_id: int) -> "InsertResult":
        return cls(InsertStatus.INSERTED, entry_id=entry_id)

    @classmethod
    def duplicate(cls) -> "InsertResult":
        return cls(InsertStatus.DUPLICATE, reason="content hash already stored")

    @classmethod
    def failed(cls, reason: str) -> "InsertResult":
        return cls(InsertStatus.FAILED, reason=reason)

    @property
    def is_inserted(self) -> bool:
        return self.status is InsertStatus.INSERTED

    @property
    def is_duplicate(self) -> bool:
        return self.status is InsertStatus.DUPLICATE


@dataclass
class MergeSummary:
    inserted: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.inserted + self.skipped + self.failed
