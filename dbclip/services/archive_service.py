#!/usr/bin/env python3
"""
Archive Service - Exports the clip log to a zip archive and merges archives back in
"""
import hashlib
import logging
import re
import shutil
import sqlite3
import tempfile
import zipfile
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_pascal

from dbclip.database import ClipDB
from dbclip.exceptions import ArchiveError, StoreError
from dbclip.models import ClipEntry, ImportBatch, MergeSummary
from dbclip.services.database_service import DatabaseService
from dbclip.utils.hashing import content_hash
from dbclip.utils.timestamps import normalize_timestamp, parse_timestamp, week_label

logger = logging.getLogger(__name__)

MANIFEST_FILE = "manifest.json"
DATABASE_FILE = "clipboard-history.db"
IMAGES_FOLDER = "images"

WEEK_PATTERN = re.compile(r"^\d+-W\d+$", re.IGNORECASE)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Manifest(BaseModel):
    """Describes an export archive; serialized with PascalCase keys"""
    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True)

    version: str = "1.0"
    exported_by_user: str = ""
    workstation: str = ""
    exported_at_utc: str = Field(default_factory=lambda: _utc_now().isoformat())
    images_folder: Optional[str] = IMAGES_FOLDER
    database_file: str = DATABASE_FILE
    entry_count: int = 0
    notes: Optional[str] = None
    # Used to detect modified archives on import
    source_hash: Optional[str] = None

    @field_validator("database_file", "images_folder")
    @classmethod
    def _bare_name(cls, value: Optional[str]) -> Optional[str]:
        # Both must name an entry directly inside the extracted folder
        if value is None:
            return value
        if value in ("", ".", "..") or "/" in value or "\\" in value or Path(value).name != value:
            raise ValueError(f"must be a bare file or folder name, got {value!r}")
        return value


def split_image_path(image_path: str) -> Tuple[Optional[str], str]:
    """
    Split a stored image path into (week, file name)

    Paths may use either separator since they are written on the capturing
    host. week is None when the parent folder is not a week label.
    """
    parts = [part for part in re.split(r"[\\/]", image_path) if part]
    if not parts:
        return None, ""
    filename = parts[-1]
    if len(parts) >= 2 and WEEK_PATTERN.match(parts[-2]):
        return parts[-2], filename
    return None, filename


def archive_image_name(image_path: str) -> str:
    week, filename = split_image_path(image_path)
    if week:
        return f"{IMAGES_FOLDER}/{week}/{filename}"
    return f"{IMAGES_FOLDER}/{filename}"


def compute_source_hash(db_file: Path, images: Iterable[Tuple[str, Path]], db_name: str = DATABASE_FILE) -> str:
    """
    Fingerprint of an archive's payload

    Each member contributes its archive name then its bytes; the database
    comes first, images follow in archive-name order.

    Args:
        db_file: Database file on disk
        images: (archive name, file on disk) pairs
        db_name: Archive name of the database

    Returns:
        Lowercase SHA256 hex digest
    """
    sha = hashlib.sha256()

    def append(name: str, path: Path):
        sha.update(name.encode("utf-8"))
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(8192), b""):
                sha.update(chunk)

    append(db_name, Path(db_file))
    for name, path in sorted(images, key=lambda member: member[0]):
        append(name, Path(path))
    return sha.hexdigest()


def load_manifest(folder: Path) -> Manifest:
    """Manifest of an extracted archive; defaults when the archive has none"""
    manifest_path = Path(folder) / MANIFEST_FILE
    if not manifest_path.exists():
        return Manifest(exported_by_user="Unknown", workstation="Unknown")
    try:
        return Manifest.model_validate_json(manifest_path.read_text(encoding="utf-8-sig"))
    except ValidationError as e:
        raise ArchiveError(f"Invalid manifest in {folder}: {e}") from e


class ArchiveService:
    """Service for exporting and importing clip log archives"""

    def __init__(self, database_service: DatabaseService, images_folder: str = IMAGES_FOLDER,
                 imports_folder: str = "imports"):
        """
        Initialize archive service

        Args:
            database_service: Local clip log
            images_folder: Base folder of local images; merged images are copied here
            imports_folder: Folder that receives extracted archives
        """
        logger.info("[ArchiveService.__init__] Starting initialization...")
        self.db_service = database_service
        self.images_folder = images_folder
        self.imports_folder = imports_folder
        logger.info("[ArchiveService.__init__] Initialization complete")

    def _collect_images(self) -> List[Tuple[str, Path]]:
        """Referenced image files that still exist, as (archive name, path)"""
        members = {}
        for image_path in self.db_service.get_image_paths():
            week, filename = split_image_path(image_path)
            local = Path(self.images_folder) / week / filename if week else Path(self.images_folder) / filename
            candidates = [Path(image_path), local]
            found = next((path for path in candidates if path.is_file()), None)
            if found is None:
                logger.warning(f"Image not found, not exported: {image_path}")
                continue
            members.setdefault(archive_image_name(image_path), found)
        return sorted(members.items())

    def export_archive(self, output_dir: str, notes: str = "Clipboard export created automatically") -> Path:
        """
        Write the clip log and its images to a zip archive

        Args:
            output_dir: Folder for the archive (created if missing)
            notes: Free text stored in the manifest

        Returns:
            Path of the created archive
        """
        output = Path(output_dir)
        output.mkdir(parents=True, exist_ok=True)
        exported_at = _utc_now()

        with tempfile.TemporaryDirectory() as tmp:
            db_copy = Path(tmp) / DATABASE_FILE
            logger.info("Snapshotting database...")
            self.db_service.backup_to(str(db_copy))

            images = self._collect_images()
            logger.info("Computing source hash...")
            manifest = Manifest(
                exported_by_user=self.db_service.username,
                workstation=self.db_service.workstation,
                exported_at_utc=exported_at.isoformat(),
                entry_count=self.db_service.get_total_count(),
                notes=notes,
                source_hash=compute_source_hash(db_copy, images),
            )

            archive_path = output / f"clipboard_export_{exported_at:%Y%m%d_%H%M%S}.zip"
            logger.info(f"Creating archive: {archive_path}")
            with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                zf.write(db_copy, manifest.database_file)
                zf.writestr(MANIFEST_FILE, manifest.model_dump_json(by_alias=True, indent=2))
                for name, path in images:
                    zf.write(path, name)

        logger.info(f"Export complete: {archive_path} ({manifest.entry_count} entries, {len(images)} images)")
        return archive_path

    @staticmethod
    def _archived_images(images_dir: Path, folder_name: str) -> List[Tuple[str, Path]]:
        if not images_dir.is_dir():
            return []
        return [
            (f"{folder_name}/{path.relative_to(images_dir).as_posix()}", path)
            for path in images_dir.rglob("*")
            if path.is_file()
        ]

    @staticmethod
    def _import_name(zip_path: Path, moment: datetime) -> str:
        base_name = re.sub(r"[ ./\\]", "_", zip_path.stem)
        return f"{moment:%Y-%m-%dT%H%MZ}_{base_name}"

    def import_archive(self, zip_path: str, validate: bool = True) -> ImportBatch:
        """
        Extract an export archive and register it in the imports table

        Nothing is merged yet; see merge_import.

        Args:
            zip_path: Archive created by export_archive
            validate: Check the manifest's source hash

        Raises:
            ArchiveError: The archive is unreadable, modified or corrupt.
                The extracted folder is removed in that case.
        """
        zip_path = Path(zip_path)
        if not zip_path.is_file() or not zipfile.is_zipfile(zip_path):
            raise ArchiveError(f"Missing or invalid archive: {zip_path}")

        imported_at = _utc_now()
        name = self._import_name(zip_path, imported_at)
        import_dir = Path(self.imports_folder) / name
        if import_dir.exists():
            raise ArchiveError(f"Import '{name}' already exists")
        import_dir.mkdir(parents=True)

        try:
            with zipfile.ZipFile(zip_path) as zf:
                zf.extractall(import_dir)
            manifest = self._validate_import(import_dir, validate)
        except ArchiveError:
            shutil.rmtree(import_dir, ignore_errors=True)
            raise
        except (zipfile.BadZipFile, OSError) as e:
            shutil.rmtree(import_dir, ignore_errors=True)
            raise ArchiveError(f"Failed to extract archive: {e}") from e

        batch = ImportBatch(
            name=name,
            imported_at=imported_at.isoformat(),
            imported_by=manifest.exported_by_user or "Unknown",
            path=str(import_dir),
            entry_count=manifest.entry_count,
            workstation=manifest.workstation or "",
        )
        batch_id = self.db_service.add_import(batch)
        logger.info(f"Imported archive '{zip_path.name}' as '{name}'")
        return replace(batch, id=batch_id)

    def _validate_import(self, import_dir: Path, validate: bool) -> Manifest:
        manifest = load_manifest(import_dir)
        db_file = import_dir / manifest.database_file
        if not db_file.is_file():
            raise ArchiveError("Imported database missing")

        if validate:
            folder_name = manifest.images_folder or IMAGES_FOLDER
            computed = compute_source_hash(
                db_file,
                self._archived_images(import_dir / folder_name, folder_name),
                manifest.database_file,
            )
            if computed != manifest.source_hash:
                raise ArchiveError("Export contents have been modified or corrupted")

        try:
            imported_db = ClipDB(str(db_file), read_only=True)
        except StoreError as e:
            raise ArchiveError(f"Corrupt database: {e}") from e
        try:
            if not imported_db.integrity_check():
                raise ArchiveError("Corrupt database")
        except sqlite3.Error as e:
            raise ArchiveError(f"Corrupt database: {e}") from e
        finally:
            imported_db.close()

        return manifest

    def list_imports(self) -> List[ImportBatch]:
        return self.db_service.get_imports()

    def _find_import(self, name: str) -> ImportBatch:
        for batch in self.db_service.get_imports():
            if batch.name == name:
                return batch
        raise ArchiveError(f"Import '{name}' not found")

    def merge_import(self, name: str) -> MergeSummary:
        """
        Copy the entries of an imported archive into the local clip log

        Entries whose content hash already exists are skipped. Images are
        copied into the local images folder and their paths rewritten, so
        the content hash is recomputed for the new path.
        """
        batch = self._find_import(name)
        import_dir = Path(batch.path)
        manifest = load_manifest(import_dir)
        db_file = import_dir / manifest.database_file
        if not db_file.is_file():
            raise ArchiveError(f"Import '{name}' not found")
        images_dir = import_dir / (manifest.images_folder or IMAGES_FOLDER)

        summary = MergeSummary()
        try:
            source = ClipDB(str(db_file), read_only=True)
        except StoreError as e:
            raise ArchiveError(f"Cannot open imported database: {e}") from e
        try:
            for entry in source.iter_entries():
                self._merge_entry(entry, images_dir, summary)
        except sqlite3.Error as e:
            raise ArchiveError(f"Cannot read imported database: {e}") from e
        finally:
            source.close()

        logger.info(
            f"'{name}' merged into main database: {summary.inserted} inserted, "
            f"{summary.skipped} skipped, {summary.failed} failed."
        )
        return summary

    def _merge_entry(self, entry: ClipEntry, images_dir: Path, summary: MergeSummary):
        stamp = normalize_timestamp(entry.timestamp)
        if stamp is None:
            summary.failed += 1
            summary.errors.append(f"entry {entry.id}: unreadable timestamp {entry.timestamp!r}")
            return

        image_path = ""
        source_image = None
        if entry.image_path:
            week, filename = split_image_path(entry.image_path)
            source_image = images_dir / week / filename if week else images_dir / filename
            if not source_image.is_file():
                summary.failed += 1
                summary.errors.append(f"entry {entry.id}: image missing {entry.image_path}")
                return
            target_dir = Path(self.images_folder) / week if week else Path(self.images_folder)
            image_path = str(target_dir / filename)

        entry_hash = content_hash(entry.text, image_path, stamp)
        if self.db_service.content_hash_exists(entry_hash):
            summary.skipped += 1
            return

        if source_image is not None:
            target = Path(image_path)
            if not target.exists():
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source_image, target)

        merged = ClipEntry(
            text=entry.text,
            image_path=image_path,
            username=entry.username,
            workstation=entry.workstation,
            week=entry.week or week_label(parse_timestamp(stamp)),
            timestamp=stamp,
            content_hash=entry_hash,
        )
        result = self.db_service.insert(merged)
        if result.is_inserted:
            summary.inserted += 1
        elif result.is_duplicate:
            summary.skipped += 1
        else:
            summary.failed += 1
            summary.errors.append(f"entry {entry.id}: {result.reason}")

    def delete_import(self, name: str):
        """Remove an import's extracted folder and its imports row"""
        batch = self._find_import(name)
        shutil.rmtree(batch.path, ignore_errors=True)
        self.db_service.delete_import(name)
        logger.info(f"Deleted import '{name}'")
