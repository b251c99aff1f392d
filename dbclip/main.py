#!/usr/bin/env python3
"""
dbclip Main Entry Point
Initializes all services with dependency injection and runs the requested command
"""
import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

from dbclip.exceptions import DbClipError
from dbclip.services.archive_service import ArchiveService
from dbclip.services.clipboard_backend import ClipboardBackend, create_clipboard
from dbclip.services.database_service import DatabaseService
from dbclip.services.image_service import ImageService
from dbclip.services.monitor_service import MonitorService
from dbclip.services.settings_service import SettingsService

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

TEXT_PREVIEW_LENGTH = 60


def configure_logging(level: str = "INFO", log_file: Optional[str] = None):
    """Configure the root logger; safe to call again once settings are known"""
    handlers = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)


class DbClipApp:
    """Main application with dependency injection"""

    def __init__(self, config_path: Optional[Path] = None, clipboard: Optional[ClipboardBackend] = None):
        """
        Initialize application with all services

        Args:
            config_path: Optional settings file
            clipboard: Clipboard backend; the platform default when omitted
        """
        logging.info("Initializing services...")

        # Initialize services in dependency order
        self.settings_service = SettingsService(config_path)
        configure_logging(self.settings_service.log_level, self.settings_service.log_file)

        self.database_service = DatabaseService.open(self.settings_service.database_path)
        self.image_service = ImageService(self.settings_service.images_folder)
        self.archive_service = ArchiveService(
            self.database_service,
            images_folder=self.settings_service.images_folder,
            imports_folder=self.settings_service.imports_folder,
        )
        self._clipboard = clipboard
        self.monitor_service: Optional[MonitorService] = None

        logging.info("All services initialized successfully")

    def create_monitor(self) -> MonitorService:
        clipboard = self._clipboard if self._clipboard is not None else create_clipboard()
        self.monitor_service = MonitorService(
            clipboard,
            self.image_service,
            self.database_service,
            poll_interval=self.settings_service.poll_interval,
            idle_backoff=self.settings_service.idle_backoff,
            capture_text=self.settings_service.capture_text,
            capture_images=self.settings_service.capture_images,
        )
        return self.monitor_service

    def signal_handler(self, signum, frame):
        """Handle shutdown signals"""
        logging.info(f"Received signal {signum}, shutting down...")
        if self.monitor_service:
            self.monitor_service.stop()

    def start(self, max_ticks: Optional[int] = None):
        """Run the clipboard monitor until a shutdown signal arrives"""
        signal.signal(signal.SIGTERM, self.signal_handler)
        signal.signal(signal.SIGINT, self.signal_handler)

        monitor = self.monitor_service or self.create_monitor()
        monitor.run(max_ticks=max_ticks)

    def close(self):
        self.database_service.close()
        logging.info("Shutdown complete")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dbclip", description="Clipboard history logger")
    parser.add_argument("--config", type=Path, default=None, help="Path to settings.yml")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("monitor", help="Watch the clipboard and record changes (default)")

    list_parser = subparsers.add_parser("list", help="Show recorded entries, newest first")
    list_parser.add_argument("--query", help="Substring of text or image path")
    list_parser.add_argument("--user", help="Substring of the username")
    list_parser.add_argument("--week", help="Week label, e.g. 2025-W01")
    list_parser.add_argument("--workstation", help="Substring of the workstation name")
    list_parser.add_argument("--limit", type=int, default=50)
    list_parser.add_argument("--offset", type=int, default=0)

    export_parser = subparsers.add_parser("export", help="Write the log and images to a zip archive")
    export_parser.add_argument("output_dir", nargs="?", default=".")

    import_parser = subparsers.add_parser("import", help="Extract and register an export archive")
    import_parser.add_argument("archive")
    import_parser.add_argument("--no-validate", action="store_true",
                               help="Skip the manifest source hash check")

    subparsers.add_parser("imports", help="List registered imports")

    merge_parser = subparsers.add_parser("merge", help="Merge a registered import into the log")
    merge_parser.add_argument("name")

    delete_parser = subparsers.add_parser("delete-import", help="Remove a registered import")
    delete_parser.add_argument("name")

    return parser


def _print_entries(app: DbClipApp, args: argparse.Namespace):
    filters = dict(query=args.query, username=args.user, week=args.week, workstation=args.workstation)
    total = app.database_service.get_total_count(**filters)
    entries = app.database_service.get_entries(limit=args.limit, offset=args.offset, **filters)
    for entry in entries:
        if entry.image_path:
            content = f"[image] {entry.image_path}"
        else:
            content = entry.text.replace("\r", " ").replace("\n", " ")
            if len(content) > TEXT_PREVIEW_LENGTH:
                content = content[:TEXT_PREVIEW_LENGTH] + "..."
        print(f"{entry.id:>6}  {entry.timestamp}  {entry.week}  {entry.username}@{entry.workstation}  {content}")
    print(f"({len(entries)} of {total} entries)")


def run_command(app: DbClipApp, args: argparse.Namespace) -> int:
    command = args.command or "monitor"

    if command == "monitor":
        app.start()
    elif command == "list":
        _print_entries(app, args)
    elif command == "export":
        archive = app.archive_service.export_archive(args.output_dir)
        print(f"Export complete: {archive}")
    elif command == "import":
        batch = app.archive_service.import_archive(args.archive, validate=not args.no_validate)
        print(f"Imported archive as '{batch.name}' ({batch.entry_count} entries)")
    elif command == "imports":
        for batch in app.archive_service.list_imports():
            print(f"{batch.name}  {batch.imported_at}  {batch.imported_by}@{batch.workstation}  {batch.entry_count} entries")
    elif command == "merge":
        summary = app.archive_service.merge_import(args.name)
        print(f"'{args.name}' merged: {summary.inserted} inserted, {summary.skipped} skipped, {summary.failed} failed.")
    elif command == "delete-import":
        app.archive_service.delete_import(args.name)
        print(f"Deleted import '{args.name}'.")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    app = None
    try:
        app = DbClipApp(args.config)
        return run_command(app, args)
    except DbClipError as e:
        logging.error(f"Error: {e}")
        return 1
    except Exception as e:
        logging.exception(f"Error: {e}")
        return 1
    finally:
        if app is not None:
            app.close()


if __name__ == "__main__":
    sys.exit(main())
