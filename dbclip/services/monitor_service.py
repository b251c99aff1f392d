#!/usr/bin/env python3
"""
Monitor Service - Polls the clipboard and records every new text or image
"""
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from dbclip.models import InsertResult
from dbclip.services.clipboard_backend import ClipboardBackend, clipboard_session, has_image, read_text
from dbclip.services.database_service import DatabaseService
from dbclip.services.image_service import ImageService
from dbclip.utils.hashing import file_content_key
from dbclip.utils.timestamps import local_now, timestamp_text, week_label

logger = logging.getLogger(__name__)


@dataclass
class SessionState:
    """What was last recorded in this run; compared against on every tick"""
    last_text: Optional[str] = None
    last_image_key: Optional[str] = None


@dataclass
class Candidate:
    """A sampled value that differs from the session state"""
    kind: str
    text: str = ""
    image_path: str = ""
    image_key: str = ""


@dataclass
class TickReport:
    timestamp: str = ""
    skipped: bool = False
    candidates: List[Candidate] = field(default_factory=list)
    results: List[Tuple[Candidate, InsertResult]] = field(default_factory=list)

    @property
    def committed(self) -> List[InsertResult]:
        return [result for _, result in self.results if result.is_inserted]


class MonitorService:
    """Samples the clipboard on a fixed interval and commits changes to the clip log"""

    def __init__(
        self,
        clipboard: ClipboardBackend,
        image_service: ImageService,
        database_service: DatabaseService,
        poll_interval: float = 1.0,
        idle_backoff: float = 0.5,
        capture_text: bool = True,
        capture_images: bool = True,
        state: Optional[SessionState] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize monitor service

        Args:
            clipboard: Clipboard backend to sample
            image_service: Writes captured bitmaps as PNG files
            database_service: Records entries in the clip log
            poll_interval: Seconds between ticks
            idle_backoff: Extra seconds after a tick that committed nothing
            capture_text: Sample plain text
            capture_images: Sample bitmaps
            state: Initial session state (fresh if omitted)
            sleep: Sleep function, replaceable in tests
        """
        logger.info("[MonitorService.__init__] Starting initialization...")
        self.clipboard = clipboard
        self.image_service = image_service
        self.db_service = database_service
        self.poll_interval = poll_interval
        self.idle_backoff = idle_backoff
        self.capture_text = capture_text
        self.capture_images = capture_images
        self.state = state if state is not None else SessionState()
        self._sleep = sleep
        self._running = False
        logger.info("[MonitorService.__init__] Initialization complete")

    def tick(self) -> TickReport:
        """
        Sample the clipboard once and commit whatever changed

        The clipboard is released before anything is written to the store.
        Text and image changes seen in the same tick are both committed,
        text first. The image folder and the stored timestamp share one
        clock reading per tick.
        """
        moment = local_now()
        report = TickReport(timestamp=timestamp_text(moment))

        with clipboard_session(self.clipboard) as acquired:
            if not acquired:
                logger.debug("Clipboard held by another process, skipping tick")
                report.skipped = True
                return report

            if self.capture_text:
                self._sample_text(report)
            if self.capture_images:
                self._sample_image(report, week_label(moment))

        for candidate in report.candidates:
            result = self._commit(candidate, report.timestamp)
            report.results.append((candidate, result))

        return report

    def _sample_text(self, report: TickReport):
        text = read_text(self.clipboard)
        if text and text != self.state.last_text:
            report.candidates.append(Candidate(kind="text", text=text))

    def _sample_image(self, report: TickReport, week: str):
        if not has_image(self.clipboard):
            return

        saved_path = self.image_service.capture(self.clipboard, week)
        if not saved_path:
            return

        image_key = file_content_key(saved_path)
        if not image_key:
            logger.warning(f"Could not read back captured image {saved_path}")
            self._discard(saved_path)
            return

        if image_key == self.state.last_image_key:
            # Same picture as the last recorded one
            logger.debug(f"Unchanged clipboard image, removing {saved_path}")
            self._discard(saved_path)
            return

        report.candidates.append(Candidate(kind="image", image_path=saved_path, image_key=image_key))

    def _commit(self, candidate: Candidate, timestamp: str) -> InsertResult:
        result = self.db_service.save_entry(
            text=candidate.text, image_path=candidate.image_path, timestamp=timestamp
        )

        if result.is_inserted:
            self._advance(candidate)
            if candidate.kind == "text":
                size = len(candidate.text.encode("utf-8"))
                logger.info(f"✓ New clipboard text saved ({size} bytes)")
            else:
                logger.info(f"✓ New clipboard image saved ({candidate.image_path})")
        elif result.is_duplicate:
            # Already recorded this second; stop retrying the same value
            self._advance(candidate)
            logger.debug(f"↻ Duplicate clipboard {candidate.kind} skipped")
        else:
            logger.error(f"Failed to save clipboard {candidate.kind}: {result.reason}")
            if candidate.kind == "image":
                self._discard(candidate.image_path)

        return result

    def _advance(self, candidate: Candidate):
        if candidate.kind == "text":
            self.state.last_text = candidate.text
        else:
            self.state.last_image_key = candidate.image_key

    @staticmethod
    def _discard(path: str):
        try:
            Path(path).unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove redundant image {path}: {e}")

    def run(self, max_ticks: Optional[int] = None):
        """
        Poll until stop() is called

        Args:
            max_ticks: Stop after this many ticks (None runs forever)
        """
        self._running = True
        ticks = 0
        logger.info("Clipboard monitor started...")

        while self._running and (max_ticks is None or ticks < max_ticks):
            self._sleep(self.poll_interval)
            if not self._running:
                break

            ticks += 1
            try:
                report = self.tick()
            except Exception as e:
                logger.exception(f"Clipboard tick failed: {e}")
                report = TickReport(skipped=True)

            if not report.committed:
                self._sleep(self.idle_backoff)

        self._running = False
        logger.info("Clipboard monitor stopped")

    def stop(self):
        """Stop the loop after the current tick"""
        self._running = False
