"""Watchdog-based ingestion of CSV files dropped into a folder."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .normalizer import NormalizationResult

logger = logging.getLogger(__name__)


class CSVImporter(Protocol):
    """Protocol describing the CSV import orchestration function."""

    def __call__(self, *, csv_path: Path) -> NormalizationResult:  # pragma: no cover - interface
        ...


class CSVDropHandler(FileSystemEventHandler):
    """Runs the importer for each new ``.csv`` file in the watched folder."""

    def __init__(self, *, importer: CSVImporter, allowed_filename: str | None = None) -> None:
        self.importer = importer
        self.allowed_filename = allowed_filename

    def should_process(self, path: Path) -> bool:
        if self.allowed_filename:
            return path.name == self.allowed_filename
        return path.suffix.lower() == ".csv"

    def on_created(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        candidate = Path(str(event.src_path))
        if not self.should_process(candidate):
            return
        try:
            result = self.importer(csv_path=candidate)
        except (OSError, ValueError) as exc:
            logger.error("CSV import failed for %s: %s", candidate.name, exc, exc_info=True)
            return
        logger.info(
            "Imported watched CSV",
            extra={
                "file": candidate.name,
                "imported": len(result.transactions),
                "dropped": result.dropped,
            },
        )


def start_watcher(*, folder: Path, importer: CSVImporter, allowed_filename: str | None = None):
    """Start a watchdog observer for the provided folder.

    When allowed_filename is provided, only matching files will be processed.
    Callers own the observer and must ``stop()`` and ``join()`` it.
    """

    observer = Observer()
    handler = CSVDropHandler(importer=importer, allowed_filename=allowed_filename)
    observer.schedule(handler, path=str(folder), recursive=False)
    observer.start()
    logger.info("Watching %s for CSV files", folder)
    return observer
