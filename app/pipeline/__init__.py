"""
Price import pipeline.

Orchestrates: unpack archive → parse rows → insert in one transaction →
commit → summarize.
"""
from __future__ import annotations

import enum
import logging
import zipfile
import zlib
from typing import Optional

from sqlalchemy.orm import sessionmaker

from app.config import Settings
from app.errors import (
    ArchiveFormatError,
    PriceServiceError,
    UploadFormatError,
    UploadTooLargeError,
)
from app.pipeline.aggregator import summarize
from app.pipeline.ingestion import IngestionTransaction
from app.pipeline.parser import iter_records
from app.pipeline.unpacker import unpack
from app.schemas import IngestionSummary

logger = logging.getLogger(__name__)

# Raised while streaming damaged entry data (bad CRC, corrupt or truncated deflate)
_DAMAGED_ENTRY = (zipfile.BadZipFile, zlib.error, EOFError)


class ImportStage(str, enum.Enum):
    AWAITING_UPLOAD = "awaiting_upload"
    UNPACKING = "unpacking"
    INGESTING = "ingesting"
    COMMITTING = "committing"
    SUMMARIZING = "summarizing"
    DONE = "done"
    FAILED = "failed"


class PriceImporter:
    """Runs one import; an instance handles a single upload."""

    def __init__(self, settings: Settings, session_factory: sessionmaker):
        self.settings = settings
        self.session_factory = session_factory
        self.stage = ImportStage.AWAITING_UPLOAD
        self.failed_stage: Optional[ImportStage] = None

    def _advance(self, stage: ImportStage) -> None:
        logger.info("Import stage: %s → %s", self.stage.value, stage.value)
        self.stage = stage

    def fail(self, exc: Exception) -> None:
        """Mark the import failed at the current stage."""
        self.failed_stage = self.stage
        self.stage = ImportStage.FAILED
        logger.warning("Import failed during %s: %s", self.failed_stage.value, exc)

    def check_upload(self, raw: bytes, filename: Optional[str] = None) -> None:
        """Reject uploads that are not ZIP files or exceed the size limit."""
        if filename is not None and not filename.lower().endswith(".zip"):
            raise UploadFormatError("File must be a ZIP archive", {"filename": filename})
        if len(raw) > self.settings.MAX_UPLOAD_BYTES:
            raise UploadTooLargeError(self.settings.MAX_UPLOAD_BYTES)

    def run(self, raw: bytes, filename: Optional[str] = None) -> IngestionSummary:
        try:
            self.check_upload(raw, filename)
            return self._run(raw)
        except PriceServiceError as exc:
            self.fail(exc)
            raise

    def _run(self, raw: bytes) -> IngestionSummary:
        self._advance(ImportStage.UNPACKING)
        entry = unpack(raw, self.settings.DATA_FILE_NAME)
        stream = entry.open_text()

        self._advance(ImportStage.INGESTING)
        with stream, IngestionTransaction(
            self.session_factory, self.settings.STATEMENT_TIMEOUT_MS
        ) as tx:
            try:
                tx.insert_all(iter_records(stream))
            except _DAMAGED_ENTRY as exc:
                # Entry bytes unreadable mid-stream; the batch is rolled back on exit
                raise ArchiveFormatError(
                    f"Could not read {entry.name}", {"reason": str(exc)}
                ) from exc
            self._advance(ImportStage.COMMITTING)
            tx.commit()
        logger.info("Inserted %d rows, %d rejected by the store", tx.inserted, tx.rejected)

        self._advance(ImportStage.SUMMARIZING)
        summary = summarize(self.session_factory, tx.inserted)

        self._advance(ImportStage.DONE)
        return summary


def import_prices(
    raw: bytes,
    settings: Settings,
    session_factory: sessionmaker,
    filename: Optional[str] = None,
) -> IngestionSummary:
    """Run the full import pipeline on uploaded ZIP bytes."""
    return PriceImporter(settings, session_factory).run(raw, filename)
