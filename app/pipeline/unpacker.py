"""
Archive unpacker — finds the data file inside an uploaded ZIP.

The whole upload is held in memory; entries are matched by name suffix so
that ``data.csv`` nested under a directory prefix is still found.
"""
from __future__ import annotations

import io
import logging
import zipfile
from typing import IO

from app.errors import ArchiveFormatError, EntryNotFoundError

logger = logging.getLogger(__name__)


class ArchiveEntry:
    """Handle on one entry of an in-memory ZIP archive."""

    def __init__(self, archive: zipfile.ZipFile, info: zipfile.ZipInfo):
        self._archive = archive
        self.info = info

    @property
    def name(self) -> str:
        return self.info.filename

    def open_text(self, encoding: str = "utf-8-sig") -> IO[str]:
        """Open the entry as text; ``newline=""`` is what the csv module expects.

        Undecodable bytes come through as lone surrogates (``surrogateescape``)
        so the parser can drop the affected row instead of the whole stream.
        Encrypted entries, unsupported compression and a damaged local header
        are reported here, before anything is read.
        """
        try:
            raw = self._archive.open(self.info)
        except (RuntimeError, NotImplementedError, zipfile.BadZipFile) as exc:
            raise ArchiveFormatError(
                f"Could not open {self.name}", {"reason": str(exc)}
            ) from exc
        return io.TextIOWrapper(raw, encoding=encoding, errors="surrogateescape", newline="")


def unpack(raw: bytes, suffix: str = "data.csv") -> ArchiveEntry:
    """Return the first entry whose name ends with ``suffix``."""
    try:
        archive = zipfile.ZipFile(io.BytesIO(raw))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError) as exc:
        raise ArchiveFormatError(details={"reason": str(exc)}) from exc

    for info in archive.infolist():
        if info.is_dir():
            continue
        if info.filename.endswith(suffix):
            logger.info("Using archive entry %s (%d bytes)", info.filename, info.file_size)
            return ArchiveEntry(archive, info)

    logger.warning("No entry ending with %s among %d entries", suffix, len(archive.infolist()))
    raise EntryNotFoundError(suffix)
