"""
Prices API endpoints.

POST /api/v0/prices   — import a ZIP holding data.csv → summary
GET  /api/v0/prices   — export every stored price as a ZIP
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Response, UploadFile
from sqlalchemy.orm import Session, sessionmaker

from app.config import Settings, get_settings
from app.database import get_db, get_session_factory
from app.errors import UploadFormatError
from app.pipeline import PriceImporter
from app.pipeline.exporter import export_archive
from app.schemas import IngestionSummary

logger = logging.getLogger(__name__)
router = APIRouter()


def get_importer(
    settings: Settings = Depends(get_settings),
    session_factory: sessionmaker = Depends(get_session_factory),
) -> PriceImporter:
    return PriceImporter(settings, session_factory)


# ── POST /api/v0/prices ──────────────────────────────────────────────────
@router.post("/v0/prices", response_model=IngestionSummary)
def upload_prices(
    file: Optional[UploadFile] = File(None),
    importer: PriceImporter = Depends(get_importer),
):
    logger.info("Received POST request to /api/v0/prices")
    if file is None:
        exc = UploadFormatError("Expected multipart/form-data with a 'file' field")
        importer.fail(exc)
        raise exc

    logger.info("Received file: %s", file.filename)
    # One byte past the limit is enough to tell the upload is too large
    raw = file.file.read(importer.settings.MAX_UPLOAD_BYTES + 1)
    summary = importer.run(raw, filename=file.filename)
    logger.info(
        "Import done: items=%d categories=%d total_price=%s",
        summary.total_items, summary.total_categories, summary.total_price,
    )
    return summary


# ── GET /api/v0/prices ───────────────────────────────────────────────────
@router.get("/v0/prices")
def export_prices(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    logger.info("Received GET request to /api/v0/prices")
    content = export_archive(db, settings.DATA_FILE_NAME)
    return Response(
        content=content,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{settings.EXPORT_FILE_NAME}"'},
    )
