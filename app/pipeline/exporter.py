"""
Exporter — dump the prices table into a single-entry ZIP of CSV.

Rows are written in the same positional layout the importer reads, with the
store id in the column the importer ignores, so an export can be uploaded
back unchanged.
"""
from __future__ import annotations

import csv
import io
import logging
import zipfile

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import ExportError
from app.models import PriceModel

logger = logging.getLogger(__name__)

HEADER = ["product_id", "name", "category", "id", "price", "create_date"]


def price_to_row(price: PriceModel) -> list[str]:
    return [
        str(price.product_id),
        price.name,
        price.category,
        str(price.id),
        f"{price.price:.2f}",
        price.create_date.isoformat(),
    ]


def render_csv(prices) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(HEADER)
    for price in prices:
        writer.writerow(price_to_row(price))
    return buf.getvalue()


def export_archive(session: Session, entry_name: str = "data.csv") -> bytes:
    """Return ZIP bytes holding every stored price, ordered by id."""
    try:
        prices = session.execute(select(PriceModel).order_by(PriceModel.id.asc())).scalars().all()
    except SQLAlchemyError as exc:
        logger.error("Error querying prices for export: %s", exc)
        raise ExportError() from exc

    zip_buf = io.BytesIO()
    with zipfile.ZipFile(zip_buf, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(entry_name, render_csv(prices))
    logger.info("Exported %d prices", len(prices))
    return zip_buf.getvalue()
