"""
Record parser — positional CSV rows to ``PriceRecord``.

Column layout is fixed by position, never by header content::

    product_id, name, category, <ignored>, price, create_date

Parsing is lenient: the header row is always dropped, short or malformed rows
are skipped with a warning, and unconvertible fields fall back to zero values
instead of rejecting the row.
"""
from __future__ import annotations

import csv
import logging
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import IO, Iterator

from app.schemas import PriceRecord

logger = logging.getLogger(__name__)

MIN_FIELDS = 6
DATE_FORMAT = "%Y-%m-%d"

ZERO_PRICE = Decimal("0")
ZERO_DATE = date.min


# Plain ASCII forms only; int() and Decimal() also take padding, "_" and other scripts' digits
_INT_RE = re.compile(r"[+-]?\d+", re.ASCII)
_NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)

# surrogateescape maps undecodable bytes into this range
_ESCAPED_LOW = "\udc80"
_ESCAPED_HIGH = "\udcff"


def parse_int(value: str) -> int:
    if not _INT_RE.fullmatch(value):
        return 0
    return int(value)


def parse_price(value: str) -> Decimal:
    if not _NUMBER_RE.fullmatch(value):
        return ZERO_PRICE
    try:
        price = Decimal(value)
    except InvalidOperation:
        return ZERO_PRICE
    if not price.is_finite():
        return ZERO_PRICE
    return price


def parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        return ZERO_DATE


def record_from_row(row: list[str]) -> PriceRecord:
    """Build a record from indices 0, 1, 2, 4 and 5 of a row with >= 6 fields."""
    return PriceRecord(
        product_id=parse_int(row[0]),
        name=row[1],
        category=row[2],
        price=parse_price(row[4]),
        create_date=parse_date(row[5]),
    )


def iter_records(stream: IO[str]) -> Iterator[PriceRecord]:
    """Lazily yield records from ``stream``, skipping rows that can't be used."""
    reader = csv.reader(stream, strict=True)

    # First non-empty row is the header, whatever it contains
    try:
        while not next(reader):
            pass
    except StopIteration:
        return
    except csv.Error as exc:
        logger.warning("Unreadable header row: %s", exc)

    while True:
        try:
            row = next(reader)
        except StopIteration:
            return
        except csv.Error as exc:
            logger.warning("Skipping malformed CSV row at line %d: %s", reader.line_num, exc)
            continue

        if len(row) < MIN_FIELDS:
            logger.warning("Skipping row at line %d with %d fields: %r", reader.line_num, len(row), row)
            continue

        if _has_undecodable(row):
            logger.warning("Skipping row at line %d with bytes that are not UTF-8", reader.line_num)
            continue

        yield record_from_row(row)


def _has_undecodable(row: list[str]) -> bool:
    return any(_ESCAPED_LOW <= ch <= _ESCAPED_HIGH for field in row for ch in field)
