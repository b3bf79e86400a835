"""
Ingestion transaction — one atomic batch of price inserts.

The batch commits or rolls back as a whole. Individual rows run inside a
SAVEPOINT so a row the store rejects is skipped without poisoning the outer
transaction.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from sqlalchemy import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.errors import CommitError, TransactionSetupError
from app.models import PriceModel
from app.schemas import PriceRecord

logger = logging.getLogger(__name__)


class IngestionTransaction:
    """Context manager wrapping a session and its single import transaction.

    Usage::

        with IngestionTransaction(SessionLocal) as tx:
            inserted = tx.insert_all(records)
            tx.commit()

    Leaving the block without ``commit()`` rolls the batch back.
    """

    def __init__(self, session_factory: sessionmaker, statement_timeout_ms: Optional[int] = None):
        self._session_factory = session_factory
        self._statement_timeout_ms = statement_timeout_ms
        self._session: Optional[Session] = None
        self._statement = None
        self.inserted = 0
        self.rejected = 0

    def __enter__(self) -> "IngestionTransaction":
        self.begin()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def begin(self) -> None:
        """Open the transaction and build the insert reused for every row."""
        self._session = self._session_factory()
        try:
            self._session.begin()
            # Check out the connection now so a dead store fails before any row is read
            self._session.connection()
            self._apply_statement_timeout()
            self._statement = insert(PriceModel.__table__)
        except SQLAlchemyError as exc:
            logger.error("Failed to open import transaction: %s", exc)
            self.close()
            raise TransactionSetupError() from exc

    def _apply_statement_timeout(self) -> None:
        if not self._statement_timeout_ms:
            return
        bind = self._session.get_bind()
        if bind.dialect.name != "postgresql":
            return
        self._session.connection().exec_driver_sql(
            f"SET LOCAL statement_timeout = {int(self._statement_timeout_ms)}"
        )

    def insert(self, record: PriceRecord) -> bool:
        """Insert one record; a store-side rejection is logged and returns False."""
        try:
            with self._session.begin_nested():
                self._session.execute(self._statement, record.to_row())
        except SQLAlchemyError as exc:
            self.rejected += 1
            logger.warning("Error inserting record %r: %s", record, exc)
            return False
        self.inserted += 1
        return True

    def insert_all(self, records: Iterable[PriceRecord]) -> int:
        """Insert records in source order, returning how many were stored."""
        for record in records:
            self.insert(record)
        return self.inserted

    def commit(self) -> None:
        try:
            self._session.commit()
        except SQLAlchemyError as exc:
            logger.error("Error committing import transaction: %s", exc)
            self._session.rollback()
            raise CommitError() from exc
        logger.info("Committed %d rows (%d rejected by the store)", self.inserted, self.rejected)

    def close(self) -> None:
        if self._session is not None:
            # Closing an uncommitted session rolls the transaction back
            self._session.close()
            self._session = None


def ingest(
    session_factory: sessionmaker,
    records: Iterable[PriceRecord],
    statement_timeout_ms: Optional[int] = None,
) -> int:
    """Insert ``records`` in one transaction and return the inserted count."""
    with IngestionTransaction(session_factory, statement_timeout_ms) as tx:
        inserted = tx.insert_all(records)
        tx.commit()
    return inserted
