"""
Aggregator — table-wide summary read after the import commits.
"""
from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import distinct, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.errors import AggregationQueryError
from app.models import PriceModel
from app.schemas import IngestionSummary

logger = logging.getLogger(__name__)


def count_categories(session: Session) -> int:
    try:
        return session.execute(select(func.count(distinct(PriceModel.category)))).scalar_one()
    except SQLAlchemyError as exc:
        logger.error("Error querying total categories: %s", exc)
        raise AggregationQueryError("total_categories") from exc


def sum_prices(session: Session) -> Decimal:
    """Sum of all prices; an empty table sums to zero, not NULL."""
    try:
        total = session.execute(
            select(func.coalesce(func.sum(PriceModel.price), 0))
        ).scalar_one()
    except SQLAlchemyError as exc:
        logger.error("Error querying total price: %s", exc)
        raise AggregationQueryError("total_price") from exc
    return total if isinstance(total, Decimal) else Decimal(str(total))


def summarize(session_factory: sessionmaker, inserted: int) -> IngestionSummary:
    with session_factory() as session:
        return IngestionSummary(
            total_items=inserted,
            total_categories=count_categories(session),
            total_price=sum_prices(session),
        )
