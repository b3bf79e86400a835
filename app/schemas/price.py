"""
Price schemas — the parsed record and the import summary.
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class PriceRecord(BaseModel):
    """One parsed CSV row, ready to be inserted."""
    model_config = ConfigDict(frozen=True)

    product_id: int
    name: str
    category: str
    price: Decimal = Field(..., description="Expected to be >= 0, not enforced")
    create_date: date

    def to_row(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "category": self.category,
            "price": self.price,
            "create_date": self.create_date,
        }


class IngestionSummary(BaseModel):
    """Point-in-time view of the whole table after an import."""
    total_items: int = Field(..., description="Rows inserted by this import")
    total_categories: int = Field(..., description="Distinct categories in the table")
    total_price: Decimal = Field(..., description="Sum of every stored price")

    @field_serializer("total_price")
    def _serialize_total_price(self, value: Decimal) -> float:
        return float(value)
