from app.schemas.price import IngestionSummary, PriceRecord

__all__ = ["IngestionSummary", "PriceRecord"]
