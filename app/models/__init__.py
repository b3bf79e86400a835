from app.models.price import PriceModel

__all__ = ["PriceModel"]
