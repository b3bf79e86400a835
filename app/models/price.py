"""
SQLAlchemy model for stored prices.
"""
from sqlalchemy import Column, Date, Integer, Numeric, Text

from app.database import Base


class PriceModel(Base):
    __tablename__ = "prices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Integer, nullable=False)
    name = Column(Text, nullable=False)
    category = Column(Text, nullable=False)
    price = Column(Numeric, nullable=False)
    create_date = Column(Date, nullable=False)
