"""SQLAlchemy ORM model for the authoritative restaurant table.

The secondary indexes back the three list queries. Each one ends in
``rating`` so the store can return rows already ordered by rating.
"""

from __future__ import annotations

from sqlalchemy import Float, Index, Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from restocache.config import settings
from restocache.core.model import Restaurant


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class RestaurantTable(Base):
    """Restaurant records keyed by name."""

    __tablename__ = settings.table_name

    name: Mapped[str] = mapped_column(Text, primary_key=True)
    cuisine: Mapped[str] = mapped_column(Text, nullable=False)
    region: Mapped[str] = mapped_column(Text, nullable=False)
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    rating_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("ix_restaurants_cuisine_rating", "cuisine", "rating"),
        Index("ix_restaurants_region_rating", "region", "rating"),
        Index("ix_restaurants_region_cuisine_rating", "region", "cuisine", "rating"),
    )

    def to_model(self) -> Restaurant:
        return Restaurant(
            name=self.name,
            cuisine=self.cuisine,
            region=self.region,
            rating=self.rating,
            rating_count=self.rating_count,
        )
