# This file defines the database schema for our application using SQLAlchemy's Object Relational Mapper (ORM)
# It stores the tracked products and every price we have seen for them

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import declarative_base, relationship

# Create a base class for all ORM models
Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Product(Base):
    """A product page on the watchlist.

    The URL is unique: a page can only be tracked once. ``current_price`` is
    the latest successfully scraped price, in whole currency units.
    """
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # 768 characters keeps the unique index within MySQL's key length limit
    url = Column(String(768), nullable=False, unique=True)

    title = Column(String(512), nullable=False)
    current_price = Column(Integer, nullable=False)

    # Alert when the price drops to or below this value
    target_price = Column(Integer, nullable=True)

    image_url = Column(String(2048), nullable=True)
    platform = Column(String(20), index=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Newest price first; deleting a product removes its history
    history = relationship(
        "PriceHistory",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="PriceHistory.id.desc()",
    )


class PriceHistory(Base):
    """One observed price for a product."""

    __tablename__ = "price_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    price = Column(Integer, nullable=False)
    scraped_at = Column(DateTime, default=utcnow, index=True)

    product = relationship("Product", back_populates="history")
