# This file contains the database access layer that handles connections to the database
# and provides the operations the tracker needs on products and their price history

import logging
from typing import Generator, List, Optional

import pymysql
import sqlalchemy.exc
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

from config.settings import get_settings
from core.scrapers.models import ExtractionResult, TrackedItem
from core.scrapers.platforms import Platform
from .models import Base, PriceHistory, Product, utcnow

logger = logging.getLogger("database")

# Get application settings
settings = get_settings()


class DuplicateTrackingError(Exception):
    """The URL is already on the watchlist."""

    def __init__(self, url: str, product_id: Optional[int] = None):
        super().__init__(f"Product already tracked: {url}")
        self.url = url
        self.product_id = product_id


class ProductNotFoundError(Exception):
    """No tracked product has the requested id."""


def create_db_engine(database_url: str):
    """Create an engine for ``database_url``.

    SQLite connections are shared with FastAPI's worker threads, so the
    same-thread check is turned off for them.
    """
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(database_url, pool_pre_ping=True)


# Database Connection Setup
# The engine is the low-level interface to the database that handles the connection pool
engine = create_db_engine(settings.DATABASE_URL)

# Session Factory
# Sessions are how we interact with the database - they manage the unit of work pattern
SessionLocal = sessionmaker(bind=engine)


def ensure_database_exists():
    """Create the MySQL database on first use. SQLite creates its file itself."""
    if settings.DB_BACKEND != "mysql":
        return
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return  # Database exists and connection works
    except sqlalchemy.exc.OperationalError as e:
        if "Unknown database" not in str(e):
            logger.error("Database connection error: %s", e)
            raise

    # Database doesn't exist, so create it
    connection = pymysql.connect(
        host=settings.DB_HOST,
        user=settings.DB_USER,
        password=settings.DB_PASS,
        port=int(settings.DB_PORT),
    )
    try:
        with connection.cursor() as cursor:
            cursor.execute(f"CREATE DATABASE IF NOT EXISTS {settings.DB_NAME}")
        logger.info("Created database '%s'", settings.DB_NAME)
    finally:
        connection.close()


def init_db(bind=None):
    """Create database tables if they don't exist."""
    if bind is None:
        ensure_database_exists()
        bind = engine
    Base.metadata.create_all(bind=bind)


def get_db() -> Generator:
    """Create and yield a database session.

    Used as a FastAPI dependency: one session per request, closed even if
    the request fails.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def to_tracked_item(product: Product) -> TrackedItem:
    """Snapshot a Product row as the immutable record a refresh works on."""
    try:
        platform = Platform(product.platform)
    except ValueError:
        platform = Platform.UNKNOWN
    return TrackedItem(
        id=product.id,
        url=product.url,
        title=product.title,
        current_price=product.current_price,
        platform=platform,
        target_price=product.target_price,
        image_url=product.image_url,
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


def find_product_by_url(db, url: str) -> Optional[Product]:
    return db.query(Product).filter(Product.url == url).first()


def add_product(db, url: str, result: ExtractionResult, target_price: Optional[int] = None) -> Product:
    """Start tracking a product and record its first price.

    Raises:
        DuplicateTrackingError: the URL is already tracked. Nothing is written.
    """
    existing = find_product_by_url(db, url)
    if existing is not None:
        raise DuplicateTrackingError(url, existing.id)

    product = Product(
        url=url,
        title=result.title,
        current_price=result.price,
        target_price=target_price,
        image_url=result.image_url,
        platform=result.platform.value,
    )
    product.history.append(PriceHistory(price=result.price))
    db.add(product)
    try:
        db.commit()
    except sqlalchemy.exc.IntegrityError as e:
        # Lost a race with a concurrent insert of the same URL
        db.rollback()
        raise DuplicateTrackingError(url) from e
    db.refresh(product)
    logger.info("Tracking product %s: %s (NT$ %d)", product.id, product.title, product.current_price)
    return product


def list_products(db) -> List[Product]:
    """All tracked products, most recently added first."""
    return db.query(Product).order_by(Product.created_at.desc(), Product.id.desc()).all()


def get_product(db, product_id: int) -> Optional[Product]:
    return db.query(Product).filter(Product.id == product_id).first()


def get_price_history(db, product_id: int, limit: Optional[int] = None) -> List[PriceHistory]:
    """Price history of a product, newest first."""
    query = db.query(PriceHistory)\
        .filter(PriceHistory.product_id == product_id)\
        .order_by(PriceHistory.scraped_at.desc(), PriceHistory.id.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def record_price(db, product_id: int, price: int) -> Product:
    """Store a freshly scraped price as current and append it to the history.

    Raises:
        ProductNotFoundError: the product was deleted in the meantime.
    """
    product = get_product(db, product_id)
    if product is None:
        raise ProductNotFoundError(f"Product with ID {product_id} not found")

    product.current_price = price
    product.updated_at = utcnow()
    db.add(PriceHistory(product_id=product_id, price=price))
    try:
        db.commit()
    except sqlalchemy.exc.SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(product)
    return product


def delete_product(db, product_id: int) -> bool:
    """Stop tracking a product. Returns False if it did not exist."""
    product = get_product(db, product_id)
    if product is None:
        return False
    db.delete(product)
    db.commit()
    return True


class DatabaseRecorder:
    """Persists refresh results; the BatchRefresher's persistence collaborator."""

    def __init__(self, db):
        self.db = db

    def record_price(self, item: TrackedItem, result: ExtractionResult) -> None:
        record_price(self.db, item.id, result.price)
