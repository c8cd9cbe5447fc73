from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import datetime


# Request Models
class TrackRequest(BaseModel):
    """Request model for adding a product to the watchlist."""

    url: str = Field(..., min_length=1, description="Product page URL")
    target_price: Optional[int] = Field(
        default=None, ge=0, description="Alert when the price drops to this value or below"
    )


# Response Models
class ExtractedProduct(BaseModel):
    """Product as scraped from its page."""

    id: Optional[int] = None
    url: Optional[str] = None
    title: str
    price: int
    image_url: Optional[str] = None
    platform: str


class Product(BaseModel):
    """API representation of a tracked product."""

    id: int
    url: str
    title: str
    current_price: int
    target_price: Optional[int] = None
    image_url: Optional[str] = None
    platform: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PricePoint(BaseModel):
    """One entry of a product's price history."""

    price: int
    scraped_at: datetime

    class Config:
        from_attributes = True


class ProductDetail(Product):
    """A tracked product with its price history, newest first."""

    history: List[PricePoint] = []


class RefreshUpdate(BaseModel):
    id: int
    status: str
    title: Optional[str] = None
    price: Optional[int] = None


class RefreshResponse(BaseModel):
    """Response for a refresh of the whole watchlist."""

    success: bool
    updates: List[RefreshUpdate]


class ErrorResponse(BaseModel):
    """Error response model."""

    detail: str
