"""Tracked product and price history schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pricedrop.scrapers.utils.normalizer import is_valid_url


class TrackProductRequest(BaseModel):
    """Request to start tracking a product URL."""

    url: str = Field(..., max_length=2000)
    target_price: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)
    notify_on_drop: bool = True

    @field_validator("url")
    @classmethod
    def url_must_be_http(cls, value: str) -> str:
        value = value.strip()
        if not is_valid_url(value):
            raise ValueError("Invalid URL")
        return value


class ProductResponse(BaseModel):
    """Tracked product as shown to its subscribers."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    url: str
    platform: str
    name: str
    image_url: Optional[str] = None
    current_price: Optional[Decimal] = None
    original_price: Optional[Decimal] = None
    currency: str
    in_stock: bool
    is_active: bool
    last_checked: Optional[datetime] = None


class TrackedProductResponse(BaseModel):
    """One of the user's subscriptions with its product."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    target_price: Optional[Decimal] = None
    notify_on_any_drop: bool
    is_active: bool
    created_at: datetime
    product: ProductResponse


class PriceHistoryPoint(BaseModel):
    """Single price observation."""

    model_config = ConfigDict(from_attributes=True)

    price: Decimal
    currency: str
    in_stock: bool
    source: str
    recorded_at: datetime


class PriceStatistics(BaseModel):
    min_price: Decimal
    max_price: Decimal
    avg_price: Decimal
    current_price: Decimal
    data_points: int
    days_analyzed: int


class PriceHistoryResponse(BaseModel):
    product_id: UUID
    history: list[PriceHistoryPoint]
    statistics: Optional[PriceStatistics] = None
