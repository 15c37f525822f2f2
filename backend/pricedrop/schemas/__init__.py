"""Pydantic schemas for the PriceDrop API."""

from pricedrop.schemas.common import ApiResponse, ErrorDetail
from pricedrop.schemas.health import HealthCheckResponse
from pricedrop.schemas.product import (
    PriceHistoryPoint,
    PriceHistoryResponse,
    PriceStatistics,
    ProductResponse,
    TrackedProductResponse,
    TrackProductRequest,
)
from pricedrop.schemas.profile import ProfileResponse, ProfileUpdateRequest
from pricedrop.schemas.job import DigestRunResponse, JobSummaryResponse

__all__ = [
    # Common
    "ApiResponse",
    "ErrorDetail",
    "HealthCheckResponse",
    # Products
    "TrackProductRequest",
    "ProductResponse",
    "TrackedProductResponse",
    "PriceHistoryPoint",
    "PriceHistoryResponse",
    "PriceStatistics",
    # Profile
    "ProfileResponse",
    "ProfileUpdateRequest",
    # Jobs
    "JobSummaryResponse",
    "DigestRunResponse",
]
