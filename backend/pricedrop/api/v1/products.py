"""Product tracking endpoints for authenticated users."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from pricedrop.core.exceptions import (
    AlreadyTrackingError,
    NotFoundError,
    PlanLimitError,
    ScrapeError,
)
from pricedrop.dependencies import get_current_user, get_db, get_scraper_service
from pricedrop.models import UserProfile
from pricedrop.schemas.common import ApiResponse
from pricedrop.schemas.product import (
    PriceHistoryPoint,
    PriceHistoryResponse,
    PriceStatistics,
    TrackedProductResponse,
    TrackProductRequest,
)
from pricedrop.scrapers.scraper_service import ScraperService
from pricedrop.services.product_service import ProductService
from pricedrop.services.tracking_service import TrackingService

router = APIRouter()


async def _require_tracked(db: AsyncSession, user: UserProfile, product_id: UUID) -> None:
    subscription = await TrackingService(db).get_subscription(user.id, product_id)
    if subscription is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "Tracked product not found"},
        )


@router.post("/track", response_model=ApiResponse, status_code=201)
async def track_product(
    body: TrackProductRequest,
    current_user: UserProfile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    scraper: ScraperService = Depends(get_scraper_service),
):
    """Start tracking a product URL."""
    service = TrackingService(db, scraper=scraper)
    try:
        result = await service.track(
            current_user,
            body.url,
            target_price=body.target_price,
            notify_on_drop=body.notify_on_drop,
        )
    except PlanLimitError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "plan_limit_reached", "message": e.message},
        )
    except AlreadyTrackingError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": "already_tracking", "message": e.message},
        )
    except ScrapeError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"code": "scrape_failed", "message": e.message},
        )

    return ApiResponse(
        status="success",
        data=TrackedProductResponse.model_validate(result.subscription).model_dump(mode="json"),
    )


@router.get("", response_model=ApiResponse)
async def list_tracked_products(
    current_user: UserProfile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the current user's tracked products."""
    subscriptions = await TrackingService(db).list_tracked(current_user)
    return ApiResponse(
        status="success",
        data=[TrackedProductResponse.model_validate(s).model_dump(mode="json") for s in subscriptions],
    )


@router.delete("/{product_id}", response_model=ApiResponse)
async def untrack_product(
    product_id: UUID,
    current_user: UserProfile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Stop tracking a product."""
    try:
        await TrackingService(db).untrack(current_user, product_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail={"code": "not_found", "message": e.message})

    return ApiResponse(status="success", data={"deleted": True})


@router.get("/{product_id}/history", response_model=ApiResponse)
async def get_price_history(
    product_id: UUID,
    days: int = Query(30, ge=1, le=365),
    current_user: UserProfile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Price history and statistics of a tracked product."""
    await _require_tracked(db, current_user, product_id)

    service = ProductService(db)
    history = await service.get_price_history(product_id, days)
    stats = await service.get_price_statistics(product_id, days)

    response = PriceHistoryResponse(
        product_id=product_id,
        history=[PriceHistoryPoint.model_validate(h) for h in history],
        statistics=PriceStatistics(**stats) if stats else None,
    )
    return ApiResponse(status="success", data=response.model_dump(mode="json"))


@router.get("/{product_id}/history.csv")
async def export_price_history(
    product_id: UUID,
    days: int = Query(365, ge=1, le=3650),
    current_user: UserProfile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Download a tracked product's price history as CSV."""
    await _require_tracked(db, current_user, product_id)

    content = await ProductService(db).export_history_csv(product_id, days)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="price-history-{product_id}.csv"'},
    )
