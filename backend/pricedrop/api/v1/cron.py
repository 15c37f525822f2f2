"""Scheduled job trigger endpoints.

Called by an external scheduler with ``Authorization: Bearer <CRON_SECRET>``.
Unauthorized calls are rejected before any work is done.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from pricedrop.config import settings
from pricedrop.core.exceptions import PriceCheckError
from pricedrop.dependencies import get_db, get_notification_service, verify_cron_secret
from pricedrop.schemas.common import ApiResponse
from pricedrop.schemas.job import DigestRunResponse, JobSummaryResponse
from pricedrop.services.digest_service import DigestService
from pricedrop.services.notification_service import NotificationService
from pricedrop.services.price_check_service import PriceCheckService

router = APIRouter(dependencies=[Depends(verify_cron_secret)])
logger = structlog.get_logger(__name__)


async def _run_price_check(db: AsyncSession, notifier: NotificationService) -> ApiResponse:
    service = PriceCheckService(db, notifier=notifier)
    try:
        summary = await service.run()
    except PriceCheckError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"code": "price_check_failed", "message": str(e)},
        )

    if summary.status == "skipped":
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": "job_running", "message": "A price check is already running"},
        )

    return ApiResponse(
        status="success",
        data=JobSummaryResponse(**summary.to_dict()).model_dump(mode="json"),
    )


@router.get("/check-prices", response_model=ApiResponse)
async def check_prices(
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
):
    """Run the price check job and return its summary."""
    return await _run_price_check(db, notifier)


@router.post("/check-prices", response_model=ApiResponse)
async def check_prices_manual(
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
):
    """Manual trigger for development; disabled in production."""
    if settings.is_production:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "not_available", "message": "Not available in production"},
        )
    return await _run_price_check(db, notifier)


@router.get("/weekly-digest", response_model=ApiResponse)
async def weekly_digest(
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
):
    """Send the weekly savings digest."""
    stats = await DigestService(db, notifier=notifier).run(days=settings.DIGEST_INTERVAL_DAYS)
    return ApiResponse(status="success", data=DigestRunResponse(**stats).model_dump())
