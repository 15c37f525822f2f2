"""Profile and notification preference endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pricedrop.dependencies import get_current_user, get_db
from pricedrop.models import UserProfile
from pricedrop.schemas.common import ApiResponse
from pricedrop.schemas.profile import ProfileResponse, ProfileUpdateRequest
from pricedrop.services.profile_service import ProfileService

router = APIRouter()


@router.get("", response_model=ApiResponse)
async def get_profile(current_user: UserProfile = Depends(get_current_user)):
    """Get the current user's profile."""
    return ApiResponse(
        status="success",
        data=ProfileResponse.model_validate(current_user).model_dump(mode="json"),
    )


@router.patch("", response_model=ApiResponse)
async def update_profile(
    body: ProfileUpdateRequest,
    current_user: UserProfile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update name and notification preferences."""
    profile = await ProfileService(db).update_preferences(
        current_user,
        email_notifications=body.email_notifications,
        sms_notifications=body.sms_notifications,
        full_name=body.full_name,
    )
    return ApiResponse(
        status="success",
        data=ProfileResponse.model_validate(profile).model_dump(mode="json"),
    )
