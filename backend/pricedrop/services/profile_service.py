"""User profiles created on first authenticated request."""

import uuid
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pricedrop.core.exceptions import DispatchError
from pricedrop.models import PlanTier, UserProfile
from pricedrop.services.notification_service import NotificationService

logger = structlog.get_logger(__name__)


class ProfileService:
    """Reads and updates user profiles and notification preferences."""

    def __init__(self, db: AsyncSession, notifier: Optional[NotificationService] = None):
        self.db = db
        self.notifier = notifier or NotificationService()
        self.logger = logger.bind(service="profile_service")

    async def get_or_create(
        self,
        user_id: uuid.UUID,
        email: str,
        full_name: Optional[str] = None,
    ) -> UserProfile:
        """Return the user's profile, creating a free one on first sight.

        A newly created user is sent the welcome email; a delivery failure
        is logged and does not fail the request.
        """
        profile = await self.db.get(UserProfile, user_id)
        if profile is not None:
            return profile

        profile = UserProfile(
            id=user_id,
            email=email,
            full_name=full_name,
            plan=PlanTier.FREE.value,
        )
        self.db.add(profile)
        try:
            await self.db.commit()
        except IntegrityError:
            # A concurrent request created it first
            await self.db.rollback()
            return await self.db.get(UserProfile, user_id)

        self.logger.info("profile_created", user_id=str(user_id))

        try:
            await self.notifier.send_welcome(profile)
        except DispatchError as e:
            self.logger.warning("welcome_email_failed", user_id=str(user_id), error=str(e))

        return profile

    async def update_preferences(
        self,
        profile: UserProfile,
        email_notifications: Optional[bool] = None,
        sms_notifications: Optional[bool] = None,
        full_name: Optional[str] = None,
    ) -> UserProfile:
        """Apply the given changes; None leaves a field untouched."""
        if email_notifications is not None:
            profile.email_notifications = email_notifications
        if sms_notifications is not None:
            profile.sms_notifications = sms_notifications
        if full_name is not None:
            profile.full_name = full_name

        await self.db.commit()
        await self.db.refresh(profile)

        self.logger.info(
            "profile_preferences_updated",
            user_id=str(profile.id),
            email_notifications=profile.email_notifications,
            sms_notifications=profile.sms_notifications,
        )
        return profile
