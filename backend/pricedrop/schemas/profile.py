"""User profile schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field

from pricedrop.models import get_plan_limit


class ProfileResponse(BaseModel):
    """Profile with plan usage and notification preferences."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    full_name: Optional[str] = None
    plan: str
    tracked_count: int
    alert_count: int
    email_notifications: bool
    sms_notifications: bool
    created_at: datetime

    @computed_field
    @property
    def plan_limit(self) -> int:
        return get_plan_limit(self.plan)


class ProfileUpdateRequest(BaseModel):
    """Partial profile update; omitted fields are unchanged."""

    full_name: Optional[str] = Field(None, min_length=2, max_length=200)
    email_notifications: Optional[bool] = None
    sms_notifications: Optional[bool] = None
