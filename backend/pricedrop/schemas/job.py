"""Scheduled job run schemas."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class JobSummaryResponse(BaseModel):
    """Result of one price check run."""

    status: str
    products_checked: int
    products_updated: int
    alerts_sent: int
    errors: int
    duration_ms: int
    error_message: Optional[str] = None
    price_drops: List[Dict[str, Any]] = []


class DigestRunResponse(BaseModel):
    profiles: int
    sent: int
    failed: int
