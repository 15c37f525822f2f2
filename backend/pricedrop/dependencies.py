"""FastAPI dependency injection providers."""

import secrets
import uuid
from typing import AsyncGenerator, Optional

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from pricedrop.config import settings
from pricedrop.db.session import async_session_factory
from pricedrop.models import UserProfile
from pricedrop.scrapers.scraper_service import ScraperService
from pricedrop.services.notification_service import NotificationService
from pricedrop.services.profile_service import ProfileService

logger = structlog.get_logger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a request-scoped database session.

    Committed on success, rolled back on error, always closed.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def get_notification_service() -> NotificationService:
    return NotificationService()


def get_scraper_service() -> ScraperService:
    return ScraperService()


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": "unauthorized", "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_access_token(token: str) -> Optional[dict]:
    """Verify an auth provider JWT and return its claims, or None if invalid."""
    options = {} if settings.JWT_AUDIENCE else {"verify_aud": False}
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE or None,
            options=options,
        )
    except JWTError:
        return None


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
) -> UserProfile:
    """Resolve the bearer JWT to a profile, creating it on first sight.

    Raises 401 if the token is missing, invalid or lacks sub/email claims.
    """
    if not credentials:
        raise _unauthorized("Authentication required")

    claims = decode_access_token(credentials.credentials)
    if not claims:
        raise _unauthorized("Invalid token")

    try:
        user_id = uuid.UUID(str(claims.get("sub")))
    except ValueError:
        raise _unauthorized("Invalid token")

    email = claims.get("email")
    if not email:
        raise _unauthorized("Token has no email claim")

    metadata = claims.get("user_metadata") or {}
    full_name = metadata.get("full_name") or claims.get("name")

    service = ProfileService(db, notifier=notifier)
    return await service.get_or_create(user_id, email, full_name)


async def verify_cron_secret(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> None:
    """Reject trigger requests without the configured bearer secret.

    An empty CRON_SECRET rejects everything so a misconfigured deployment
    is never open.
    """
    configured = settings.CRON_SECRET
    if not configured:
        logger.warning("cron_secret_not_configured")
        raise _unauthorized("Unauthorized")

    if not credentials or not secrets.compare_digest(
        credentials.credentials.encode(), configured.encode()
    ):
        logger.warning("cron_secret_rejected")
        raise _unauthorized("Unauthorized")
