"""Expiring advisory locks stored in the ``job_locks`` table."""

import uuid
from datetime import timedelta
from typing import Optional

import structlog
from sqlalchemy import delete, insert, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pricedrop.models.base import utcnow
from pricedrop.models.job_lock import JobLock

logger = structlog.get_logger(__name__)


class JobLockService:
    """Acquire and release named job locks.

    The primary key on ``name`` guarantees a single holder. A lock whose
    ``locked_until`` has passed belongs to a run that died without
    releasing it and may be taken over.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.logger = logger.bind(service="job_lock")

    async def acquire(self, name: str, ttl_seconds: float) -> Optional[str]:
        """Try to take the lock.

        Args:
            name: Job name the lock is keyed by
            ttl_seconds: Lease length; the lock lapses after this

        Returns:
            Owner token to pass to ``release``, or None if another live
            run holds the lock
        """
        owner = uuid.uuid4().hex
        now = utcnow()
        locked_until = now + timedelta(seconds=ttl_seconds)

        try:
            await self.db.execute(
                insert(JobLock).values(name=name, owner=owner, locked_until=locked_until)
            )
            await self.db.commit()
            self.logger.info("job_lock_acquired", name=name, owner=owner)
            return owner
        except IntegrityError:
            await self.db.rollback()

        # Row exists: take it over only if its lease has lapsed
        result = await self.db.execute(
            update(JobLock)
            .where(JobLock.name == name, JobLock.locked_until < now)
            .values(owner=owner, locked_until=locked_until)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        if result.rowcount == 1:
            self.logger.warning("job_lock_taken_over", name=name, owner=owner)
            return owner

        self.logger.info("job_lock_busy", name=name)
        return None

    async def release(self, name: str, owner: str) -> bool:
        """Release the lock if ``owner`` still holds it."""
        result = await self.db.execute(
            delete(JobLock)
            .where(JobLock.name == name, JobLock.owner == owner)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        released = result.rowcount == 1
        if released:
            self.logger.info("job_lock_released", name=name, owner=owner)
        else:
            self.logger.warning("job_lock_lost", name=name, owner=owner)
        return released
