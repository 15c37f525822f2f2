"""Advisory lock rows keyed by job name."""

from datetime import datetime

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from pricedrop.models.base import Base


class JobLock(Base):
    """Expiring lock held by one job runner.

    A row exists while a run of ``name`` is in progress. ``locked_until``
    lets another runner take the lock over once a crashed holder's lease
    has lapsed.
    """

    __tablename__ = "job_locks"

    name: Mapped[str] = mapped_column(String(50), primary_key=True)
    owner: Mapped[str] = mapped_column(String(64), nullable=False)
    locked_until: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<JobLock(name='{self.name}', owner='{self.owner}')>"
