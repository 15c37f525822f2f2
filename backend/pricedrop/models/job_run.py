"""Price check job run tracking and monitoring."""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from pricedrop.models.base import Base, UUIDPrimaryKeyMixin, utcnow


class JobRun(UUIDPrimaryKeyMixin, Base):
    """Audit record of one scheduled job execution.

    One row is appended per run with the item counters and wall-clock
    duration. Rows are never updated afterwards.
    """

    __tablename__ = "cron_logs"

    job_name: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
        comment="Status: 'success', 'partial', 'failed'"
    )

    # Metrics
    products_checked: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    products_updated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    alerts_sent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    errors: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    error_message: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Error message if job failed"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<JobRun(job_name='{self.job_name}', status='{self.status}', created_at={self.created_at})>"
