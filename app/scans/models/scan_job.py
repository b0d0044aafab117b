import enum
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.session import Base

if TYPE_CHECKING:
    from app.catalog.models.bucket import Bucket


class ScanJobStatus(str, enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ScanJobStatus.COMPLETED, ScanJobStatus.FAILED)


class ScanJob(Base):
    """One scan attempt. ``bucket_id`` is None for the aggregate row of a full sweep."""

    __tablename__ = "scan_jobs"

    id: Mapped[int] = mapped_column(primary_key=True)
    bucket_id: Mapped[int | None] = mapped_column(
        ForeignKey("buckets.id", ondelete="CASCADE"), default=None, index=True
    )
    status: Mapped[str] = mapped_column(
        String(20), default=ScanJobStatus.PENDING.value, index=True
    )
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    error_message: Mapped[str | None] = mapped_column(Text, default=None)

    objects_scanned: Mapped[int] = mapped_column(Integer, default=0)
    objects_created: Mapped[int] = mapped_column(Integer, default=0)
    objects_updated: Mapped[int] = mapped_column(Integer, default=0)
    objects_deleted: Mapped[int] = mapped_column(Integer, default=0)
    buckets_validated: Mapped[int] = mapped_column(Integer, default=0)
    buckets_marked_inaccessible: Mapped[int] = mapped_column(Integer, default=0)
    buckets_cleaned_up: Mapped[int] = mapped_column(Integer, default=0)
    bucket_validation_errors: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    bucket: Mapped["Bucket | None"] = relationship(back_populates="scan_jobs")

    def __repr__(self) -> str:
        return f"<ScanJob(id={self.id}, bucket_id={self.bucket_id}, status={self.status})>"
