"""Bucket model: one row per mirrored object-store bucket."""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.session import Base

if TYPE_CHECKING:
    from app.catalog.models.catalog_entry import CatalogEntry
    from app.scans.models.scan_job import ScanJob


class Bucket(Base):
    """
    Bucket model.

    ``marked_for_deletion`` is set for every bucket at the start of a bucket
    lifecycle sweep and cleared only by a successful probe in that sweep.
    Rows that stay marked past the delete threshold are purged together
    with their catalog entries and scan jobs.
    """

    __tablename__ = "buckets"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    region: Mapped[str | None] = mapped_column(String(100), default=None)
    marked_for_deletion: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    last_accessible_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None, index=True
    )
    access_error: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    entries: Mapped[list["CatalogEntry"]] = relationship(
        back_populates="bucket", cascade="all, delete-orphan", passive_deletes=True
    )
    scan_jobs: Mapped[list["ScanJob"]] = relationship(
        back_populates="bucket", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Bucket(id={self.id}, name={self.name}, marked={self.marked_for_deletion})>"
