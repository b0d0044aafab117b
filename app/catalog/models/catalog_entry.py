from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.session import Base

if TYPE_CHECKING:
    from app.catalog.models.bucket import Bucket


class CatalogEntry(Base):
    """One object or folder of a bucket, mirrored from the storage listing.

    Folder keys end with "/". ``prefix`` is the parent folder key, or None
    at the bucket root.
    """

    __tablename__ = "catalog_entries"
    __table_args__ = (
        UniqueConstraint("bucket_id", "key", name="uq_catalog_entries_bucket_key"),
        Index("ix_catalog_entries_bucket_prefix_folder", "bucket_id", "prefix", "is_folder"),
        Index("ix_catalog_entries_bucket_marked", "bucket_id", "marked_for_deletion"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    bucket_id: Mapped[int] = mapped_column(ForeignKey("buckets.id", ondelete="CASCADE"))
    key: Mapped[str] = mapped_column(String(1024))
    size: Mapped[int] = mapped_column(BigInteger, default=0)
    last_modified: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    etag: Mapped[str | None] = mapped_column(String(255), default=None)
    storage_class: Mapped[str | None] = mapped_column(String(50), default=None)
    is_folder: Mapped[bool] = mapped_column(Boolean, default=False)
    prefix: Mapped[str | None] = mapped_column(String(1024), default=None)
    marked_for_deletion: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    bucket: Mapped["Bucket"] = relationship(back_populates="entries")

    def __repr__(self) -> str:
        return f"<CatalogEntry(bucket_id={self.bucket_id}, key={self.key})>"
