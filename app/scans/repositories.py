from sqlalchemy.orm import Session

import app.db.base  # noqa: F401 - register all models so relationships resolve
from app.core.repository import BaseRepository
from app.scans.models.scan_job import ScanJob


class ScanJobRepository(BaseRepository[ScanJob]):
    def __init__(self, db: Session):
        super().__init__(db, ScanJob)

    def get_latest_for_bucket(self, bucket_id: int) -> ScanJob | None:
        return (
            self.db.query(ScanJob)
            .filter(ScanJob.bucket_id == bucket_id)
            .order_by(ScanJob.created_at.desc(), ScanJob.id.desc())
            .first()
        )

    def get_latest_global(self) -> ScanJob | None:
        """Latest aggregate job written by a full sweep."""
        return (
            self.db.query(ScanJob)
            .filter(ScanJob.bucket_id.is_(None))
            .order_by(ScanJob.created_at.desc(), ScanJob.id.desc())
            .first()
        )
