"""Read-only views of the catalog for the browsing layer."""

from datetime import timedelta

import structlog
from sqlalchemy.orm import Session

from app.catalog.models.bucket import Bucket
from app.catalog.repositories import BucketRepository, CatalogEntryRepository
from app.catalog.schemas import BucketWithStatusResponse
from app.core.config import settings
from app.core.constants import SCAN_STATUS_NEVER_SCANNED
from app.core.datetime_utils import InvalidDurationError, utc_now
from app.core.exceptions import NotFoundError
from app.scans.repositories import ScanJobRepository
from app.scans.schemas import ScanJobResponse, ScanStatusResponse

logger = structlog.get_logger(__name__)

_FALLBACK_SYNC_WINDOW = timedelta(hours=24)


def _recent_window() -> timedelta:
    try:
        return settings.sync_threshold
    except InvalidDurationError as e:
        logger.warning("sync_threshold_invalid", error=str(e), fallback="24h")
        return _FALLBACK_SYNC_WINDOW


class CatalogQueryService:
    """Service layer for catalog reads"""

    @staticmethod
    def list_accessible_buckets(db: Session, recent_window: timedelta | None = None) -> list[Bucket]:
        """Buckets that are not quarantined.

        A bucket with a recorded access error still counts when it was
        reachable within ``recent_window`` (the sync threshold by default).
        """
        window = recent_window if recent_window is not None else _recent_window()
        return BucketRepository(db).list_accessible(utc_now() - window)

    @staticmethod
    def list_buckets_with_status(db: Session) -> list[BucketWithStatusResponse]:
        """All bucket rows, quarantined ones included, with their latest scan"""
        jobs = ScanJobRepository(db)
        entries = CatalogEntryRepository(db)

        result: list[BucketWithStatusResponse] = []
        for bucket in BucketRepository(db).list_all():
            latest = jobs.get_latest_for_bucket(bucket.id)
            result.append(
                BucketWithStatusResponse(
                    id=bucket.id,
                    name=bucket.name,
                    region=bucket.region,
                    last_accessible_at=bucket.last_accessible_at,
                    created_at=bucket.created_at,
                    marked_for_deletion=bucket.marked_for_deletion,
                    access_error=bucket.access_error,
                    scan_status=latest.status if latest else SCAN_STATUS_NEVER_SCANNED,
                    last_scan_at=(latest.completed_at or latest.started_at) if latest else None,
                    last_scan_error=latest.error_message if latest else None,
                    entry_count=entries.count_for_bucket(bucket.id),
                )
            )
        return result

    @staticmethod
    def get_scan_status(db: Session, bucket_name: str) -> ScanStatusResponse:
        bucket = BucketRepository(db).get_by_name(bucket_name)
        if bucket is None:
            raise NotFoundError(f"Bucket {bucket_name} not found", resource="bucket")

        latest = ScanJobRepository(db).get_latest_for_bucket(bucket.id)
        return ScanStatusResponse(
            bucket=bucket.name,
            status=latest.status if latest else SCAN_STATUS_NEVER_SCANNED,
            marked_for_deletion=bucket.marked_for_deletion,
            access_error=bucket.access_error,
            latest_job=ScanJobResponse.model_validate(latest) if latest else None,
        )
