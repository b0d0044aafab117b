"""Bucket-level mark-and-sweep.

Every sweep marks all known buckets, unmarks the ones whose probe
succeeds and purges buckets that stayed marked longer than the delete
threshold. A single failed probe never removes anything: the threshold
is measured from the last successful access.
"""

from dataclasses import dataclass, field
from datetime import timedelta

import structlog
from sqlalchemy.orm import Session

from app.catalog.repositories import BucketRepository
from app.core.config import settings
from app.core.datetime_utils import InvalidDurationError, parse_duration, utc_now
from app.core.storage_errors import format_classified_error
from app.scans.services.bucket_validator import BucketValidator, ValidationResult

logger = structlog.get_logger(__name__)


@dataclass
class BucketSyncResult:
    validated: int = 0
    marked_inaccessible: int = 0
    cleaned_up: int = 0
    validation_errors: int = 0
    results: dict[str, ValidationResult] = field(default_factory=dict)
    purged: list[str] = field(default_factory=list)

    def accessible_buckets(self) -> list[str]:
        return [name for name, result in self.results.items() if result.accessible]


class BucketLifecycleTracker:
    def __init__(
        self,
        db: Session,
        validator: BucketValidator,
        *,
        delete_threshold: str | timedelta | None = None,
        region: str | None = None,
    ):
        self.db = db
        self.buckets = BucketRepository(db)
        self.validator = validator
        self.delete_threshold = (
            settings.BUCKET_DELETE_THRESHOLD if delete_threshold is None else delete_threshold
        )
        self.region = settings.S3_REGION if region is None else region

    def sync(self, discovered: list[str]) -> BucketSyncResult:
        """Run all three phases over the discovered bucket names."""
        result = BucketSyncResult()

        marked = self.buckets.mark_all_for_deletion()
        logger.debug("buckets_marked", count=marked)

        # Buckets that failed transiently stay marked but are not purged this round
        protected: set[int] = set()
        for name in discovered:
            validation = self.validator.validate(name)
            result.results[name] = validation
            existing = self.buckets.get_by_name(name)

            if validation.accessible:
                bucket = self.buckets.upsert(name, self.region)
                self.buckets.mark_accessible(bucket.id)
                result.validated += 1
                continue

            result.validation_errors += 1
            if existing is None:
                continue
            if validation.is_permanent_failure:
                error = format_classified_error(validation.as_error(), "Bucket probe failed")
                self.buckets.record_access_error(existing.id, error)
                result.marked_inaccessible += 1
            else:
                protected.add(existing.id)

        self._purge_expired(result, protected)

        logger.info(
            "bucket_sync_completed",
            discovered=len(discovered),
            validated=result.validated,
            marked_inaccessible=result.marked_inaccessible,
            validation_errors=result.validation_errors,
            cleaned_up=result.cleaned_up,
        )
        return result

    def _purge_expired(self, result: BucketSyncResult, protected: set[int]) -> None:
        try:
            threshold = self._threshold()
        except InvalidDurationError as e:
            logger.error("bucket_purge_skipped", error=str(e))
            return

        cutoff = utc_now() - threshold
        expired = [b for b in self.buckets.get_buckets_to_delete(cutoff) if b.id not in protected]
        if not expired:
            return

        names = [b.name for b in expired]
        result.cleaned_up = self.buckets.delete_by_ids(b.id for b in expired)
        result.purged = names
        logger.warning("buckets_purged", buckets=names, threshold=str(threshold))

    def _threshold(self) -> timedelta:
        if isinstance(self.delete_threshold, timedelta):
            return self.delete_threshold
        return parse_duration(self.delete_threshold)
