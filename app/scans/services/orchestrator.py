"""Top-level scan coordination.

Buckets are processed one after another. Each bucket scan gets its own
session and its own ScanJob, and a failure in one bucket is logged and
counted without stopping the others.
"""

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import NoReturn

import structlog
from sqlalchemy.orm import Session

from app.catalog.repositories import BucketRepository
from app.core.config import Settings, settings
from app.core.storage import ObjectStore, get_object_store
from app.core.storage_errors import BucketErrorType, classify_error, format_classified_error
from app.db.session import SessionLocal
from app.scans.cancellation import CancellationToken
from app.scans.exceptions import (
    BucketLockedError,
    NoBucketConfiguredError,
    ScanCancelledError,
    SweepInProgressError,
)
from app.scans.services.bucket_lifecycle import BucketLifecycleTracker
from app.scans.services.bucket_validator import BucketValidator, ValidationResult
from app.scans.services.object_reconciler import ObjectReconciler
from app.scans.services.scan_job_tracker import ScanJobTracker, ScanStats

logger = structlog.get_logger(__name__)

# Shared by every orchestrator in the process
_sweep_lock = threading.Lock()


@dataclass
class BucketScanResult:
    bucket: str
    scan_job_id: int
    stats: ScanStats


@dataclass
class SweepSummary:
    scan_job_id: int | None = None
    buckets_scanned: int = 0
    buckets_failed_permanent: int = 0
    buckets_failed_temporary: int = 0
    totals: ScanStats = field(default_factory=ScanStats)
    failures: dict[str, BucketErrorType] = field(default_factory=dict)


class ScanOrchestrator:
    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        store: ObjectStore | None = None,
        *,
        config: Settings | None = None,
        token: CancellationToken | None = None,
    ):
        self.session_factory = session_factory
        self.store = store if store is not None else get_object_store()
        self.config = config or settings
        self.token = token or CancellationToken()

    def scan_bucket(self, name: str) -> BucketScanResult:
        """Probe and reconcile one bucket, registering it if it is new.

        Raises BucketInaccessibleError when the probe fails. A permanent
        failure quarantines the bucket first. When the catalog is locked to
        S3_BUCKET any other name raises BucketLockedError.
        """
        if self.config.bucket_locked and name != self.config.S3_BUCKET:
            raise BucketLockedError(name, self.config.S3_BUCKET)
        return self._scan_bucket(name, validation=None)

    def scan_configured_bucket(self) -> BucketScanResult:
        if not self.config.bucket_locked:
            raise NoBucketConfiguredError()
        return self.scan_bucket(self.config.S3_BUCKET)

    def run_full_sweep(self) -> SweepSummary:
        """Discover buckets, run bucket lifecycle sync, then scan each bucket.

        Only one sweep runs per process at a time; a second caller gets
        SweepInProgressError instead of waiting.
        """
        if not _sweep_lock.acquire(blocking=False):
            raise SweepInProgressError()
        try:
            return self._run_full_sweep()
        finally:
            _sweep_lock.release()

    def _run_full_sweep(self) -> SweepSummary:
        summary = SweepSummary()
        db = self.session_factory()
        try:
            tracker = ScanJobTracker(db)
            with tracker.track(None, "Full sweep failed") as (job, totals):
                summary.scan_job_id = job.id
                summary.totals = totals
                names = self._discover()
                logger.info("full_sweep_started", buckets=len(names), locked=self.config.bucket_locked)

                validations: dict[str, ValidationResult] = {}
                if self.config.ENABLE_BUCKET_SYNC:
                    lifecycle = BucketLifecycleTracker(
                        db,
                        self._validator(),
                        delete_threshold=self.config.BUCKET_DELETE_THRESHOLD,
                        region=self.config.S3_REGION,
                    )
                    sync = lifecycle.sync(names)
                    validations = sync.results
                    totals.buckets_validated = sync.validated
                    totals.buckets_marked_inaccessible = sync.marked_inaccessible
                    totals.buckets_cleaned_up = sync.cleaned_up
                    totals.bucket_validation_errors = sync.validation_errors

                for name in names:
                    self.token.raise_if_cancelled()
                    self._scan_into_summary(name, validations.get(name), summary)
                    tracker.checkpoint(job, totals)
        finally:
            db.close()

        logger.info(
            "full_sweep_completed",
            scan_job_id=summary.scan_job_id,
            scanned=summary.buckets_scanned,
            failed_permanent=summary.buckets_failed_permanent,
            failed_temporary=summary.buckets_failed_temporary,
            created=summary.totals.objects_created,
            updated=summary.totals.objects_updated,
            deleted=summary.totals.objects_deleted,
        )
        return summary

    def _discover(self) -> list[str]:
        if self.config.bucket_locked:
            return [self.config.S3_BUCKET]
        self.token.raise_if_cancelled()
        return self.store.list_buckets()

    def _scan_into_summary(
        self, name: str, validation: ValidationResult | None, summary: SweepSummary
    ) -> None:
        try:
            result = self._scan_bucket(name, validation)
        except ScanCancelledError:
            raise
        except Exception as e:
            error_type = classify_error(e)
            summary.failures[name] = error_type
            if error_type.is_permanent:
                summary.buckets_failed_permanent += 1
                logger.warning("bucket_scan_failed", bucket=name, error_type=error_type.value, error=str(e))
            else:
                summary.buckets_failed_temporary += 1
                logger.error("bucket_scan_failed", bucket=name, error_type=error_type.value, error=str(e))
            return

        summary.buckets_scanned += 1
        summary.totals.add_object_counts(result.stats)

    def _scan_bucket(self, name: str, validation: ValidationResult | None) -> BucketScanResult:
        db = self.session_factory()
        try:
            buckets = BucketRepository(db)
            tracker = ScanJobTracker(db)

            if validation is not None:
                # Already probed by the lifecycle pass, which owns the bucket row state
                if not validation.accessible:
                    raise validation.as_error()
                bucket = buckets.get_by_name(name)
                if bucket is None:
                    bucket = buckets.upsert(name, self.config.S3_REGION)
            else:
                validation = self._validator().validate(name)
                if not validation.accessible:
                    self._record_probe_failure(db, name, validation)
                bucket = buckets.upsert(name, self.config.S3_REGION)
                buckets.mark_accessible(bucket.id)

            bucket_id = bucket.id
            reconciler = ObjectReconciler(
                db,
                self.store,
                tracker,
                deletion_sync=self.config.ENABLE_DELETION_SYNC,
                prefix=self.config.S3_PREFIX,
                batch_size=self.config.SCAN_PROGRESS_BATCH_SIZE,
                token=self.token,
            )
            with tracker.track(bucket_id) as (job, stats):
                reconciler.reconcile(bucket_id, name, job, stats)
            return BucketScanResult(bucket=name, scan_job_id=job.id, stats=stats)
        finally:
            db.close()

    def _record_probe_failure(self, db: Session, name: str, validation: ValidationResult) -> NoReturn:
        """Persist a failed direct probe, then raise it.

        Permanent failures quarantine the bucket, registering it if needed.
        Transient ones leave the bucket row untouched. Either way the
        attempt is recorded as a failed scan job when the bucket is known.
        """
        buckets = BucketRepository(db)
        error = validation.as_error()
        bucket = buckets.get_by_name(name)
        if validation.is_permanent_failure:
            bucket = buckets.upsert(name, self.config.S3_REGION)
            buckets.mark_for_deletion(bucket.id)
            buckets.record_access_error(
                bucket.id, format_classified_error(error, "Bucket probe failed")
            )
            logger.warning("bucket_quarantined", bucket=name, error_type=error.error_type.value)
        if bucket is not None:
            with ScanJobTracker(db).track(bucket.id):
                raise error
        raise error

    def _validator(self) -> BucketValidator:
        return BucketValidator(
            self.store,
            max_retries=self.config.bucket_max_retries,
            backoff_seconds=self.config.BUCKET_RETRY_BACKOFF_SECONDS,
            skip_validation=self.config.SKIP_BUCKET_VALIDATION,
            token=self.token,
        )
