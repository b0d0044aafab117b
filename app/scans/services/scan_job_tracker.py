"""Scan job lifecycle and progress persistence."""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass

import structlog
from sqlalchemy.orm import Session

from app.core.datetime_utils import utc_now
from app.core.storage_errors import format_classified_error
from app.scans.exceptions import InvalidScanJobTransitionError
from app.scans.models.scan_job import ScanJob, ScanJobStatus
from app.scans.repositories import ScanJobRepository

logger = structlog.get_logger(__name__)


@dataclass
class ScanStats:
    """Counters collected by one scan run."""

    objects_scanned: int = 0
    objects_created: int = 0
    objects_updated: int = 0
    objects_deleted: int = 0
    buckets_validated: int = 0
    buckets_marked_inaccessible: int = 0
    buckets_cleaned_up: int = 0
    bucket_validation_errors: int = 0

    def add_object_counts(self, other: "ScanStats") -> None:
        self.objects_scanned += other.objects_scanned
        self.objects_created += other.objects_created
        self.objects_updated += other.objects_updated
        self.objects_deleted += other.objects_deleted

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


class ScanJobTracker:
    """Owns the scan_jobs rows of the runs it creates.

    A job is created already running, may be checkpointed any number of
    times, and is finalized exactly once as completed or failed.
    """

    def __init__(self, db: Session):
        self.db = db
        self.jobs = ScanJobRepository(db)

    def create(self, bucket_id: int | None) -> ScanJob:
        now = utc_now()
        job = self.jobs.create(
            bucket_id=bucket_id,
            status=ScanJobStatus.RUNNING.value,
            started_at=now,
        )
        logger.debug("scan_job_created", scan_job_id=job.id, bucket_id=bucket_id)
        return job

    def checkpoint(self, job: ScanJob, stats: ScanStats) -> None:
        """Persist in-flight counters so long scans are observable."""
        self._ensure_open(job)
        self.jobs.update(job, **stats.as_dict())

    def complete(self, job: ScanJob, stats: ScanStats) -> ScanJob:
        self._ensure_open(job)
        return self.jobs.update(
            job,
            status=ScanJobStatus.COMPLETED.value,
            completed_at=utc_now(),
            **stats.as_dict(),
        )

    def fail(self, job: ScanJob, error_message: str, stats: ScanStats | None = None) -> ScanJob:
        self._ensure_open(job)
        counters = stats.as_dict() if stats is not None else {}
        return self.jobs.update(
            job,
            status=ScanJobStatus.FAILED.value,
            completed_at=utc_now(),
            error_message=error_message,
            **counters,
        )

    @contextmanager
    def track(
        self, bucket_id: int | None, failure_context: str = "Bucket scan failed"
    ) -> Iterator[tuple[ScanJob, ScanStats]]:
        """Run the body under a fresh job, finalizing it on every exit path.

        Normal exit completes the job with the yielded stats. Any exception
        (cancellation included) fails it with a classified message and is
        re-raised.
        """
        job = self.create(bucket_id)
        stats = ScanStats()
        try:
            yield job, stats
        except BaseException as exc:
            # The session may be mid-transaction after a database error
            self.db.rollback()
            message = format_classified_error(exc, failure_context)
            try:
                self.fail(job, message, stats)
            except Exception:
                logger.exception("scan_job_finalize_failed", scan_job_id=job.id)
            raise
        else:
            self.complete(job, stats)

    def _ensure_open(self, job: ScanJob) -> None:
        self.db.refresh(job)
        if ScanJobStatus(job.status).is_terminal:
            raise InvalidScanJobTransitionError(
                f"scan job {job.id} is already {job.status}"
            )
