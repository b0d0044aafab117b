"""Object-level mark-and-sweep for a single bucket.

The scan runs in three strictly ordered phases:

1. Mark every catalog row of the bucket stale (only with deletion sync).
2. Walk the storage listing one page at a time. Each object is upserted,
   its missing ancestor folders are synthesized and everything observed
   is unmarked.
3. Delete whatever is still marked (only with deletion sync).

Every catalog write is its own statement, so an interrupted scan leaves
a state the next run's mark/sweep pair resolves.
"""

import enum

import structlog
from sqlalchemy.orm import Session

from app.catalog.keys import ancestor_folders, is_folder_key, parent_prefix
from app.catalog.repositories import CatalogEntryRepository
from app.core.config import settings
from app.core.storage import ObjectStore, StorageObject
from app.scans.cancellation import CancellationToken
from app.scans.models.scan_job import ScanJob
from app.scans.services.scan_job_tracker import ScanJobTracker, ScanStats

logger = structlog.get_logger(__name__)


class ReconcilerState(str, enum.Enum):
    IDLE = "idle"
    MARKING_STALE = "marking_stale"
    LISTING = "listing"
    RECONCILED = "reconciled"
    SWEEPING = "sweeping"
    DONE = "done"
    FAILED = "failed"


class ObjectReconciler:
    def __init__(
        self,
        db: Session,
        store: ObjectStore,
        tracker: ScanJobTracker,
        *,
        deletion_sync: bool | None = None,
        prefix: str | None = None,
        batch_size: int | None = None,
        token: CancellationToken | None = None,
    ):
        self.db = db
        self.store = store
        self.tracker = tracker
        self.entries = CatalogEntryRepository(db)
        self.deletion_sync = settings.ENABLE_DELETION_SYNC if deletion_sync is None else deletion_sync
        self.prefix = settings.S3_PREFIX if prefix is None else prefix
        self.batch_size = max(batch_size or settings.SCAN_PROGRESS_BATCH_SIZE, 1)
        self.token = token or CancellationToken()
        self.state = ReconcilerState.IDLE

    def reconcile(self, bucket_id: int, bucket_name: str, job: ScanJob, stats: ScanStats) -> ScanStats:
        """Bring the catalog rows of one bucket in line with its listing.

        ``stats`` is updated in place and checkpointed to ``job`` as the
        listing progresses. Listing failures and cancellation propagate;
        the caller owns finalizing the job.
        """
        log = logger.bind(bucket=bucket_name, scan_job_id=job.id)
        try:
            if self.deletion_sync:
                self._transition(ReconcilerState.MARKING_STALE, log)
                self.token.raise_if_cancelled()
                marked = self.entries.mark_all_stale(bucket_id, self.prefix)
                log.debug("catalog_entries_marked_stale", count=marked)

            self._transition(ReconcilerState.LISTING, log)
            self._list_and_upsert(bucket_id, bucket_name, job, stats, log)
            self._transition(ReconcilerState.RECONCILED, log)

            if self.deletion_sync:
                self._transition(ReconcilerState.SWEEPING, log)
                self.token.raise_if_cancelled()
                stats.objects_deleted = self._sweep(bucket_id, log)

            self._transition(ReconcilerState.DONE, log)
        except BaseException:
            self.state = ReconcilerState.FAILED
            raise

        log.info(
            "bucket_reconciled",
            scanned=stats.objects_scanned,
            created=stats.objects_created,
            updated=stats.objects_updated,
            deleted=stats.objects_deleted,
        )
        return stats

    def _list_and_upsert(self, bucket_id, bucket_name, job, stats, log) -> None:
        processed = 0
        pages = self.store.iter_object_pages(bucket_name, self.prefix)
        while True:
            self.token.raise_if_cancelled()
            page = next(pages, None)
            if page is None:
                break

            # Folders already ensured on this page; reset per page to keep memory flat
            seen_folders: set[str] = set()
            for obj in page:
                self.token.raise_if_cancelled()
                try:
                    self._process_object(bucket_id, obj, stats, seen_folders)
                except Exception as e:
                    self.db.rollback()
                    log.warning("catalog_object_skipped", key=obj.key, error=str(e))

                processed += 1
                if processed % self.batch_size == 0:
                    self.tracker.checkpoint(job, stats)
                    log.debug("scan_progress", processed=processed)

    def _process_object(
        self, bucket_id: int, obj: StorageObject, stats: ScanStats, seen_folders: set[str]
    ) -> None:
        observed_folders: list[str] = []
        for folder_key, folder_parent in ancestor_folders(obj.key):
            if folder_key in seen_folders:
                continue
            if self.entries.ensure_folder(bucket_id, folder_key, folder_parent):
                stats.objects_created += 1
            else:
                observed_folders.append(folder_key)
            seen_folders.add(folder_key)

        if self.deletion_sync and observed_folders:
            self.entries.unmark(bucket_id, observed_folders)

        existed = self.entries.key_exists(bucket_id, obj.key)
        folder = is_folder_key(obj.key)
        self.entries.upsert_entry(
            bucket_id=bucket_id,
            key=obj.key,
            size=0 if folder else obj.size,
            last_modified=obj.last_modified,
            etag=obj.etag,
            storage_class=obj.storage_class,
            is_folder=folder,
            prefix=parent_prefix(obj.key),
        )
        if folder:
            seen_folders.add(obj.key)

        stats.objects_scanned += 1
        if existed:
            stats.objects_updated += 1
        else:
            stats.objects_created += 1

    def _sweep(self, bucket_id: int, log) -> int:
        try:
            stale = self.entries.count_stale(bucket_id)
            if stale == 0:
                return 0
            deleted = self.entries.delete_stale(bucket_id)
        except Exception as e:
            # Rows stay marked and are swept by the next run
            self.db.rollback()
            log.error("catalog_sweep_failed", error=str(e))
            return 0
        log.info("catalog_entries_swept", count=deleted)
        return deleted

    def _transition(self, state: ReconcilerState, log) -> None:
        log.debug("reconciler_state", previous=self.state.value, state=state.value)
        self.state = state
