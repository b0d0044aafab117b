"""Write-through updates for objects changed outside a scan.

Uploads and deletions performed through the application are applied to
the catalog immediately instead of waiting for the next scheduled scan.
"""

from datetime import datetime

import structlog
from sqlalchemy.orm import Session

from app.catalog.keys import ancestor_folders, is_folder_key, parent_prefix
from app.catalog.models.catalog_entry import CatalogEntry
from app.catalog.repositories import BucketRepository, CatalogEntryRepository
from app.core.config import settings
from app.core.datetime_utils import utc_now
from app.core.exceptions import ConflictError, NotFoundError

logger = structlog.get_logger(__name__)


class PartialDeletionSyncError(Exception):
    """Some keys could not be removed from the catalog."""

    def __init__(self, bucket: str, failed_keys: list[str], deleted: int):
        self.bucket = bucket
        self.failed_keys = failed_keys
        self.deleted = deleted
        super().__init__(
            f"failed to remove {len(failed_keys)} of {len(failed_keys) + deleted} "
            f"keys from bucket {bucket}"
        )


class CatalogSyncService:
    @staticmethod
    def sync_uploaded_object(
        db: Session,
        bucket_name: str,
        key: str,
        size: int,
        etag: str | None = None,
        storage_class: str | None = None,
        last_modified: datetime | None = None,
    ) -> CatalogEntry:
        """Record one uploaded object together with its ancestor folders.

        The bucket row is registered if the catalog has not seen it yet.
        """
        buckets = BucketRepository(db)
        bucket = buckets.get_by_name(bucket_name)
        if bucket is None:
            bucket = buckets.upsert(bucket_name, settings.S3_REGION)

        entries = CatalogEntryRepository(db)
        for folder_key, folder_parent in ancestor_folders(key):
            entries.ensure_folder(bucket.id, folder_key, folder_parent)

        folder = is_folder_key(key)
        entries.upsert_entry(
            bucket_id=bucket.id,
            key=key,
            size=0 if folder else size,
            last_modified=last_modified or utc_now(),
            etag=etag,
            storage_class=storage_class,
            is_folder=folder,
            prefix=parent_prefix(key),
        )
        entry = entries.get(bucket.id, key)
        if entry is None:
            raise ConflictError(
                f"Catalog entry {key} was removed during sync", resource="catalog_entry"
            )
        logger.debug("catalog_object_synced", bucket=bucket_name, key=key)
        return entry

    @staticmethod
    def sync_deleted_objects(db: Session, bucket_name: str, keys: list[str]) -> int:
        """Remove rows for deleted keys, continuing past individual failures.

        Returns the number of rows removed. Raises PartialDeletionSyncError
        after trying every key when at least one removal failed.
        """
        bucket = BucketRepository(db).get_by_name(bucket_name)
        if bucket is None:
            raise NotFoundError(f"Bucket {bucket_name} not found", resource="bucket")

        entries = CatalogEntryRepository(db)
        deleted = 0
        failed: list[str] = []
        for key in keys:
            try:
                deleted += entries.delete_key(bucket.id, key)
            except Exception as e:
                db.rollback()
                failed.append(key)
                logger.warning("catalog_delete_failed", bucket=bucket_name, key=key, error=str(e))

        if failed:
            raise PartialDeletionSyncError(bucket_name, failed, deleted)
        return deleted
