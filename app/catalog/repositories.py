"""Catalog persistence: bucket rows and catalog entries.

Bulk mark/unmark/delete operations are single UPDATE/DELETE statements
scoped to one bucket. Each call commits on its own.
"""

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import ColumnElement, and_, delete, func, or_, select, update
from sqlalchemy.orm import Session

import app.db.base  # noqa: F401 - register all models so relationships resolve
from app.catalog.models.bucket import Bucket
from app.catalog.models.catalog_entry import CatalogEntry
from app.core.datetime_utils import utc_now
from app.core.repository import BaseRepository, dialect_insert


class BucketRepository(BaseRepository[Bucket]):
    def __init__(self, db: Session):
        super().__init__(db, Bucket)

    def get_by_name(self, name: str) -> Bucket | None:
        return self.db.query(Bucket).filter(Bucket.name == name).first()

    def upsert(self, name: str, region: str | None) -> Bucket:
        """Create the bucket row, or refresh its region if it already exists."""
        now = utc_now()
        stmt = dialect_insert(self.db, Bucket).values(
            name=name,
            region=region,
            marked_for_deletion=False,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Bucket.name],
            set_={"region": stmt.excluded.region, "updated_at": now},
        )
        self.db.execute(stmt)
        self.db.commit()

        bucket = self.db.query(Bucket).filter(Bucket.name == name).one()
        self.db.refresh(bucket)
        return bucket

    def list_all(self) -> list[Bucket]:
        return self.db.query(Bucket).order_by(Bucket.name).all()

    def mark_all_for_deletion(self) -> int:
        result = self.db.execute(
            update(Bucket)
            .where(Bucket.marked_for_deletion.is_(False))
            .values(marked_for_deletion=True)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        self.db.expire_all()
        return result.rowcount or 0

    def mark_for_deletion(self, bucket_id: int) -> None:
        self.db.execute(
            update(Bucket)
            .where(Bucket.id == bucket_id)
            .values(marked_for_deletion=True)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        self.db.expire_all()

    def mark_accessible(self, bucket_id: int) -> None:
        """Unmark after a successful probe, stamping the access time and clearing errors."""
        self.db.execute(
            update(Bucket)
            .where(Bucket.id == bucket_id)
            .values(marked_for_deletion=False, last_accessible_at=utc_now(), access_error=None)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        self.db.expire_all()

    def record_access_error(self, bucket_id: int, error: str) -> None:
        # last_accessible_at is left alone: it must keep pointing at the last success
        self.db.execute(
            update(Bucket)
            .where(Bucket.id == bucket_id)
            .values(access_error=error)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        self.db.expire_all()

    def _expired_condition(self, cutoff: datetime) -> ColumnElement[bool]:
        return and_(
            Bucket.marked_for_deletion.is_(True),
            or_(
                Bucket.last_accessible_at < cutoff,
                and_(Bucket.last_accessible_at.is_(None), Bucket.created_at < cutoff),
            ),
        )

    def get_buckets_to_delete(self, cutoff: datetime) -> list[Bucket]:
        """Buckets still marked whose last successful access is older than ``cutoff``."""
        return self.db.query(Bucket).filter(self._expired_condition(cutoff)).all()

    def delete_by_ids(self, bucket_ids: Iterable[int]) -> int:
        ids = list(bucket_ids)
        if not ids:
            return 0
        result = self.db.execute(
            delete(Bucket)
            .where(Bucket.id.in_(ids))
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        self.db.expire_all()
        return result.rowcount or 0

    def list_accessible(self, recent_cutoff: datetime) -> list[Bucket]:
        """Buckets not marked and without a standing access error.

        A bucket that reported an error but was reachable after
        ``recent_cutoff`` is still considered accessible.
        """
        return (
            self.db.query(Bucket)
            .filter(
                Bucket.marked_for_deletion.is_(False),
                or_(Bucket.access_error.is_(None), Bucket.last_accessible_at > recent_cutoff),
            )
            .order_by(Bucket.name)
            .all()
        )


class CatalogEntryRepository(BaseRepository[CatalogEntry]):
    def __init__(self, db: Session):
        super().__init__(db, CatalogEntry)

    def get(self, bucket_id: int, key: str) -> CatalogEntry | None:
        return (
            self.db.query(CatalogEntry)
            .filter(CatalogEntry.bucket_id == bucket_id, CatalogEntry.key == key)
            .first()
        )

    def key_exists(self, bucket_id: int, key: str) -> bool:
        stmt = select(CatalogEntry.id).where(
            CatalogEntry.bucket_id == bucket_id, CatalogEntry.key == key
        )
        return self.db.execute(stmt).first() is not None

    def upsert_entry(
        self,
        bucket_id: int,
        key: str,
        size: int,
        last_modified: datetime | None,
        etag: str | None,
        storage_class: str | None,
        is_folder: bool,
        prefix: str | None,
    ) -> None:
        """Insert or overwrite the row for ``(bucket_id, key)`` and clear its stale mark."""
        now = utc_now()
        values = {
            "size": size,
            "last_modified": last_modified,
            "etag": etag,
            "storage_class": storage_class,
            "is_folder": is_folder,
            "prefix": prefix,
            "marked_for_deletion": False,
        }
        stmt = dialect_insert(self.db, CatalogEntry).values(
            bucket_id=bucket_id, key=key, created_at=now, updated_at=now, **values
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[CatalogEntry.bucket_id, CatalogEntry.key],
            set_={**values, "updated_at": now},
        )
        self.db.execute(stmt)
        self.db.commit()

    def ensure_folder(self, bucket_id: int, key: str, prefix: str | None) -> bool:
        """Create a folder row unless one exists. Returns True when a row was inserted."""
        now = utc_now()
        stmt = dialect_insert(self.db, CatalogEntry).values(
            bucket_id=bucket_id,
            key=key,
            size=0,
            last_modified=now,
            etag=None,
            storage_class=None,
            is_folder=True,
            prefix=prefix,
            marked_for_deletion=False,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_nothing(
            index_elements=[CatalogEntry.bucket_id, CatalogEntry.key]
        )
        result = self.db.execute(stmt)
        self.db.commit()
        return (result.rowcount or 0) > 0

    def unmark(self, bucket_id: int, keys: Iterable[str]) -> None:
        key_list = list(keys)
        if not key_list:
            return
        self.db.execute(
            update(CatalogEntry)
            .where(
                CatalogEntry.bucket_id == bucket_id,
                CatalogEntry.key.in_(key_list),
                CatalogEntry.marked_for_deletion.is_(True),
            )
            .values(marked_for_deletion=False)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

    def mark_all_stale(self, bucket_id: int, prefix: str = "") -> int:
        """Mark the bucket's rows stale; with ``prefix`` only rows under it are touched."""
        conditions = [CatalogEntry.bucket_id == bucket_id]
        if prefix:
            conditions.append(CatalogEntry.key.startswith(prefix, autoescape=True))
        result = self.db.execute(
            update(CatalogEntry)
            .where(*conditions)
            .values(marked_for_deletion=True)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount or 0

    def count_stale(self, bucket_id: int) -> int:
        stmt = select(func.count(CatalogEntry.id)).where(
            CatalogEntry.bucket_id == bucket_id,
            CatalogEntry.marked_for_deletion.is_(True),
        )
        return int(self.db.execute(stmt).scalar_one())

    def delete_stale(self, bucket_id: int) -> int:
        result = self.db.execute(
            delete(CatalogEntry)
            .where(
                CatalogEntry.bucket_id == bucket_id,
                CatalogEntry.marked_for_deletion.is_(True),
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount or 0

    def delete_key(self, bucket_id: int, key: str) -> int:
        result = self.db.execute(
            delete(CatalogEntry)
            .where(CatalogEntry.bucket_id == bucket_id, CatalogEntry.key == key)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount or 0

    def count_for_bucket(self, bucket_id: int) -> int:
        stmt = select(func.count(CatalogEntry.id)).where(CatalogEntry.bucket_id == bucket_id)
        return int(self.db.execute(stmt).scalar_one())

    def list_keys(self, bucket_id: int) -> list[str]:
        stmt = (
            select(CatalogEntry.key)
            .where(CatalogEntry.bucket_id == bucket_id)
            .order_by(CatalogEntry.key)
        )
        return list(self.db.execute(stmt).scalars())
