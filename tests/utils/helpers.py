from datetime import datetime

import pytest
from sqlalchemy import update
from sqlalchemy.orm import Session

from app.catalog.models.bucket import Bucket
from app.catalog.repositories import CatalogEntryRepository

# Runs a module against SQLite and a PostgreSQL container
on_sqlite_and_postgresql = pytest.mark.parametrize(
    "test_engine", ["sqlite", "postgresql"], indirect=True
)


def catalog_keys(db: Session, bucket: Bucket) -> set[str]:
    db.expire_all()
    return set(CatalogEntryRepository(db).list_keys(bucket.id))


def set_last_accessible(db: Session, bucket_id: int, value: datetime | None) -> None:
    db.execute(update(Bucket).where(Bucket.id == bucket_id).values(last_accessible_at=value))
    db.commit()
    db.expire_all()
