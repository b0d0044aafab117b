from datetime import timedelta

from app.catalog.models.bucket import Bucket
from app.catalog.repositories import BucketRepository, CatalogEntryRepository
from app.core.datetime_utils import utc_now
from app.core.repository import dialect_insert
from tests.utils.helpers import on_sqlite_and_postgresql, set_last_accessible

pytestmark = on_sqlite_and_postgresql


def test_upsert_statement_matches_backend(db_session):
    dialect = db_session.get_bind().dialect.name
    stmt = dialect_insert(db_session, Bucket)
    assert type(stmt).__module__.startswith(f"sqlalchemy.dialects.{dialect}")


class TestBucketRepository:
    def test_upsert_creates_then_refreshes_region(self, db_session):
        repo = BucketRepository(db_session)
        first = repo.upsert("media", "us-east-1")
        second = repo.upsert("media", "eu-west-1")

        assert first.id == second.id
        assert second.region == "eu-west-1"
        assert repo.count() == 1

    def test_mark_accessible_clears_error_and_stamps_time(self, db_session):
        repo = BucketRepository(db_session)
        bucket = repo.upsert("media", None)
        repo.mark_all_for_deletion()
        repo.record_access_error(bucket.id, "denied")

        repo.mark_accessible(bucket.id)

        bucket = repo.get_by_name("media")
        assert not bucket.marked_for_deletion
        assert bucket.access_error is None
        assert bucket.last_accessible_at is not None

    def test_record_access_error_keeps_last_access_time(self, db_session):
        repo = BucketRepository(db_session)
        bucket = repo.upsert("media", None)
        repo.mark_accessible(bucket.id)
        before = repo.get_by_name("media").last_accessible_at

        repo.record_access_error(bucket.id, "denied")

        assert repo.get_by_name("media").last_accessible_at == before

    def test_buckets_to_delete_requires_mark_and_age(self, db_session):
        repo = BucketRepository(db_session)
        old = repo.upsert("old", None)
        recent = repo.upsert("recent", None)
        unmarked = repo.upsert("unmarked", None)
        set_last_accessible(db_session, old.id, utc_now() - timedelta(days=10))
        set_last_accessible(db_session, recent.id, utc_now() - timedelta(hours=1))
        set_last_accessible(db_session, unmarked.id, utc_now() - timedelta(days=10))
        repo.mark_for_deletion(old.id)
        repo.mark_for_deletion(recent.id)

        expired = repo.get_buckets_to_delete(utc_now() - timedelta(days=7))

        assert [b.name for b in expired] == ["old"]

    def test_delete_cascades_to_entries(self, db_session):
        buckets = BucketRepository(db_session)
        entries = CatalogEntryRepository(db_session)
        bucket = buckets.upsert("media", None)
        entries.ensure_folder(bucket.id, "docs/", None)

        assert buckets.delete_by_ids([bucket.id]) == 1
        assert entries.count_for_bucket(bucket.id) == 0

    def test_list_accessible(self, db_session):
        repo = BucketRepository(db_session)
        healthy = repo.upsert("healthy", None)
        flaky = repo.upsert("flaky", None)
        broken = repo.upsert("broken", None)
        quarantined = repo.upsert("quarantined", None)
        for bucket in (healthy, flaky, broken):
            repo.mark_accessible(bucket.id)
        repo.record_access_error(flaky.id, "timeout")
        repo.record_access_error(broken.id, "denied")
        set_last_accessible(db_session, broken.id, utc_now() - timedelta(days=3))
        repo.mark_for_deletion(quarantined.id)

        names = [b.name for b in repo.list_accessible(utc_now() - timedelta(hours=24))]

        assert names == ["flaky", "healthy"]


class TestCatalogEntryRepository:
    def test_ensure_folder_is_idempotent(self, db_session):
        bucket = BucketRepository(db_session).upsert("media", None)
        repo = CatalogEntryRepository(db_session)

        assert repo.ensure_folder(bucket.id, "docs/", None) is True
        assert repo.ensure_folder(bucket.id, "docs/", None) is False
        assert repo.count_for_bucket(bucket.id) == 1

    def test_upsert_entry_overwrites_and_unmarks(self, db_session):
        bucket = BucketRepository(db_session).upsert("media", None)
        repo = CatalogEntryRepository(db_session)
        repo.upsert_entry(bucket.id, "x.txt", 1, utc_now(), "a", "STANDARD", False, None)
        repo.mark_all_stale(bucket.id)

        repo.upsert_entry(bucket.id, "x.txt", 2, utc_now(), "b", "STANDARD", False, None)

        db_session.expire_all()
        entry = repo.get(bucket.id, "x.txt")
        assert entry.size == 2
        assert entry.etag == "b"
        assert not entry.marked_for_deletion
        assert repo.count_for_bucket(bucket.id) == 1

    def test_mark_count_delete_stale(self, db_session):
        bucket = BucketRepository(db_session).upsert("media", None)
        repo = CatalogEntryRepository(db_session)
        for key in ("a.txt", "b.txt", "c.txt"):
            repo.upsert_entry(bucket.id, key, 1, None, None, None, False, None)

        assert repo.mark_all_stale(bucket.id) == 3
        repo.unmark(bucket.id, ["a.txt"])

        assert repo.count_stale(bucket.id) == 2
        assert repo.delete_stale(bucket.id) == 2
        assert repo.list_keys(bucket.id) == ["a.txt"]

    def test_mark_all_stale_scoped_to_prefix(self, db_session):
        bucket = BucketRepository(db_session).upsert("media", None)
        repo = CatalogEntryRepository(db_session)
        repo.upsert_entry(bucket.id, "logs/1.txt", 1, None, None, None, False, "logs/")
        repo.upsert_entry(bucket.id, "data/1.txt", 1, None, None, None, False, "data/")

        assert repo.mark_all_stale(bucket.id, "logs/") == 1
        assert repo.count_stale(bucket.id) == 1

    def test_writes_scoped_to_bucket(self, db_session):
        buckets = BucketRepository(db_session)
        repo = CatalogEntryRepository(db_session)
        first = buckets.upsert("first", None)
        second = buckets.upsert("second", None)
        repo.upsert_entry(first.id, "x.txt", 1, None, None, None, False, None)
        repo.upsert_entry(second.id, "x.txt", 1, None, None, None, False, None)

        repo.mark_all_stale(first.id)
        repo.delete_stale(first.id)

        assert repo.count_for_bucket(first.id) == 0
        assert repo.count_for_bucket(second.id) == 1
