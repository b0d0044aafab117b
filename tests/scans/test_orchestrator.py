"""Tests for ScanOrchestrator entry points."""

import pytest

from app.catalog.repositories import BucketRepository
from app.core.storage_errors import BucketErrorType
from app.scans.cancellation import CancellationToken
from app.scans.exceptions import (
    BucketInaccessibleError,
    BucketLockedError,
    NoBucketConfiguredError,
    ScanCancelledError,
    SweepInProgressError,
)
from app.scans.models.scan_job import ScanJobStatus
from app.scans.repositories import ScanJobRepository
from app.scans.services import orchestrator as orchestrator_module
from app.scans.services.orchestrator import ScanOrchestrator
from tests.utils.fake_store import access_denied, service_unavailable
from tests.utils.helpers import catalog_keys


@pytest.fixture
def make_orchestrator(session_factory, fake_store, make_settings):
    def _make(token=None, **overrides):
        return ScanOrchestrator(
            session_factory, fake_store, config=make_settings(**overrides), token=token
        )

    return _make


@pytest.fixture
def three_buckets(fake_store):
    fake_store.add_bucket("alpha", "a.txt", "dir/b.txt")
    fake_store.add_bucket("beta", "secret.txt")
    fake_store.add_bucket("gamma", "c.txt")
    fake_store.deny("beta", access_denied())


class TestFullSweep:
    def test_failed_bucket_does_not_stop_the_others(
        self, db_session, three_buckets, make_orchestrator
    ):
        summary = make_orchestrator().run_full_sweep()

        assert summary.buckets_scanned == 2
        assert summary.buckets_failed_permanent == 1
        assert summary.buckets_failed_temporary == 0
        assert summary.failures == {"beta": BucketErrorType.ACCESS_DENIED}
        assert summary.totals.objects_created == 4

        repo = BucketRepository(db_session)
        assert catalog_keys(db_session, repo.get_by_name("alpha")) == {"a.txt", "dir/", "dir/b.txt"}
        assert catalog_keys(db_session, repo.get_by_name("gamma")) == {"c.txt"}

    def test_without_bucket_sync_failures_classified_per_bucket(
        self, db_session, fake_store, three_buckets, make_orchestrator
    ):
        fake_store.deny("gamma", service_unavailable())

        summary = make_orchestrator(ENABLE_BUCKET_SYNC=False).run_full_sweep()

        assert summary.buckets_scanned == 1
        assert summary.failures == {
            "beta": BucketErrorType.ACCESS_DENIED,
            "gamma": BucketErrorType.TEMPORARY,
        }
        assert summary.buckets_failed_permanent == 1
        assert summary.buckets_failed_temporary == 1
        beta = BucketRepository(db_session).get_by_name("beta")
        assert beta.marked_for_deletion

    def test_aggregate_job_recorded(self, db_session, three_buckets, make_orchestrator):
        summary = make_orchestrator().run_full_sweep()

        job = ScanJobRepository(db_session).get_latest_global()
        assert job.id == summary.scan_job_id
        assert job.bucket_id is None
        assert job.status == ScanJobStatus.COMPLETED.value
        assert job.buckets_validated == 2
        assert job.bucket_validation_errors == 1
        assert job.objects_created == 4

    def test_each_bucket_gets_its_own_job(self, db_session, three_buckets, make_orchestrator):
        make_orchestrator().run_full_sweep()

        jobs = ScanJobRepository(db_session)
        for name in ("alpha", "gamma"):
            bucket = BucketRepository(db_session).get_by_name(name)
            assert jobs.get_latest_for_bucket(bucket.id).status == ScanJobStatus.COMPLETED.value

    def test_second_sweep_is_idempotent(self, three_buckets, make_orchestrator):
        make_orchestrator().run_full_sweep()

        summary = make_orchestrator().run_full_sweep()

        assert summary.totals.objects_created == 0
        assert summary.totals.objects_deleted == 0

    def test_locked_bucket_bypasses_discovery(self, db_session, three_buckets, make_orchestrator):
        summary = make_orchestrator(S3_BUCKET="gamma").run_full_sweep()

        repo = BucketRepository(db_session)
        assert summary.buckets_scanned == 1
        assert repo.get_by_name("gamma") is not None
        assert repo.get_by_name("alpha") is None

    def test_locked_bucket_failure_is_not_fatal(self, db_session, three_buckets, make_orchestrator):
        summary = make_orchestrator(S3_BUCKET="beta").run_full_sweep()

        job = ScanJobRepository(db_session).get_latest_global()
        assert summary.failures == {"beta": BucketErrorType.ACCESS_DENIED}
        assert job.status == ScanJobStatus.COMPLETED.value

    def test_single_flight(self, three_buckets, make_orchestrator):
        assert orchestrator_module._sweep_lock.acquire(blocking=False)
        try:
            with pytest.raises(SweepInProgressError):
                make_orchestrator().run_full_sweep()
        finally:
            orchestrator_module._sweep_lock.release()

    def test_cancelled_sweep_fails_aggregate_job(
        self, db_session, three_buckets, make_orchestrator
    ):
        token = CancellationToken()
        token.cancel()

        with pytest.raises(ScanCancelledError):
            make_orchestrator(token=token).run_full_sweep()

        job = ScanJobRepository(db_session).get_latest_global()
        assert job.status == ScanJobStatus.FAILED.value
        assert "(temporary)" in job.error_message


class TestScanBucket:
    def test_registers_and_scans_new_bucket(self, db_session, fake_store, make_orchestrator):
        fake_store.add_bucket("media", "docs/readme.md")

        result = make_orchestrator().scan_bucket("media")

        bucket = BucketRepository(db_session).get_by_name("media")
        assert bucket is not None
        assert bucket.last_accessible_at is not None
        assert result.stats.objects_created == 2
        job = ScanJobRepository(db_session).get_by_id(result.scan_job_id)
        assert job.status == ScanJobStatus.COMPLETED.value

    def test_permanent_failure_quarantines(self, db_session, fake_store, make_orchestrator):
        fake_store.add_bucket("media")
        fake_store.deny("media", access_denied())

        with pytest.raises(BucketInaccessibleError) as exc_info:
            make_orchestrator().scan_bucket("media")

        assert exc_info.value.error_type is BucketErrorType.ACCESS_DENIED
        bucket = BucketRepository(db_session).get_by_name("media")
        assert bucket.marked_for_deletion
        assert "access_denied" in bucket.access_error
        job = ScanJobRepository(db_session).get_latest_for_bucket(bucket.id)
        assert job.status == ScanJobStatus.FAILED.value
        assert "(access_denied)" in job.error_message

    def test_transient_failure_leaves_unknown_bucket_unregistered(
        self, db_session, fake_store, make_orchestrator
    ):
        fake_store.add_bucket("media")
        fake_store.deny("media", service_unavailable())

        with pytest.raises(BucketInaccessibleError) as exc_info:
            make_orchestrator(BUCKET_MAX_RETRIES=2).scan_bucket("media")

        assert exc_info.value.error_type is BucketErrorType.TEMPORARY
        assert fake_store.head_calls["media"] == 2
        assert BucketRepository(db_session).get_by_name("media") is None

    def test_trust_mode_skips_probe(self, db_session, fake_store, make_orchestrator):
        fake_store.add_bucket("media", "x.txt")
        fake_store.fail_head("media", access_denied())

        result = make_orchestrator(SKIP_BUCKET_VALIDATION=True).scan_bucket("media")

        assert result.stats.objects_created == 1
        assert "media" not in fake_store.head_calls

    def test_scan_configured_bucket(self, fake_store, make_orchestrator):
        fake_store.add_bucket("media", "x.txt")

        result = make_orchestrator(S3_BUCKET="media").scan_configured_bucket()

        assert result.bucket == "media"

    def test_scan_configured_bucket_requires_configuration(self, make_orchestrator):
        with pytest.raises(NoBucketConfiguredError):
            make_orchestrator(S3_BUCKET="").scan_configured_bucket()

    def test_locked_catalog_refuses_other_bucket(self, db_session, fake_store, make_orchestrator):
        fake_store.add_bucket("locked", "x.txt")
        fake_store.add_bucket("other", "y.txt")

        with pytest.raises(BucketLockedError):
            make_orchestrator(S3_BUCKET="locked").scan_bucket("other")

        assert BucketRepository(db_session).get_by_name("other") is None
        assert "other" not in fake_store.head_calls

    def test_locked_catalog_scans_its_own_bucket(self, fake_store, make_orchestrator):
        fake_store.add_bucket("locked", "x.txt")

        result = make_orchestrator(S3_BUCKET="locked").scan_bucket("locked")

        assert result.stats.objects_created == 1
