"""Tests for object-store failure classification."""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ConnectTimeoutError, EndpointConnectionError, ReadTimeoutError

from app.core.storage import S3ObjectStore, StorageError
from app.core.storage_errors import BucketErrorType, classify_error, format_classified_error
from app.scans.exceptions import BucketInaccessibleError, ScanCancelledError


class TestClassifyError:
    @pytest.mark.parametrize(
        "code,expected",
        [
            ("NoSuchBucket", BucketErrorType.NOT_FOUND),
            ("NotFound", BucketErrorType.NOT_FOUND),
            ("AccessDenied", BucketErrorType.ACCESS_DENIED),
            ("AllAccessDisabled", BucketErrorType.ACCESS_DENIED),
            ("SlowDown", BucketErrorType.TEMPORARY),
            ("ServiceUnavailable", BucketErrorType.TEMPORARY),
        ],
    )
    def test_api_error_code(self, code, expected):
        assert classify_error(StorageError("boom", error_code=code)) is expected

    @pytest.mark.parametrize(
        "status,expected",
        [
            (404, BucketErrorType.NOT_FOUND),
            (403, BucketErrorType.ACCESS_DENIED),
            (500, BucketErrorType.TEMPORARY),
            (503, BucketErrorType.TEMPORARY),
        ],
    )
    def test_http_status(self, status, expected):
        assert classify_error(StorageError("boom", status_code=status)) is expected

    def test_error_code_wins_over_status(self):
        error = StorageError("boom", status_code=500, error_code="AccessDenied")
        assert classify_error(error) is BucketErrorType.ACCESS_DENIED

    def test_unmapped_code_falls_back_to_status(self):
        error = StorageError("boom", status_code=404, error_code="404")
        assert classify_error(error) is BucketErrorType.NOT_FOUND

    def test_network_text_is_temporary(self):
        assert classify_error(OSError("Connection reset by peer")) is BucketErrorType.TEMPORARY
        assert classify_error(RuntimeError("read timed out")) is BucketErrorType.TEMPORARY

    def test_unrecognised_error_is_unknown(self):
        assert classify_error(ValueError("something odd")) is BucketErrorType.UNKNOWN

    def test_none_is_unknown(self):
        assert classify_error(None) is BucketErrorType.UNKNOWN

    def test_storage_error_found_in_cause_chain(self):
        try:
            try:
                raise StorageError("denied", status_code=403)
            except StorageError as inner:
                raise RuntimeError("listing failed") from inner
        except RuntimeError as outer:
            assert classify_error(outer) is BucketErrorType.ACCESS_DENIED

    def test_preclassified_errors_keep_their_type(self):
        error = BucketInaccessibleError("b", BucketErrorType.NOT_FOUND, RuntimeError("x"))
        assert classify_error(error) is BucketErrorType.NOT_FOUND
        assert classify_error(ScanCancelledError()) is BucketErrorType.TEMPORARY


class TestBucketErrorType:
    def test_only_not_found_and_access_denied_are_permanent(self):
        assert BucketErrorType.NOT_FOUND.is_permanent
        assert BucketErrorType.ACCESS_DENIED.is_permanent
        assert not BucketErrorType.TEMPORARY.is_permanent
        assert not BucketErrorType.UNKNOWN.is_permanent


class TestFormatClassifiedError:
    def test_format(self):
        error = StorageError("Access Denied", error_code="AccessDenied")
        assert format_classified_error(error, "Bucket scan failed") == (
            "Bucket scan failed (access_denied): Access Denied"
        )

    def test_truncated(self):
        message = format_classified_error(ValueError("x" * 2000), "ctx")
        assert len(message) == 500


class TestS3TransportErrors:
    @pytest.mark.parametrize(
        "error",
        [
            EndpointConnectionError(endpoint_url="http://127.0.0.1:1/demo"),
            ConnectTimeoutError(endpoint_url="http://127.0.0.1:1/demo"),
            ReadTimeoutError(endpoint_url="http://127.0.0.1:1/demo"),
        ],
    )
    def test_unreachable_endpoint_is_temporary(self, error):
        client = MagicMock()
        client.head_bucket.side_effect = error
        store = S3ObjectStore(client=client)

        with pytest.raises(StorageError) as exc_info:
            store.head_bucket("demo")

        assert exc_info.value.error_code == "RequestTimeout"
        assert classify_error(exc_info.value) is BucketErrorType.TEMPORARY
        assert format_classified_error(exc_info.value, "Bucket probe failed").startswith(
            "Bucket probe failed (temporary)"
        )

    def test_could_not_connect_text_is_temporary(self):
        error = StorageError('Could not connect to the endpoint URL: "http://127.0.0.1:1/demo"')
        assert classify_error(error) is BucketErrorType.TEMPORARY
