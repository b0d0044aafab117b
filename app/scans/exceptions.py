"""Errors raised by the reconciliation engine."""

from app.core.exceptions import ConflictError
from app.core.storage_errors import BucketErrorType


class ScanError(Exception):
    """Base class for reconciliation failures."""


class BucketInaccessibleError(ScanError):
    """The bucket probe failed; ``error_type`` holds the classification."""

    def __init__(self, bucket: str, error_type: BucketErrorType, cause: BaseException):
        self.bucket = bucket
        self.error_type = error_type
        super().__init__(f"bucket {bucket} is not accessible ({error_type.value}): {cause}")


class ScanCancelledError(ScanError):
    """A scan stopped at a suspension point because shutdown was requested.

    Classified as temporary: the next scheduled run picks the work up again.
    """

    error_type = BucketErrorType.TEMPORARY

    def __init__(self, message: str = "scan cancelled"):
        super().__init__(message)


class NoBucketConfiguredError(ScanError):
    def __init__(self) -> None:
        super().__init__("no bucket configured for scanning")


class InvalidScanJobTransitionError(ScanError):
    """A terminal scan job was written to again."""


class SweepInProgressError(ConflictError):
    def __init__(self) -> None:
        super().__init__("a full sweep is already running", resource="sweep")


class BucketLockedError(ConflictError):
    """Another bucket was requested while the catalog is locked to S3_BUCKET."""

    def __init__(self, bucket: str, locked_bucket: str) -> None:
        self.bucket = bucket
        super().__init__(
            f"catalog is locked to bucket {locked_bucket}; {bucket} cannot be scanned",
            resource="bucket",
        )
