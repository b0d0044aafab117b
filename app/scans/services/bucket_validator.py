"""Bucket accessibility probe with retries and failure classification."""

from dataclasses import dataclass

import structlog

from app.core.config import settings
from app.core.storage import ObjectStore
from app.core.storage_errors import BucketErrorType, classify_error
from app.scans.cancellation import CancellationToken
from app.scans.exceptions import BucketInaccessibleError

logger = structlog.get_logger(__name__)


@dataclass
class ValidationResult:
    bucket: str
    accessible: bool
    error_type: BucketErrorType | None = None
    error: BaseException | None = None
    attempts: int = 0

    @property
    def is_permanent_failure(self) -> bool:
        return self.error_type is not None and self.error_type.is_permanent

    def as_error(self) -> BucketInaccessibleError:
        error_type = self.error_type or BucketErrorType.UNKNOWN
        cause = self.error or RuntimeError("bucket probe failed")
        error = BucketInaccessibleError(self.bucket, error_type, cause)
        error.__cause__ = self.error
        return error


class BucketValidator:
    """Probe buckets with ``head_bucket``.

    Only non-permanent failures are retried; attempt ``n`` waits
    ``n * backoff_seconds`` before the next one. In skip mode every bucket
    is reported accessible without touching the store.
    """

    def __init__(
        self,
        store: ObjectStore,
        *,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        skip_validation: bool | None = None,
        token: CancellationToken | None = None,
    ):
        self.store = store
        self.max_retries = max_retries if max_retries and max_retries > 0 else settings.bucket_max_retries
        self.backoff_seconds = (
            settings.BUCKET_RETRY_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        )
        self.skip_validation = (
            settings.SKIP_BUCKET_VALIDATION if skip_validation is None else skip_validation
        )
        self.token = token or CancellationToken()

    def validate(self, bucket: str) -> ValidationResult:
        if self.skip_validation:
            return ValidationResult(bucket=bucket, accessible=True)

        last_error: BaseException | None = None
        error_type = BucketErrorType.UNKNOWN
        for attempt in range(1, self.max_retries + 1):
            self.token.raise_if_cancelled()
            try:
                self.store.head_bucket(bucket)
            except Exception as e:
                last_error = e
                error_type = classify_error(e)
                _log_probe_failure(bucket, error_type, e, attempt)
                if error_type.is_permanent:
                    return ValidationResult(bucket, False, error_type, e, attempt)
                if attempt < self.max_retries:
                    self.token.sleep(attempt * self.backoff_seconds)
                continue
            return ValidationResult(bucket=bucket, accessible=True, attempts=attempt)

        return ValidationResult(bucket, False, error_type, last_error, self.max_retries)


def _log_probe_failure(
    bucket: str, error_type: BucketErrorType, error: BaseException, attempt: int
) -> None:
    fields = {"bucket": bucket, "error_type": error_type.value, "error": str(error), "attempt": attempt}
    if error_type.is_permanent:
        logger.warning("bucket_probe_failed", **fields)
    elif error_type is BucketErrorType.TEMPORARY:
        logger.debug("bucket_probe_failed", **fields)
    else:
        logger.error("bucket_probe_failed", **fields)
