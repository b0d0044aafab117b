"""Classification of object-store failures.

Every failure coming out of the storage layer is reduced to one of four
kinds. Reconciliation code only ever branches on the kind, never on the
exception type or the client library that raised it.
"""

import enum

from app.core.constants import ERROR_MESSAGE_MAX_LENGTH
from app.core.storage import StorageError


class BucketErrorType(str, enum.Enum):
    NOT_FOUND = "not_found"
    ACCESS_DENIED = "access_denied"
    TEMPORARY = "temporary"
    UNKNOWN = "unknown"

    @property
    def is_permanent(self) -> bool:
        return self in (BucketErrorType.NOT_FOUND, BucketErrorType.ACCESS_DENIED)


_API_ERROR_CODES: dict[str, BucketErrorType] = {
    "NoSuchBucket": BucketErrorType.NOT_FOUND,
    "BucketNotFound": BucketErrorType.NOT_FOUND,
    "NotFound": BucketErrorType.NOT_FOUND,
    "AccessDenied": BucketErrorType.ACCESS_DENIED,
    "Forbidden": BucketErrorType.ACCESS_DENIED,
    "AllAccessDisabled": BucketErrorType.ACCESS_DENIED,
    "InternalError": BucketErrorType.TEMPORARY,
    "ServiceUnavailable": BucketErrorType.TEMPORARY,
    "SlowDown": BucketErrorType.TEMPORARY,
    "RequestTimeout": BucketErrorType.TEMPORARY,
    "Throttling": BucketErrorType.TEMPORARY,
}

_HTTP_STATUS_CODES: dict[int, BucketErrorType] = {
    404: BucketErrorType.NOT_FOUND,
    403: BucketErrorType.ACCESS_DENIED,
    500: BucketErrorType.TEMPORARY,
    502: BucketErrorType.TEMPORARY,
    503: BucketErrorType.TEMPORARY,
    504: BucketErrorType.TEMPORARY,
}

_NETWORK_HINTS = ("connection", "could not connect", "timeout", "timed out", "network")


def classify_error(exc: BaseException | None) -> BucketErrorType:
    """Classify a failure by API error code, then HTTP status, then message text."""
    if exc is None:
        return BucketErrorType.UNKNOWN

    # Errors that already went through classification keep their verdict
    error_type = getattr(exc, "error_type", None)
    if isinstance(error_type, BucketErrorType):
        return error_type

    storage_error = _find_storage_error(exc)
    if storage_error is not None:
        if storage_error.error_code:
            by_code = _API_ERROR_CODES.get(storage_error.error_code)
            if by_code is not None:
                return by_code
        if storage_error.status_code is not None:
            by_status = _HTTP_STATUS_CODES.get(storage_error.status_code)
            if by_status is not None:
                return by_status

    text = str(exc).lower()
    if any(hint in text for hint in _NETWORK_HINTS):
        return BucketErrorType.TEMPORARY

    return BucketErrorType.UNKNOWN


def _find_storage_error(exc: BaseException) -> StorageError | None:
    """Walk the cause chain looking for the storage-layer error."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        if isinstance(current, StorageError):
            return current
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return None


def format_classified_error(exc: BaseException, context: str) -> str:
    """Format an error as "<context> (<type>): <message>" for persistence."""
    message = f"{context} ({classify_error(exc).value}): {exc}"
    return message[:ERROR_MESSAGE_MAX_LENGTH]
