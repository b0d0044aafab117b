import threading

from app.scans.exceptions import ScanCancelledError


class CancellationToken:
    """Cooperative cancellation shared by everything taking part in one run.

    Long-running work calls ``raise_if_cancelled()`` before each blocking
    storage or catalog call, and uses ``sleep()`` instead of ``time.sleep``
    so a backoff wait ends as soon as cancellation is requested.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ScanCancelledError()

    def sleep(self, seconds: float) -> None:
        if self._event.wait(timeout=max(seconds, 0.0)):
            raise ScanCancelledError()
