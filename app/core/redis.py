from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from redis import Redis as SyncRedis
from redis.asyncio import Redis

from app.core.config import settings
from app.core.constants import FULL_SWEEP_LOCK_KEY
from app.scans.exceptions import SweepInProgressError

logger = structlog.get_logger(__name__)

# Global Redis client instance, set up by the API lifespan
redis_client: Redis | None = None


def get_sync_redis() -> SyncRedis:
    """Blocking client for Celery workers, which run outside the event loop."""
    return SyncRedis.from_url(settings.REDIS_URL, decode_responses=True, encoding="utf-8")


@contextmanager
def full_sweep_lock(client: SyncRedis | None = None) -> Iterator[None]:
    """
    Hold the cluster-wide full sweep lock for the duration of the block.

    The lock expires after SCAN_LOCK_TIMEOUT_SECONDS so a crashed worker
    cannot block sweeps forever.

    Raises:
        SweepInProgressError: If another worker holds the lock
    """
    client = client or get_sync_redis()
    lock = client.lock(
        FULL_SWEEP_LOCK_KEY,
        timeout=settings.SCAN_LOCK_TIMEOUT_SECONDS,
        blocking=False,
    )
    if not lock.acquire():
        raise SweepInProgressError()
    try:
        yield
    finally:
        try:
            lock.release()
        except Exception as e:
            # Lock expired mid-sweep and may now belong to someone else
            logger.warning("full_sweep_lock_release_failed", error=str(e))
