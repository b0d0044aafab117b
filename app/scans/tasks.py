"""Celery tasks and worker hooks for catalog scans."""

import logging
import time
from dataclasses import asdict
from typing import Any

from celery.signals import setup_logging as celery_setup_logging
from celery.signals import worker_ready, worker_shutting_down

from app.core.celery_app import celery_app
from app.core.config import settings
from app.core.log_config import setup_logging
from app.core.redis import full_sweep_lock
from app.core.storage import get_object_store
from app.db.session import SessionLocal
from app.scans.cancellation import CancellationToken
from app.scans.exceptions import SweepInProgressError
from app.scans.services.orchestrator import ScanOrchestrator

logger = logging.getLogger(__name__)

# Cancelled when the worker shuts down so in-flight scans stop at the next object
shutdown_token = CancellationToken()


def _orchestrator() -> ScanOrchestrator:
    return ScanOrchestrator(SessionLocal, get_object_store(), token=shutdown_token)


@celery_app.task(bind=True, max_retries=0)
def run_full_sweep_task(self: Any) -> dict[str, Any]:
    """Discover, validate and reconcile every bucket.

    Skips quietly when another worker already holds the sweep lock.

    Returns:
        Dict with the aggregate scan job id, per-bucket outcome counts,
        summed object counters and execution time.
    """
    start_time = time.time()
    logger.info("Starting full catalog sweep")

    try:
        with full_sweep_lock():
            summary = _orchestrator().run_full_sweep()
    except SweepInProgressError:
        logger.info("Full sweep already running, skipping")
        return {"skipped": True}
    except Exception as exc:
        logger.exception(f"Full catalog sweep failed: {exc}")
        raise

    execution_time = time.time() - start_time
    logger.info(
        f"Full sweep complete: scanned={summary.buckets_scanned}, "
        f"failed_permanent={summary.buckets_failed_permanent}, "
        f"failed_temporary={summary.buckets_failed_temporary}, time={execution_time:.2f}s"
    )
    return {
        "skipped": False,
        "scan_job_id": summary.scan_job_id,
        "buckets_scanned": summary.buckets_scanned,
        "buckets_failed_permanent": summary.buckets_failed_permanent,
        "buckets_failed_temporary": summary.buckets_failed_temporary,
        "failures": {name: error_type.value for name, error_type in summary.failures.items()},
        "totals": summary.totals.as_dict(),
        "execution_time_seconds": execution_time,
    }


@celery_app.task(bind=True, max_retries=0)
def scan_bucket_task(self: Any, bucket_name: str) -> dict[str, Any]:
    """Scan a single bucket on demand."""
    logger.info("Starting scan of bucket %s", bucket_name)
    try:
        result = _orchestrator().scan_bucket(bucket_name)
    except Exception as exc:
        logger.exception(f"Scan of bucket {bucket_name} failed: {exc}")
        raise
    return asdict(result)


@celery_setup_logging.connect
def _configure_worker_logging(**_kwargs: Any) -> None:
    setup_logging()


@worker_ready.connect
def _run_initial_scan(**_kwargs: Any) -> None:
    if settings.ENABLE_INITIAL_SCAN:
        logger.info("Queueing initial catalog sweep")
        run_full_sweep_task.delay()


@worker_shutting_down.connect
def _cancel_running_scans(**_kwargs: Any) -> None:
    shutdown_token.cancel()
