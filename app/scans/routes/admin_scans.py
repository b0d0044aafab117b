"""Admin routes for triggering catalog scans."""

from fastapi import APIRouter, Request, status

from app.core.config import settings
from app.core.rate_limit import limiter
from app.scans.exceptions import BucketLockedError
from app.scans.schemas import ScanTriggerRequest, ScanTriggerResponse
from app.scans.tasks import run_full_sweep_task, scan_bucket_task

router = APIRouter(prefix="/scans", tags=["admin-scans"])


@router.post("", response_model=ScanTriggerResponse, status_code=status.HTTP_202_ACCEPTED)
@limiter.limit("6/minute")
async def trigger_scan(request: Request, payload: ScanTriggerRequest) -> ScanTriggerResponse:
    """Queue a scan as a background Celery task.

    With ``bucket`` set only that bucket is scanned. Without it a full
    sweep is queued, or the configured bucket when the catalog is locked
    to one. Naming any other bucket while locked is rejected with 409.
    """
    if payload.bucket:
        if settings.bucket_locked and payload.bucket != settings.S3_BUCKET:
            raise BucketLockedError(payload.bucket, settings.S3_BUCKET)
        task = scan_bucket_task.delay(payload.bucket)
        return ScanTriggerResponse(task_id=task.id, bucket=payload.bucket)

    task = run_full_sweep_task.delay()
    return ScanTriggerResponse(
        task_id=task.id, bucket=settings.S3_BUCKET if settings.bucket_locked else None
    )
