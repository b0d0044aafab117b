"""Pydantic schemas for scan status and scan triggers."""

from pydantic import BaseModel, Field

from app.core.datetime_utils import UTCDatetime


class ScanJobResponse(BaseModel):
    id: int
    bucket_id: int | None = None
    status: str
    started_at: UTCDatetime | None = None
    completed_at: UTCDatetime | None = None
    error_message: str | None = None
    objects_scanned: int
    objects_created: int
    objects_updated: int
    objects_deleted: int
    buckets_validated: int
    buckets_marked_inaccessible: int
    buckets_cleaned_up: int
    bucket_validation_errors: int

    class Config:
        from_attributes = True


class ScanStatusResponse(BaseModel):
    """Latest scan of one bucket. ``status`` is ``never_scanned`` when there is none."""

    bucket: str
    status: str
    marked_for_deletion: bool
    access_error: str | None = None
    latest_job: ScanJobResponse | None = None


class ScanTriggerRequest(BaseModel):
    bucket: str | None = Field(
        default=None,
        max_length=255,
        description="Bucket to scan. Omit to queue a full sweep.",
    )


class ScanTriggerResponse(BaseModel):
    """Returned when a scan is queued as a background task."""

    task_id: str
    status: str = "queued"
    bucket: str | None = None
