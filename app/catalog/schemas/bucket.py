from pydantic import BaseModel

from app.core.datetime_utils import UTCDatetime


class BucketResponse(BaseModel):
    id: int
    name: str
    region: str | None = None
    last_accessible_at: UTCDatetime | None = None
    created_at: UTCDatetime

    class Config:
        from_attributes = True


class BucketWithStatusResponse(BucketResponse):
    """Bucket row plus the outcome of its most recent scan."""

    marked_for_deletion: bool
    access_error: str | None = None
    scan_status: str
    last_scan_at: UTCDatetime | None = None
    last_scan_error: str | None = None
    entry_count: int = 0


class BucketListResponse(BaseModel):
    buckets: list[BucketResponse]
    total: int


class BucketStatusListResponse(BaseModel):
    buckets: list[BucketWithStatusResponse]
    total: int
