from app.catalog.schemas.bucket import (
    BucketListResponse,
    BucketResponse,
    BucketStatusListResponse,
    BucketWithStatusResponse,
)

__all__ = [
    "BucketListResponse",
    "BucketResponse",
    "BucketStatusListResponse",
    "BucketWithStatusResponse",
]
