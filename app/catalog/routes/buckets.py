from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.catalog.schemas import BucketListResponse, BucketResponse
from app.catalog.services import CatalogQueryService
from app.db.session import get_db

router = APIRouter(prefix="/buckets", tags=["buckets"])


@router.get("", response_model=BucketListResponse)
async def list_buckets(db: Session = Depends(get_db)) -> BucketListResponse:
    """List buckets available for browsing; quarantined buckets are left out."""
    buckets = CatalogQueryService.list_accessible_buckets(db)
    return BucketListResponse(
        buckets=[BucketResponse.model_validate(b) for b in buckets],
        total=len(buckets),
    )
