"""Admin views of every catalogued bucket, quarantined ones included."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.catalog.schemas import BucketStatusListResponse
from app.catalog.services import CatalogQueryService
from app.db.session import get_db
from app.scans.schemas import ScanStatusResponse

router = APIRouter(prefix="/buckets", tags=["admin-buckets"])


@router.get("", response_model=BucketStatusListResponse)
async def list_buckets_with_status(db: Session = Depends(get_db)) -> BucketStatusListResponse:
    buckets = CatalogQueryService.list_buckets_with_status(db)
    return BucketStatusListResponse(buckets=buckets, total=len(buckets))


@router.get("/{bucket_name}/scan-status", response_model=ScanStatusResponse)
async def get_scan_status(bucket_name: str, db: Session = Depends(get_db)) -> ScanStatusResponse:
    """Latest scan of one bucket, or ``never_scanned``."""
    return CatalogQueryService.get_scan_status(db, bucket_name)
