from app.catalog.services.catalog_query_service import CatalogQueryService
from app.catalog.services.catalog_sync_service import CatalogSyncService, PartialDeletionSyncError

__all__ = ["CatalogQueryService", "CatalogSyncService", "PartialDeletionSyncError"]
