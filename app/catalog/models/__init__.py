from app.catalog.models.bucket import Bucket
from app.catalog.models.catalog_entry import CatalogEntry

__all__ = ["Bucket", "CatalogEntry"]
