from datetime import timedelta

from pydantic_settings import BaseSettings

from app.core.datetime_utils import parse_duration


class Settings(BaseSettings):
    DATABASE_URL: str

    REDIS_URL: str = "redis://redis:6379/0"

    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "Bucketmirror Catalog API"
    DEBUG: bool = False

    # Object store: "s3" for any S3-compatible endpoint, "local" for development
    STORAGE_BACKEND: str = "s3"
    S3_ENDPOINT_URL: str = ""  # empty means AWS default endpoint resolution
    S3_ACCESS_KEY_ID: str = ""
    S3_SECRET_ACCESS_KEY: str = ""
    S3_REGION: str = "us-east-1"
    LOCAL_STORAGE_DIR: str = "./buckets"

    # Target bucket. Empty means discover every bucket the credentials can list;
    # a non-empty value locks the catalog to that single bucket.
    S3_BUCKET: str = ""
    S3_PREFIX: str = ""

    # Reconciliation toggles
    SKIP_BUCKET_VALIDATION: bool = False
    ENABLE_DELETION_SYNC: bool = True
    ENABLE_BUCKET_SYNC: bool = True

    # Bucket lifecycle settings (Go-style duration strings, e.g. "24h", "1h30m")
    BUCKET_SYNC_THRESHOLD: str = "24h"
    BUCKET_DELETE_THRESHOLD: str = "168h"  # 7 days
    BUCKET_MAX_RETRIES: int = 3
    BUCKET_RETRY_BACKOFF_SECONDS: float = 1.0

    # Scheduling
    ENABLE_BACKGROUND_SCAN: bool = True
    ENABLE_INITIAL_SCAN: bool = False
    SCAN_CRON_SCHEDULE: str = "0 2 * * *"  # minute hour day month weekday
    SCAN_PROGRESS_BATCH_SIZE: int = 100  # Objects per progress checkpoint
    SCAN_LOCK_TIMEOUT_SECONDS: int = 6 * 3600

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @property
    def bucket_locked(self) -> bool:
        return self.S3_BUCKET != ""

    @property
    def bucket_max_retries(self) -> int:
        # Zero would mean "never probe", which is what SKIP_BUCKET_VALIDATION is for
        return self.BUCKET_MAX_RETRIES if self.BUCKET_MAX_RETRIES > 0 else 3

    @property
    def sync_threshold(self) -> timedelta:
        return parse_duration(self.BUCKET_SYNC_THRESHOLD)

    @property
    def delete_threshold(self) -> timedelta:
        return parse_duration(self.BUCKET_DELETE_THRESHOLD)


settings = Settings()
