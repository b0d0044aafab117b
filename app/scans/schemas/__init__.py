from app.scans.schemas.scan import (
    ScanJobResponse,
    ScanStatusResponse,
    ScanTriggerRequest,
    ScanTriggerResponse,
)

__all__ = [
    "ScanJobResponse",
    "ScanStatusResponse",
    "ScanTriggerRequest",
    "ScanTriggerResponse",
]
