from app.scans.models.scan_job import ScanJob, ScanJobStatus

__all__ = ["ScanJob", "ScanJobStatus"]
