# Reports Package
from reports.deduper import FileReportDeduper, fault_digest

__all__ = ["FileReportDeduper", "fault_digest"]
