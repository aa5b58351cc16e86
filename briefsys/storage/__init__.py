"""Report persistence and usage logging."""

from __future__ import annotations

from .reports import FileReportStore, JsonlUsageLog, ReportStoreError, StoredReport, idempotency_key

__all__ = [
    "FileReportStore",
    "JsonlUsageLog",
    "ReportStoreError",
    "StoredReport",
    "idempotency_key",
]
