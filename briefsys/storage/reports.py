"""Filesystem-backed report store and token usage log."""

from __future__ import annotations

import hashlib
import json
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterator, Mapping
from uuid import uuid4

from loguru import logger

from briefsys.briefing.models import FinalDocument, UsageRecord


class ReportStoreError(RuntimeError):
    """Raised when a report cannot be written or read back."""


@dataclass(frozen=True, slots=True)
class StoredReport:
    report_id: str
    data: dict[str, Any]

    @property
    def created_at(self) -> datetime | None:
        raw = self.data.get("created_at")
        if not isinstance(raw, str):
            return None
        try:
            return datetime.fromisoformat(raw)
        except ValueError:
            return None


def idempotency_key(company_name: str, *, now: datetime | None = None) -> str:
    """Stable id for a company within the current UTC hour."""

    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    raw = f"{company_name.strip().lower()}|{moment:%Y-%m-%dT%H}"
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()


class FileReportStore:
    """One JSON document per report, named after the report id."""

    def __init__(self, reports_dir: Path) -> None:
        self._reports_dir = Path(reports_dir)

    @property
    def reports_dir(self) -> Path:
        return self._reports_dir

    def _path(self, report_id: str) -> Path:
        if not report_id or "/" in report_id or "\\" in report_id or report_id.startswith("."):
            raise ReportStoreError(f"Invalid report id: {report_id!r}")
        return self._reports_dir / f"{report_id}.json"

    def _record(self, document: FinalDocument, metadata: Mapping[str, Any]) -> dict[str, Any]:
        record = dict(metadata)
        record["summary"] = document.to_dict()
        record.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        return record

    def create_if_absent(self, report_id: str, document: FinalDocument, metadata: Mapping[str, Any]) -> bool:
        """Atomically create ``report_id``; return ``False`` when it already exists.

        The payload is written to a temporary sibling and hard-linked into
        place, so the report only ever appears with its full content.
        """

        path = self._path(report_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(self._record(document, metadata), indent=2, ensure_ascii=False, default=str)
        staging = path.with_name(f".{report_id}.{uuid4().hex}.tmp")
        try:
            staging.write_text(payload, encoding="utf-8")
            os.link(staging, path)
        except FileExistsError:
            logger.debug("Report {} already exists; leaving it untouched", report_id)
            return False
        except OSError as exc:
            raise ReportStoreError(f"Failed to write report {report_id}: {exc}") from exc
        finally:
            staging.unlink(missing_ok=True)
        return True

    def persist_report(self, document: FinalDocument, metadata: Mapping[str, Any]) -> str:
        """Store under a fresh id and return it."""

        report_id = uuid4().hex
        if not self.create_if_absent(report_id, document, metadata):  # pragma: no cover - uuid collision
            raise ReportStoreError(f"Report id collision: {report_id}")
        return report_id

    def get_report(self, report_id: str) -> StoredReport | None:
        path = self._path(report_id)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ReportStoreError(f"Failed to read report {report_id}: {exc}") from exc
        return StoredReport(report_id=report_id, data=data)

    def iter_reports(self) -> Iterator[StoredReport]:
        if not self._reports_dir.exists():
            return
        for path in self._reports_dir.glob("*.json"):
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                logger.warning("Skipping unreadable report {}: {}", path.name, exc)
                continue
            yield StoredReport(report_id=path.stem, data=data)

    def find_recent(
        self,
        company_name: str,
        *,
        max_age_hours: float,
        now: datetime | None = None,
    ) -> StoredReport | None:
        """Newest report for ``company_name`` no older than ``max_age_hours``."""

        cutoff = (now or datetime.now(timezone.utc)) - timedelta(hours=max_age_hours)
        matches = [
            report
            for report in self.iter_reports()
            if report.data.get("company_name") == company_name and report.created_at is not None
        ]
        if not matches:
            return None
        newest = max(matches, key=lambda report: report.created_at)  # type: ignore[arg-type, return-value]
        return newest if newest.created_at >= cutoff else None  # type: ignore[operator]


class JsonlUsageLog:
    """Append-only JSONL sink for token usage records."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def record_usage(self, record: UsageRecord, *, report_id: str | None = None) -> None:
        entry = record.to_dict()
        entry["report_id"] = report_id
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("a", encoding="utf-8") as fp:
            fp.write(json.dumps(entry, ensure_ascii=False, default=str))
            fp.write("\n")


__all__ = [
    "FileReportStore",
    "JsonlUsageLog",
    "ReportStoreError",
    "StoredReport",
    "idempotency_key",
]
