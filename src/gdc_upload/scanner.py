"""Aggregate finished worker logs into an upload report."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from gdc_upload.transfer.logsink import (
    LOG_FILE_PREFIX,
    LOG_FILE_SUFFIX,
    NOT_UPLOADED_TAG,
    REQUEUED_MARKER,
    UPLOADED_TAG,
)

_TAG_TOKEN = 2
_EXTERNAL_ID_TOKEN = 3
_CAUSE_SEPARATOR = "\t"


@dataclass(slots=True)
class LogScanReport:
    """Outcome counts recovered from worker log files."""

    files_scanned: int = 0
    uploaded: set[str] = field(default_factory=set)
    not_uploaded: dict[str, str] = field(default_factory=dict)
    requeue_count: int = 0

    @property
    def failed(self) -> dict[str, str]:
        """Failures for ids that never uploaded in any log."""

        return {
            external_id: cause
            for external_id, cause in self.not_uploaded.items()
            if external_id not in self.uploaded
        }


def scan_log_files(log_dir: Path) -> LogScanReport:
    if not log_dir.is_dir():
        raise ValueError(f"Log directory not found: {log_dir}")

    report = LogScanReport()
    for path in sorted(log_dir.glob(f"{LOG_FILE_PREFIX}*{LOG_FILE_SUFFIX}")):
        report.files_scanned += 1
        with path.open(encoding="utf-8", errors="replace") as handle:
            for line in handle:
                _scan_line(line, report)
    return report


def _scan_line(line: str, report: LogScanReport) -> None:
    if REQUEUED_MARKER in line:
        report.requeue_count += 1
    if not line.startswith("---"):
        return
    tokens = line.split()
    if len(tokens) <= _EXTERNAL_ID_TOKEN:
        return
    tag = tokens[_TAG_TOKEN]
    external_id = tokens[_EXTERNAL_ID_TOKEN]
    if tag == UPLOADED_TAG:
        report.uploaded.add(external_id)
    elif tag == NOT_UPLOADED_TAG:
        fields = line.rstrip("\n").split(_CAUSE_SEPARATOR)
        report.not_uploaded[external_id] = fields[-1] if len(fields) > 5 else ""  # noqa: PLR2004


def render_scan_report(report: LogScanReport) -> list[str]:
    failed = report.failed
    lines = [
        "Log scan completed: "
        f"files={report.files_scanned} "
        f"uploaded={len(report.uploaded)} "
        f"not_uploaded={len(failed)} "
        f"requeued={report.requeue_count}",
    ]
    for external_id in sorted(failed):
        lines.append(f"  {external_id}\t{failed[external_id] or '-'}")
    return lines
