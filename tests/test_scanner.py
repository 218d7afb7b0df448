from __future__ import annotations

from pathlib import Path

import allure
import pytest

from gdc_upload.scanner import render_scan_report, scan_log_files
from gdc_upload.transfer.logsink import WorkerLogSink, log_file_path

pytestmark = [
    allure.epic("Reporting"),
    allure.feature("Log Scanner"),
]


def _write_worker_logs(log_dir: Path, fixed_clock) -> None:
    with WorkerLogSink(log_file_path(log_dir, 1), clock=fixed_clock) as sink:
        sink.requeued(
            external_id="file-1",
            submitter_id="sub-1",
            attempts=1,
            max_retries=3,
            stderr="",
        )
        sink.not_uploaded(
            external_id="file-2",
            submitter_id="sub-2",
            cause="Fail: Local file not found",
        )
    with WorkerLogSink(log_file_path(log_dir, 2), clock=fixed_clock) as sink:
        sink.uploaded(external_id="file-1", submitter_id="sub-1", detail="done")
        sink.not_uploaded(
            external_id="file-3",
            submitter_id="sub-3",
            cause="Fail: Reached Max Retries",
        )


def test_scan_collects_outcomes_across_worker_logs(tmp_path: Path, fixed_clock) -> None:
    _write_worker_logs(tmp_path, fixed_clock)
    (tmp_path / "notes.txt").write_text("---\tx\tFile-UPLOADED:\tignored\n", "utf-8")

    report = scan_log_files(tmp_path)

    assert report.files_scanned == 2
    assert report.uploaded == {"file-1"}
    assert report.requeue_count == 1
    assert report.failed == {
        "file-2": "Fail: Local file not found",
        "file-3": "Fail: Reached Max Retries",
    }


def test_upload_in_later_attempt_clears_failure(tmp_path: Path, fixed_clock) -> None:
    with WorkerLogSink(log_file_path(tmp_path, 1), clock=fixed_clock) as sink:
        sink.not_uploaded(external_id="file-1", submitter_id="sub-1", cause="Fail: x")
        sink.uploaded(external_id="file-1", submitter_id="sub-1", detail="done")

    assert scan_log_files(tmp_path).failed == {}


def test_render_scan_report(tmp_path: Path, fixed_clock) -> None:
    _write_worker_logs(tmp_path, fixed_clock)

    lines = render_scan_report(scan_log_files(tmp_path))

    assert lines == [
        "Log scan completed: files=2 uploaded=1 not_uploaded=2 requeued=1",
        "  file-2\tFail: Local file not found",
        "  file-3\tFail: Reached Max Retries",
    ]


def test_scan_requires_existing_directory(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Log directory not found"):
        scan_log_files(tmp_path / "missing")
