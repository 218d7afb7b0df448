"""Per-worker append-only transfer log.

Tagged lines are tab separated and read back by ``gdc_upload.scanner``::

    ---  <yyyymmddHHMMSS>  <tag>  <external_id>  <submitter_id>  <detail>

so whitespace token 3 of every tagged line is the external id.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from types import TracebackType
from typing import TextIO

LOG_FILE_PREFIX = "logfile-"
LOG_FILE_SUFFIX = ".log"

UPLOADED_TAG = "File-UPLOADED:"
NOT_UPLOADED_TAG = "File-NOT-UPLOADED:"
REQUEUING_TAG = "Re-queuing"
REQUEUED_MARKER = "Re-queued:"
EXIT_STATUS_PREFIX = "exit = "

_RECORD_TIME_FORMAT = "%Y%m%d%H%M%S"
_DISPLAY_TIME_FORMAT = "%Y-%m-%d %H:%M"


def log_file_path(log_dir: Path, worker_id: int) -> Path:
    return log_dir / f"{LOG_FILE_PREFIX}{worker_id}{LOG_FILE_SUFFIX}"


class WorkerLogSink:
    """Text log owned by exactly one worker for the whole run."""

    def __init__(
        self,
        path: Path,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.path = path
        self._clock = clock
        self._handle: TextIO | None = None

    def open(self) -> WorkerLogSink:
        if self._handle is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = self.path.open("a", encoding="utf-8")
        return self

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> WorkerLogSink:
        return self.open()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def begin(
        self,
        *,
        external_id: str,
        submitter_id: str,
        worker_id: int,
        remaining: int,
        command_line: str,
    ) -> None:
        started = self._clock().strftime(_DISPLAY_TIME_FORMAT)
        self._write(
            f"Begin: {external_id}\t{submitter_id}\t{started}"
            f"  uploading {external_id} on worker {worker_id}"
            f" with {remaining} work items remaining.\n"
            f"cmd = {command_line}\n",
        )

    def uploaded(self, *, external_id: str, submitter_id: str, detail: str) -> None:
        self._write(self._tagged(UPLOADED_TAG, external_id, submitter_id, detail))

    def not_uploaded(self, *, external_id: str, submitter_id: str, cause: str) -> None:
        self._write(self._tagged(NOT_UPLOADED_TAG, external_id, submitter_id, cause))

    def requeued(
        self,
        *,
        external_id: str,
        submitter_id: str,
        attempts: int,
        max_retries: int,
        stderr: str,
    ) -> None:
        detail = f"{REQUEUED_MARKER} {attempts} of {max_retries}"
        self._write(
            self._tagged(REQUEUING_TAG, external_id, submitter_id, detail)
            + f"stdErr = {stderr.rstrip()}\n",
        )

    def end(self, *, submitter_id: str, stdout: str, exit_status: str | None = None) -> None:
        finished = self._clock().strftime(_DISPLAY_TIME_FORMAT)
        body = stdout if not stdout or stdout.endswith("\n") else f"{stdout}\n"
        if exit_status is not None:
            body += f"{EXIT_STATUS_PREFIX}{exit_status}\n"
        self._write(f"{body}End: {finished}; {submitter_id}\n\n")

    def _tagged(self, tag: str, external_id: str, submitter_id: str, detail: str) -> str:
        stamp = self._clock().strftime(_RECORD_TIME_FORMAT)
        return f"---\t{stamp}\t{tag}\t{external_id}\t{submitter_id}\t{detail}\n"

    def _write(self, text: str) -> None:
        if self._handle is None:
            raise RuntimeError(f"Log sink {self.path} is not open.")
        self._handle.write(text)
        self._handle.flush()
