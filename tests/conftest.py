"""Shared test fixtures."""

from __future__ import annotations

import threading
import time
from collections import Counter
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import pytest

from gdc_upload.config import TransferSettings
from gdc_upload.transfer.invocation import TransferRequest, TransferResult
from gdc_upload.transfer.models import JobSeed

FIXED_NOW = datetime(2026, 2, 18, 12, 30, 45)


class ScriptedTransferTool:
    """Transfer tool fake that answers from a script and records concurrency."""

    def __init__(
        self,
        script: Callable[[str, int], str],
        *,
        delay_seconds: float = 0.0,
    ) -> None:
        self.script = script
        self.delay_seconds = delay_seconds
        self.calls: Counter[str] = Counter()
        self.requests: list[TransferRequest] = []
        self.overlapping_calls = 0
        self.max_concurrent = 0
        self._active: set[str] = set()
        self._lock = threading.Lock()

    def run(self, request: TransferRequest) -> TransferResult:
        external_id = request.command[1]
        with self._lock:
            attempt = self.calls[external_id]
            self.calls[external_id] += 1
            self.requests.append(request)
            if external_id in self._active:
                self.overlapping_calls += 1
            self._active.add(external_id)
            self.max_concurrent = max(self.max_concurrent, len(self._active))
        try:
            if self.delay_seconds:
                time.sleep(self.delay_seconds)
            stdout = self.script(external_id, attempt)
        finally:
            with self._lock:
                self._active.discard(external_id)
        return TransferResult(stdout=stdout, stderr="", exit_code=0, duration_seconds=0.0)


def make_seeds(count: int, location: Path, *, ready: bool = True) -> list[JobSeed]:
    return [
        JobSeed(
            external_id=f"file-{index:04d}",
            submitter_id=f"submitter-{index:04d}",
            related_case=f"case-{index:04d}",
            entity_type="submitted_unaligned_reads",
            data_file_name=f"sample-{index:04d}.bam",
            data_file_location=location,
            ready_for_upload=ready,
        )
        for index in range(1, count + 1)
    ]


@pytest.fixture()
def transfer_settings() -> TransferSettings:
    return TransferSettings(
        workers=4,
        max_retries=3,
        simulator_command="gdcsim",
        simulate=True,
        worker_start_delay_seconds=0.0,
        post_job_delay_seconds=0.0,
    )


@pytest.fixture()
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW
