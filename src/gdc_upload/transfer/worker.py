"""Worker threads that drain the transfer queue."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from gdc_upload.config import TransferSettings
from gdc_upload.transfer.classifier import (
    OutcomeClassifier,
    classify_transfer_output,
    success_marker,
)
from gdc_upload.transfer.invocation import (
    TransferRequest,
    TransferTool,
    build_transfer_command,
    describe_exit,
    render_command_line,
)
from gdc_upload.transfer.logsink import WorkerLogSink, log_file_path
from gdc_upload.transfer.models import Disposition, JobState
from gdc_upload.transfer.registry import JobRegistry

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


@dataclass(slots=True)
class WorkerRunSummary:
    """Aggregate worker counters for CLI reporting."""

    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    retried: int = 0
    faulted: int = 0

    def add(self, other: WorkerRunSummary) -> None:
        self.processed += other.processed
        self.succeeded += other.succeeded
        self.failed += other.failed
        self.retried += other.retried
        self.faulted += other.faulted


@dataclass(slots=True)
class PoolRunSummary:
    """Result of one pool run across all workers."""

    workers: int
    jobs_enqueued: int
    totals: WorkerRunSummary
    states: dict[JobState, int]
    crashed_workers: int = 0


class TransferWorker:
    """Dequeues one job at a time, runs the transfer tool and applies the retry policy."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        worker_id: int,
        registry: JobRegistry,
        tool: TransferTool,
        log_sink: WorkerLogSink,
        settings: TransferSettings,
        classifier: OutcomeClassifier = classify_transfer_output,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.worker_id = worker_id
        self.registry = registry
        self.tool = tool
        self.log_sink = log_sink
        self.settings = settings
        self.classifier = classifier
        self._on_progress = on_progress or (lambda _msg: None)
        self.totals = WorkerRunSummary()

    def run_once(self) -> WorkerRunSummary:
        """Process at most one job from the queue.

        An unexpected error while handling the job abandons that job only and
        is counted as ``faulted``; the worker stays usable.
        """

        summary = WorkerRunSummary()
        job_id = self.registry.next_job(
            self.worker_id,
            wait_for_retries=self.settings.wait_for_retries,
        )
        if job_id is None:
            return summary

        summary.processed = 1
        try:
            self._process(job_id, summary)
        except Exception:
            logger.exception("Worker %d: job %d failed unexpectedly", self.worker_id, job_id)
            self.registry.abandon(job_id, self.worker_id)
            summary.faulted = 1
        except BaseException:
            self.registry.abandon(job_id, self.worker_id)
            raise
        return summary

    def run_loop(self) -> WorkerRunSummary:
        """Run until the queue is drained and no peer can requeue.

        Counters accumulate on ``self.totals`` as jobs finish.
        """

        while True:
            summary = self.run_once()
            self.totals.add(summary)
            if summary.processed == 0:
                return self.totals
            if self.settings.post_job_delay_seconds > 0:
                time.sleep(self.settings.post_job_delay_seconds)

    def _process(self, job_id: int, summary: WorkerRunSummary) -> None:
        job = self.registry.get(job_id)
        external_id = job.external_id
        submitter_id = job.submitter_id
        attempts = job.upload_attempts
        max_retries = self.registry.max_retries

        remaining = self.registry.remaining()
        total = max(self.registry.enqueued_total, 1)
        percent = max(0.0, 1 - (remaining + 1) / total)
        self._on_progress(
            f"Starting item {job_id} on worker {self.worker_id}; "
            f"Remaining items:{remaining}; Percent complete: {percent:.0%}",
        )

        command = build_transfer_command(job, self.settings)
        self.log_sink.begin(
            external_id=external_id,
            submitter_id=submitter_id,
            worker_id=self.worker_id,
            remaining=remaining,
            command_line=render_command_line(command),
        )
        result = self.tool.run(
            TransferRequest(command=command, working_dir=job.data_file_location),
        )
        exit_status = describe_exit(result)
        outcome = self.classifier(
            stdout=result.stdout,
            external_id=external_id,
            attempts=attempts,
            max_retries=max_retries,
        )
        logger.debug(
            "Job %s attempt %d -> %s (%s), %s",
            job_id,
            attempts,
            outcome.disposition.value,
            outcome.matched_rule,
            exit_status,
        )

        if outcome.disposition == Disposition.SUCCEEDED:
            self.log_sink.uploaded(
                external_id=external_id,
                submitter_id=submitter_id,
                detail=success_marker(external_id),
            )
            self.log_sink.end(
                submitter_id=submitter_id,
                stdout=result.stdout,
                exit_status=exit_status,
            )
            self.registry.finalize(job_id, self.worker_id, state=JobState.SUCCEEDED)
            summary.succeeded = 1
            return

        if outcome.disposition == Disposition.FAILED_PERMANENT:
            self.log_sink.not_uploaded(
                external_id=external_id,
                submitter_id=submitter_id,
                cause=outcome.log_cause or "",
            )
            self.log_sink.end(
                submitter_id=submitter_id,
                stdout=result.stdout,
                exit_status=exit_status,
            )
            self.registry.finalize(
                job_id,
                self.worker_id,
                state=JobState.FAILED_PERMANENT,
                reason=outcome.reason,
            )
            summary.failed = 1
            return

        self.log_sink.requeued(
            external_id=external_id,
            submitter_id=submitter_id,
            attempts=attempts + 1,
            max_retries=max_retries,
            stderr=result.stderr,
        )
        self.log_sink.end(
            submitter_id=submitter_id,
            stdout=result.stdout,
            exit_status=exit_status,
        )
        self.registry.requeue(job_id, self.worker_id)
        summary.retried = 1


class TransferWorkerPool:
    """Fixed-size pool of worker threads sharing one registry."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        registry: JobRegistry,
        tool: TransferTool,
        settings: TransferSettings,
        log_dir: Path,
        classifier: OutcomeClassifier = classify_transfer_output,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.registry = registry
        self.tool = tool
        self.settings = settings
        self.log_dir = log_dir
        self.classifier = classifier
        self.on_progress = on_progress
        self._lock = threading.Lock()
        self._totals = WorkerRunSummary()
        self._crashed = 0

    def run(self) -> PoolRunSummary:
        """Start workers with a staggered delay and block until all exit."""

        threads: list[threading.Thread] = []
        for worker_id in range(1, self.settings.workers + 1):
            thread = threading.Thread(
                target=self._worker_main,
                args=(worker_id,),
                name=f"transfer-worker-{worker_id}",
            )
            thread.start()
            threads.append(thread)
            logger.info("Worker %d started", worker_id)
            if worker_id < self.settings.workers and self.settings.worker_start_delay_seconds > 0:
                time.sleep(self.settings.worker_start_delay_seconds)

        for thread in threads:
            thread.join()

        return PoolRunSummary(
            workers=self.settings.workers,
            jobs_enqueued=self.registry.enqueued_total,
            totals=self._totals,
            states=self.registry.count_by_state(),
            crashed_workers=self._crashed,
        )

    def _worker_main(self, worker_id: int) -> None:
        worker: TransferWorker | None = None
        try:
            with WorkerLogSink(log_file_path(self.log_dir, worker_id)) as log_sink:
                worker = TransferWorker(
                    worker_id=worker_id,
                    registry=self.registry,
                    tool=self.tool,
                    log_sink=log_sink,
                    settings=self.settings,
                    classifier=self.classifier,
                    on_progress=self.on_progress,
                )
                worker.run_loop()
        except Exception:
            logger.exception("Transfer worker %d crashed", worker_id)
            with self._lock:
                self._crashed += 1
        finally:
            if worker is not None:
                with self._lock:
                    self._totals.add(worker.totals)
            logger.info("Worker %d exited", worker_id)
