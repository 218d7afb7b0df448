"""Shared job registry and retry-aware work queue.

Jobs live in an arena keyed by integer id. Workers only ever exchange ids
through the queue; claiming an id from the queue transfers exclusive
mutation rights on the matching record to the claimant, and a terminal
``finalize`` or a ``requeue`` hands them back.

The queue tracks how many ids are currently claimed. A worker asking for
more work while the queue is empty but peers still hold jobs waits, because
any of those peers may put a retry back on the queue.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Iterable

from gdc_upload.transfer.models import (
    TERMINAL_STATES,
    FailureReason,
    JobSeed,
    JobState,
    TransferJob,
)

logger = logging.getLogger(__name__)


class OwnershipError(RuntimeError):
    """Raised when a worker touches a job it does not hold."""


class WorkQueue:
    """FIFO of pending job ids with an in-flight counter."""

    def __init__(self) -> None:
        self._items: deque[int] = deque()
        self._in_flight = 0
        self._changed = threading.Condition()

    def put(self, job_id: int) -> None:
        with self._changed:
            self._items.append(job_id)
            self._changed.notify()

    def try_claim(self) -> int | None:
        """Pop the next id without blocking; ``None`` when the queue looks empty."""

        with self._changed:
            return self._pop_locked()

    def claim(self, *, wait_for_retries: bool = True) -> int | None:
        """Pop the next id, waiting on in-flight peers while the queue is empty.

        Returns ``None`` once the queue is empty and nothing is in flight. With
        ``wait_for_retries=False`` it returns ``None`` as soon as the queue is
        observed empty.
        """

        with self._changed:
            while True:
                job_id = self._pop_locked()
                if job_id is not None:
                    return job_id
                if not wait_for_retries or self._in_flight == 0:
                    return None
                self._changed.wait()

    def release(self) -> None:
        with self._changed:
            self._release_locked()
            self._changed.notify_all()

    def release_and_put(self, job_id: int) -> None:
        """Return a claimed id to the tail in one step with the release."""

        with self._changed:
            self._release_locked()
            self._items.append(job_id)
            self._changed.notify_all()

    def qsize(self) -> int:
        return len(self._items)

    @property
    def in_flight(self) -> int:
        return self._in_flight

    def _pop_locked(self) -> int | None:
        if not self._items:
            return None
        self._in_flight += 1
        return self._items.popleft()

    def _release_locked(self) -> None:
        if self._in_flight <= 0:
            raise RuntimeError("Work queue released more jobs than were claimed.")
        self._in_flight -= 1


class JobRegistry:
    """Canonical set of transfer jobs plus the queue that feeds workers."""

    def __init__(self, *, max_retries: int, queue: WorkQueue | None = None) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0.")
        self.max_retries = max_retries
        self.queue = queue or WorkQueue()
        self._jobs: dict[int, TransferJob] = {}
        self._next_id = 1
        self._enqueued_total = 0

    def load(self, records: Iterable[JobSeed]) -> list[int]:
        """Store records as pending jobs and enqueue those ready for upload."""

        enqueued: list[int] = []
        for record in records:
            job_id = self._next_id
            self._next_id += 1
            self._jobs[job_id] = TransferJob(
                job_id=job_id,
                external_id=record.external_id,
                submitter_id=record.submitter_id,
                related_case=record.related_case,
                entity_type=record.entity_type,
                data_file_name=record.data_file_name,
                data_file_size=record.data_file_size,
                data_file_location=record.data_file_location,
                ready_for_upload=record.ready_for_upload,
            )
            if record.ready_for_upload:
                self.queue.put(job_id)
                enqueued.append(job_id)
        self._enqueued_total += len(enqueued)
        logger.debug("Loaded %d jobs, %d ready for upload", len(self._jobs), len(enqueued))
        return enqueued

    def try_dequeue(self, worker_id: int) -> int | None:
        job_id = self.queue.try_claim()
        if job_id is None:
            return None
        self._take_ownership(job_id, worker_id)
        return job_id

    def next_job(self, worker_id: int, *, wait_for_retries: bool = True) -> int | None:
        job_id = self.queue.claim(wait_for_retries=wait_for_retries)
        if job_id is None:
            return None
        self._take_ownership(job_id, worker_id)
        return job_id

    def requeue(self, job_id: int, worker_id: int) -> int:
        """Count one more attempt and put the job back at the tail.

        Returns the new attempt count. The record is updated before the id is
        visible to any other worker.
        """

        job = self._owned(job_id, worker_id)
        if job.upload_attempts >= self.max_retries:
            raise ValueError(
                f"Job {job_id} already used {job.upload_attempts} of {self.max_retries} retries.",
            )
        job.upload_attempts += 1
        attempts = job.upload_attempts
        job.state = JobState.PENDING
        job.worker_id = None
        self.queue.release_and_put(job_id)
        return attempts

    def finalize(
        self,
        job_id: int,
        worker_id: int,
        *,
        state: JobState,
        reason: FailureReason | None = None,
    ) -> None:
        if state not in TERMINAL_STATES:
            raise ValueError(
                f"Cannot finalize job {job_id} with non-terminal state {state.value}.",
            )
        job = self._owned(job_id, worker_id)
        job.state = state
        job.failure_reason = reason
        job.worker_id = None
        self.queue.release()

    def abandon(self, job_id: int, worker_id: int) -> None:
        """Release a job whose holder crashed; its final state stays unrecorded."""

        job = self._jobs[job_id]
        if job.state != JobState.IN_FLIGHT or job.worker_id != worker_id:
            return
        logger.warning("Job %s abandoned by worker %s", job_id, worker_id)
        self.queue.release()

    def get(self, job_id: int) -> TransferJob:
        return self._jobs[job_id]

    def jobs(self) -> list[TransferJob]:
        return [self._jobs[job_id] for job_id in sorted(self._jobs)]

    def remaining(self) -> int:
        """Best-effort queue length for progress output."""

        return self.queue.qsize()

    @property
    def enqueued_total(self) -> int:
        return self._enqueued_total

    def count_by_state(self) -> dict[JobState, int]:
        counts = dict.fromkeys(JobState, 0)
        for job in self._jobs.values():
            counts[job.state] += 1
        return counts

    def _take_ownership(self, job_id: int, worker_id: int) -> None:
        job = self._jobs[job_id]
        if job.state != JobState.PENDING:
            self.queue.release()
            raise OwnershipError(
                f"Job {job_id} dequeued in state {job.state.value}; expected pending.",
            )
        job.state = JobState.IN_FLIGHT
        job.worker_id = worker_id

    def _owned(self, job_id: int, worker_id: int) -> TransferJob:
        job = self._jobs[job_id]
        if job.state != JobState.IN_FLIGHT or job.worker_id != worker_id:
            raise OwnershipError(f"Worker {worker_id} does not hold job {job_id}.")
        return job
