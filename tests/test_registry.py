from __future__ import annotations

import threading
import time
from pathlib import Path

import allure
import pytest
from conftest import make_seeds

from gdc_upload.transfer.models import FailureReason, JobState
from gdc_upload.transfer.registry import JobRegistry, OwnershipError, WorkQueue

pytestmark = [
    allure.epic("Transfer Engine"),
    allure.feature("Job Registry & Work Queue"),
]


def test_load_assigns_sequential_ids_and_enqueues_only_ready(tmp_path: Path) -> None:
    registry = JobRegistry(max_retries=3)
    seeds = make_seeds(4, tmp_path)
    seeds[1].ready_for_upload = False

    enqueued = registry.load(seeds)

    assert enqueued == [1, 3, 4]
    assert [job.job_id for job in registry.jobs()] == [1, 2, 3, 4]
    assert all(job.state == JobState.PENDING for job in registry.jobs())
    assert all(job.upload_attempts == 0 for job in registry.jobs())
    assert registry.remaining() == 3
    assert registry.enqueued_total == 3


def test_second_load_continues_ids(tmp_path: Path) -> None:
    registry = JobRegistry(max_retries=3)
    registry.load(make_seeds(2, tmp_path))
    assert registry.load(make_seeds(1, tmp_path)) == [3]


def test_try_dequeue_transfers_ownership_and_returns_none_when_empty(tmp_path: Path) -> None:
    registry = JobRegistry(max_retries=3)
    registry.load(make_seeds(1, tmp_path))

    job_id = registry.try_dequeue(worker_id=7)

    assert job_id == 1
    job = registry.get(1)
    assert job.state == JobState.IN_FLIGHT
    assert job.worker_id == 7
    assert registry.remaining() == 0
    assert registry.queue.in_flight == 1
    assert registry.try_dequeue(worker_id=8) is None


def test_requeue_increments_attempts_and_appends_to_tail(tmp_path: Path) -> None:
    registry = JobRegistry(max_retries=3)
    registry.load(make_seeds(3, tmp_path))
    first = registry.try_dequeue(worker_id=1)
    assert first == 1

    attempts = registry.requeue(first, worker_id=1)

    assert attempts == 1
    job = registry.get(first)
    assert job.upload_attempts == 1
    assert job.state == JobState.PENDING
    assert job.worker_id is None
    assert registry.queue.in_flight == 0
    order = [registry.try_dequeue(worker_id=1) for _ in range(3)]
    assert order == [2, 3, 1]


def test_requeue_refuses_to_exceed_retry_budget(tmp_path: Path) -> None:
    registry = JobRegistry(max_retries=1)
    registry.load(make_seeds(1, tmp_path))
    registry.requeue(registry.try_dequeue(worker_id=1), worker_id=1)
    job_id = registry.try_dequeue(worker_id=1)

    with pytest.raises(ValueError, match="already used 1 of 1 retries"):
        registry.requeue(job_id, worker_id=1)
    assert registry.get(job_id).upload_attempts == 1


def test_only_holder_can_finalize(tmp_path: Path) -> None:
    registry = JobRegistry(max_retries=3)
    registry.load(make_seeds(1, tmp_path))
    job_id = registry.try_dequeue(worker_id=1)

    with pytest.raises(OwnershipError):
        registry.finalize(job_id, worker_id=2, state=JobState.SUCCEEDED)

    registry.finalize(
        job_id,
        worker_id=1,
        state=JobState.FAILED_PERMANENT,
        reason=FailureReason.LOCAL_FILE_MISSING,
    )
    job = registry.get(job_id)
    assert job.state == JobState.FAILED_PERMANENT
    assert job.failure_reason == FailureReason.LOCAL_FILE_MISSING
    assert registry.queue.in_flight == 0
    with pytest.raises(OwnershipError):
        registry.requeue(job_id, worker_id=1)


def test_finalize_rejects_non_terminal_state(tmp_path: Path) -> None:
    registry = JobRegistry(max_retries=3)
    registry.load(make_seeds(1, tmp_path))
    job_id = registry.try_dequeue(worker_id=1)

    with pytest.raises(ValueError, match="non-terminal"):
        registry.finalize(job_id, worker_id=1, state=JobState.PENDING)


def test_abandon_releases_queue_slot_and_keeps_job_unrecorded(tmp_path: Path) -> None:
    registry = JobRegistry(max_retries=3)
    registry.load(make_seeds(1, tmp_path))
    job_id = registry.try_dequeue(worker_id=1)

    registry.abandon(job_id, worker_id=1)

    assert registry.queue.in_flight == 0
    assert registry.get(job_id).state == JobState.IN_FLIGHT
    assert registry.next_job(worker_id=2) is None


def test_next_job_waits_for_peer_requeue(tmp_path: Path) -> None:
    registry = JobRegistry(max_retries=3)
    registry.load(make_seeds(1, tmp_path))
    held = registry.next_job(worker_id=1)
    claimed: list[int | None] = []

    waiter = threading.Thread(target=lambda: claimed.append(registry.next_job(worker_id=2)))
    waiter.start()
    time.sleep(0.05)
    assert waiter.is_alive()

    registry.requeue(held, worker_id=1)
    waiter.join(timeout=5)

    assert not waiter.is_alive()
    assert claimed == [held]
    assert registry.get(held).worker_id == 2


def test_next_job_returns_none_once_peer_finalizes(tmp_path: Path) -> None:
    registry = JobRegistry(max_retries=3)
    registry.load(make_seeds(1, tmp_path))
    held = registry.next_job(worker_id=1)
    claimed: list[int | None] = []

    waiter = threading.Thread(target=lambda: claimed.append(registry.next_job(worker_id=2)))
    waiter.start()
    time.sleep(0.05)
    registry.finalize(held, worker_id=1, state=JobState.SUCCEEDED)
    waiter.join(timeout=5)

    assert not waiter.is_alive()
    assert claimed == [None]


def test_next_job_without_waiting_exits_on_empty_queue(tmp_path: Path) -> None:
    registry = JobRegistry(max_retries=3)
    registry.load(make_seeds(1, tmp_path))
    registry.next_job(worker_id=1)

    assert registry.next_job(worker_id=2, wait_for_retries=False) is None


def test_work_queue_release_without_claim_is_an_error() -> None:
    queue = WorkQueue()
    with pytest.raises(RuntimeError, match="released more jobs"):
        queue.release()


def test_count_by_state(tmp_path: Path) -> None:
    registry = JobRegistry(max_retries=3)
    registry.load(make_seeds(2, tmp_path))
    job_id = registry.try_dequeue(worker_id=1)
    registry.finalize(job_id, worker_id=1, state=JobState.SUCCEEDED)

    counts = registry.count_by_state()

    assert counts[JobState.SUCCEEDED] == 1
    assert counts[JobState.PENDING] == 1
    assert counts[JobState.IN_FLIGHT] == 0
    assert counts[JobState.FAILED_PERMANENT] == 0


def test_negative_retry_budget_is_rejected() -> None:
    with pytest.raises(ValueError, match="max_retries"):
        JobRegistry(max_retries=-1)
