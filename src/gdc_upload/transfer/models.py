"""Domain models for transfer jobs and attempt outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class JobState(str, Enum):
    """In-memory job lifecycle states."""

    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED_PERMANENT = "failed_permanent"


TERMINAL_STATES = frozenset({JobState.SUCCEEDED, JobState.FAILED_PERMANENT})


class Disposition(str, Enum):
    """What the worker does with a job after one attempt."""

    SUCCEEDED = "succeeded"
    FAILED_PERMANENT = "failed_permanent"
    RETRY = "retry"


class FailureReason(str, Enum):
    """Causes of a permanent transfer failure."""

    ALREADY_AT_DESTINATION = "already at destination"
    LOCAL_FILE_MISSING = "local file missing"
    MAX_RETRIES_REACHED = "max retries reached"


@dataclass(slots=True)
class JobSeed:
    """Upstream-prepared job record before registry ids are assigned."""

    external_id: str
    submitter_id: str
    related_case: str = ""
    entity_type: str = ""
    data_file_name: str | None = None
    data_file_size: int | None = None
    data_file_location: Path | None = None
    ready_for_upload: bool = False


@dataclass(slots=True)
class TransferJob:
    """Registry-owned job record addressed by a stable integer id."""

    job_id: int
    external_id: str
    submitter_id: str
    related_case: str
    entity_type: str
    data_file_name: str | None
    data_file_size: int | None
    data_file_location: Path | None
    ready_for_upload: bool
    upload_attempts: int = 0
    state: JobState = JobState.PENDING
    failure_reason: FailureReason | None = None
    worker_id: int | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


@dataclass(slots=True, frozen=True)
class TransferOutcome:
    """Classifier decision for one transfer attempt."""

    disposition: Disposition
    matched_rule: str
    reason: FailureReason | None = None
    log_cause: str | None = None
