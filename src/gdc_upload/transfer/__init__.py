"""Concurrent transfer engine: registry, work queue, workers and retry policy.

Why threads and blocking subprocess calls?
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
gdc-client is a single-shot synchronous program that does its own
multipart and resume handling. Each worker thread owns exactly one running
transfer at a time, so the pool size is also the cap on concurrent
transfer processes. Nothing here needs to survive a restart: the batch is
rebuilt from the upload report on every run and progress lives in the
per-worker log files.
"""

from gdc_upload.transfer.classifier import OutcomeClassifier, classify_transfer_output
from gdc_upload.transfer.invocation import (
    SubprocessTransferTool,
    TransferRequest,
    TransferResult,
    TransferTool,
)
from gdc_upload.transfer.models import (
    Disposition,
    FailureReason,
    JobSeed,
    JobState,
    TransferJob,
    TransferOutcome,
)
from gdc_upload.transfer.registry import JobRegistry, OwnershipError, WorkQueue
from gdc_upload.transfer.worker import (
    PoolRunSummary,
    TransferWorker,
    TransferWorkerPool,
    WorkerRunSummary,
)

__all__ = [
    "Disposition",
    "FailureReason",
    "JobRegistry",
    "JobSeed",
    "JobState",
    "OutcomeClassifier",
    "OwnershipError",
    "PoolRunSummary",
    "SubprocessTransferTool",
    "TransferJob",
    "TransferOutcome",
    "TransferRequest",
    "TransferResult",
    "TransferTool",
    "TransferWorker",
    "TransferWorkerPool",
    "WorkQueue",
    "WorkerRunSummary",
    "classify_transfer_output",
]
