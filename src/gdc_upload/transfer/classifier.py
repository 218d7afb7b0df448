"""Deterministic classification of transfer tool output for the retry policy."""

from __future__ import annotations

from typing import Protocol

from gdc_upload.transfer.models import Disposition, FailureReason, TransferOutcome

SUCCESS_MARKER_TEMPLATE = "Multipart upload finished for file {external_id}"
ALREADY_VALIDATED_MARKER = "File in validated state, initiate_multipart not allowed"
FILE_NOT_FOUND_MARKER_TEMPLATE = "File with id {external_id} not found"

LOG_CAUSES: dict[FailureReason, str] = {
    FailureReason.ALREADY_AT_DESTINATION: "Fail: File already at GDC",
    FailureReason.LOCAL_FILE_MISSING: "Fail: Local file not found",
    FailureReason.MAX_RETRIES_REACHED: "Fail: Reached Max Retries",
}


class OutcomeClassifier(Protocol):
    """Callable deciding the disposition of one transfer attempt."""

    def __call__(
        self,
        *,
        stdout: str,
        external_id: str,
        attempts: int,
        max_retries: int,
    ) -> TransferOutcome:
        """Classify captured output for the given attempt count."""


def success_marker(external_id: str) -> str:
    return SUCCESS_MARKER_TEMPLATE.format(external_id=external_id)


def classify_transfer_output(
    *,
    stdout: str,
    external_id: str,
    attempts: int,
    max_retries: int,
) -> TransferOutcome:
    """Classify gdc-client stdout into success, permanent failure or retry.

    Known failure causes are reported as such even when the retry budget is
    already spent.
    """

    if success_marker(external_id) in stdout:
        return TransferOutcome(disposition=Disposition.SUCCEEDED, matched_rule="upload_finished")

    if ALREADY_VALIDATED_MARKER in stdout:
        return _failed(FailureReason.ALREADY_AT_DESTINATION, matched_rule="already_validated")

    if FILE_NOT_FOUND_MARKER_TEMPLATE.format(external_id=external_id) in stdout:
        return _failed(FailureReason.LOCAL_FILE_MISSING, matched_rule="file_not_found")

    if attempts >= max_retries:
        return _failed(FailureReason.MAX_RETRIES_REACHED, matched_rule="retry_budget_spent")

    return TransferOutcome(disposition=Disposition.RETRY, matched_rule="fallback_retry")


def _failed(reason: FailureReason, *, matched_rule: str) -> TransferOutcome:
    return TransferOutcome(
        disposition=Disposition.FAILED_PERMANENT,
        matched_rule=matched_rule,
        reason=reason,
        log_cause=LOG_CAUSES[reason],
    )
