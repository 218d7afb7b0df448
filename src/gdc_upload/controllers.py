"""Controllers for gdc-upload CLI commands."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from gdc_upload.config import Settings
from gdc_upload.intake import IntakeBatch, load_upload_batch
from gdc_upload.scanner import render_scan_report, scan_log_files
from gdc_upload.transfer import (
    JobRegistry,
    JobState,
    PoolRunSummary,
    SubprocessTransferTool,
    TransferTool,
    TransferWorkerPool,
)


@dataclass(slots=True)
class IntakeOptions:
    """CLI overrides shared by commands that read the upload inputs."""

    report_path: Path | None = None
    metadata_path: Path | None = None
    files_base_dir: Path | None = None


@dataclass(slots=True)
class UploadCommand:
    """CLI input for a transfer run."""

    intake: IntakeOptions
    log_dir: Path | None = None
    workers: int | None = None
    max_retries: int | None = None
    token_file: Path | None = None
    transfer_tool: str | None = None
    simulate: bool | None = None


@dataclass(slots=True)
class CheckFilesCommand:
    """CLI input for data file availability check."""

    intake: IntakeOptions
    show_missing: bool = False


@dataclass(slots=True)
class ScanLogsCommand:
    """CLI input for log scan."""

    log_dir: Path | None = None


class UploadCliController:
    """Coordinates intake, transfer and log scan CLI operations."""

    def __init__(
        self,
        *,
        tool_factory: Callable[[], TransferTool] = SubprocessTransferTool,
    ) -> None:
        self._tool_factory = tool_factory

    def upload(
        self,
        command: UploadCommand,
        *,
        on_progress: Callable[[str], None] | None = None,
    ) -> list[str]:
        settings = Settings.from_env(log_dir=command.log_dir)
        _apply_intake_options(settings, command.intake)
        transfer = settings.transfer
        if command.workers is not None:
            transfer.workers = command.workers
        if command.max_retries is not None:
            transfer.max_retries = command.max_retries
        if command.token_file is not None:
            transfer.token_file = command.token_file
        if command.transfer_tool is not None:
            transfer.transfer_tool = command.transfer_tool
        if command.simulate is not None:
            transfer.simulate = command.simulate
        settings.validate_for_upload()

        batch = load_upload_batch(settings.intake)
        registry = JobRegistry(max_retries=transfer.max_retries)
        registry.load(batch.seeds)

        lines = _intake_lines(batch)
        lines.append(
            f"Number of work items: {registry.enqueued_total}; "
            f"workers={transfer.workers} max_retries={transfer.max_retries} "
            f"mode={'simulator' if transfer.simulate else 'gdc-client'}",
        )
        if registry.enqueued_total == 0:
            lines.append("Nothing to upload.")
            return lines

        settings.log_dir.mkdir(parents=True, exist_ok=True)
        pool = TransferWorkerPool(
            registry=registry,
            tool=self._tool_factory(),
            settings=transfer,
            log_dir=settings.log_dir,
            on_progress=on_progress,
        )
        summary = pool.run()
        lines.extend(_summary_lines(summary, registry))
        return lines

    def check_files(self, command: CheckFilesCommand) -> list[str]:
        settings = Settings.from_env()
        _apply_intake_options(settings, command.intake)
        settings.validate_for_intake()
        batch = load_upload_batch(settings.intake)
        lines = _intake_lines(batch)
        if command.show_missing:
            lines.extend(f"  missing metadata: {value}" for value in batch.missing_metadata)
            lines.extend(f"  missing file: {value}" for value in batch.missing_files)
        return lines

    def scan_logs(self, command: ScanLogsCommand) -> list[str]:
        settings = Settings.from_env(log_dir=command.log_dir)
        return render_scan_report(scan_log_files(settings.log_dir))


def _apply_intake_options(settings: Settings, options: IntakeOptions) -> None:
    if options.report_path is not None:
        settings.intake.upload_report_path = options.report_path
    if options.metadata_path is not None:
        settings.intake.metadata_path = options.metadata_path
    if options.files_base_dir is not None:
        settings.intake.files_base_dir = options.files_base_dir


def _intake_lines(batch: IntakeBatch) -> list[str]:
    return [
        "Intake: "
        f"report_entries={batch.report_entries} "
        f"ready={batch.ready_count} "
        f"missing_metadata={len(batch.missing_metadata)} "
        f"missing_files={len(batch.missing_files)}",
    ]


def _summary_lines(summary: PoolRunSummary, registry: JobRegistry) -> list[str]:
    totals = summary.totals
    states = summary.states
    lines = [
        "Upload summary: "
        f"attempts={totals.processed} succeeded={totals.succeeded} "
        f"failed={totals.failed} retried={totals.retried} faulted={totals.faulted} "
        f"crashed_workers={summary.crashed_workers}",
        "Job states: "
        + " ".join(f"{state.value}={states.get(state, 0)}" for state in JobState),
    ]
    for job in registry.jobs():
        if job.state == JobState.FAILED_PERMANENT:
            reason = job.failure_reason.value if job.failure_reason else "-"
            lines.append(f"  not uploaded: {job.external_id} ({reason})")
    return lines
