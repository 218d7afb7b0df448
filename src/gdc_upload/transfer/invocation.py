"""Blocking subprocess runner for the GDC data transfer tool."""

from __future__ import annotations

import logging
import shlex
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from gdc_upload.config import TransferSettings
from gdc_upload.transfer.models import TransferJob

logger = logging.getLogger(__name__)


class TransferCommandError(ValueError):
    """Transfer command could not be built from settings."""


@dataclass(slots=True)
class TransferRequest:
    """One attempt of one job: argv plus the directory holding the payload."""

    command: list[str]
    working_dir: Path | None


@dataclass(slots=True)
class TransferResult:
    """Captured output of one transfer attempt."""

    stdout: str
    stderr: str
    exit_code: int | None
    duration_seconds: float
    launch_error: str | None = None


class TransferTool(Protocol):
    """Protocol implemented by transfer runners."""

    def run(self, request: TransferRequest) -> TransferResult:
        """Run one transfer attempt to completion and return captured output."""


def build_transfer_command(job: TransferJob, settings: TransferSettings) -> list[str]:
    """Render argv for the simulator or the real gdc-client."""

    if settings.simulate:
        head = split_command(settings.simulator_command)
        return [*head, job.external_id, job.submitter_id, settings.simulator_speed]

    head = split_command(settings.transfer_tool)
    return [*head, "upload", "-t", str(settings.token_file), job.external_id]


def render_command_line(command: list[str]) -> str:
    return shlex.join(command)


def describe_exit(result: TransferResult) -> str:
    """One-line exit status for the worker log."""

    if result.launch_error is not None:
        return f"launch failed after {result.duration_seconds:.1f}s: {result.launch_error}"
    return f"exit code {result.exit_code} after {result.duration_seconds:.1f}s"


class SubprocessTransferTool:
    """Spawn the transfer executable and block until it exits.

    The exit status is recorded but callers decide success from stdout text.
    A process that cannot be launched, including an argv the OS rejects, is
    reported as an attempt with empty stdout so it flows through the normal
    retry policy.
    """

    def run(self, request: TransferRequest) -> TransferResult:
        started = time.monotonic()
        try:
            completed = subprocess.run(  # noqa: S603
                request.command,
                cwd=request.working_dir,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
            )
        except (OSError, ValueError, subprocess.SubprocessError) as error:
            logger.warning("Transfer tool failed to start: %s (%s)", request.command[0], error)
            return TransferResult(
                stdout="",
                stderr=str(error),
                exit_code=None,
                duration_seconds=time.monotonic() - started,
                launch_error=str(error),
            )

        return TransferResult(
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            exit_code=completed.returncode,
            duration_seconds=time.monotonic() - started,
        )


def split_command(command: str) -> list[str]:
    """Parse a configured command string into argv."""

    try:
        argv = shlex.split(command.strip())
    except ValueError as error:
        raise TransferCommandError(
            f"Transfer command {command!r} is malformed: {error}",
        ) from error
    if not argv:
        raise TransferCommandError("Transfer command rendered empty argv.")
    return argv
