"""Runtime configuration for intake and transfer stages."""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_FILES_BASE_DIR = Path("/proj/seq/tracseq/delivery")
DEFAULT_ENTITY_TYPE = "submitted_unaligned_reads"


@dataclass(slots=True)
class IntakeSettings:
    """Upload report, metadata and data file lookup settings."""

    upload_report_path: Path | None = None
    metadata_path: Path | None = None
    files_base_dir: Path = DEFAULT_FILES_BASE_DIR
    entity_type: str = DEFAULT_ENTITY_TYPE
    run_id_length: int = 35


@dataclass(slots=True)
class TransferSettings:
    """Worker pool and transfer tool settings."""

    workers: int = 10
    max_retries: int = 3
    transfer_tool: str = "gdc-client"
    simulator_command: str = "gdcsim"
    simulate: bool = True
    simulator_speed: str = "fast"
    token_file: Path = Path("token.txt")
    worker_start_delay_seconds: float = 1.0
    post_job_delay_seconds: float = 0.25
    wait_for_retries: bool = True


@dataclass(slots=True)
class Settings:
    """Application settings grouped by stage."""

    log_dir: Path = Path(".")
    intake: IntakeSettings = field(default_factory=IntakeSettings)
    transfer: TransferSettings = field(default_factory=TransferSettings)

    @classmethod
    def from_env(cls, log_dir: Path | None = None) -> Settings:
        """Load settings from environment with defaults matching the datamover node."""

        return cls(
            log_dir=log_dir or Path(os.getenv("GDC_UPLOAD_LOG_DIR", ".")),
            intake=IntakeSettings(
                upload_report_path=_env_path("GDC_UPLOAD_REPORT"),
                metadata_path=_env_path("GDC_UPLOAD_METADATA"),
                files_base_dir=Path(
                    os.getenv("GDC_UPLOAD_FILES_BASE_DIR", str(DEFAULT_FILES_BASE_DIR)),
                ),
                entity_type=os.getenv("GDC_UPLOAD_ENTITY_TYPE", DEFAULT_ENTITY_TYPE),
                run_id_length=int(os.getenv("GDC_UPLOAD_RUN_ID_LENGTH", "35")),
            ),
            transfer=TransferSettings(
                workers=int(os.getenv("GDC_UPLOAD_WORKERS", "10")),
                max_retries=int(os.getenv("GDC_UPLOAD_MAX_RETRIES", "3")),
                transfer_tool=os.getenv("GDC_UPLOAD_TRANSFER_TOOL", "gdc-client"),
                simulator_command=os.getenv("GDC_UPLOAD_SIMULATOR_COMMAND", "gdcsim"),
                simulate=_env_bool("GDC_UPLOAD_SIMULATE", default=True),
                simulator_speed=os.getenv("GDC_UPLOAD_SIMULATOR_SPEED", "fast"),
                token_file=Path(os.getenv("GDC_UPLOAD_TOKEN_FILE", "token.txt")),
                worker_start_delay_seconds=float(
                    os.getenv("GDC_UPLOAD_WORKER_START_DELAY_SECONDS", "1.0"),
                ),
                post_job_delay_seconds=float(
                    os.getenv("GDC_UPLOAD_POST_JOB_DELAY_SECONDS", "0.25"),
                ),
                wait_for_retries=_env_bool("GDC_UPLOAD_WAIT_FOR_RETRIES", default=True),
            ),
        )

    def validate_for_intake(self) -> None:
        """Raise configuration error if upload report or metadata inputs are missing."""

        if self.intake.upload_report_path is None:
            raise ValueError(
                "Upload report path is required. Set GDC_UPLOAD_REPORT or pass --report.",
            )
        if self.intake.metadata_path is None:
            raise ValueError(
                "GDC metadata path is required. Set GDC_UPLOAD_METADATA or pass --metadata.",
            )
        if not self.intake.entity_type.strip():
            raise ValueError("GDC_UPLOAD_ENTITY_TYPE must not be empty.")
        if self.intake.run_id_length <= 0:
            raise ValueError("GDC_UPLOAD_RUN_ID_LENGTH must be > 0.")

    def validate_for_upload(self) -> None:
        """Raise configuration error if the transfer run cannot start."""

        self.validate_for_intake()
        transfer = self.transfer
        if transfer.workers < 1:
            raise ValueError("GDC_UPLOAD_WORKERS must be a positive integer.")
        if transfer.max_retries < 0:
            raise ValueError("GDC_UPLOAD_MAX_RETRIES must be >= 0.")
        if transfer.worker_start_delay_seconds < 0:
            raise ValueError("GDC_UPLOAD_WORKER_START_DELAY_SECONDS must be >= 0.")
        if transfer.post_job_delay_seconds < 0:
            raise ValueError("GDC_UPLOAD_POST_JOB_DELAY_SECONDS must be >= 0.")
        if transfer.simulate:
            env_name, command = "GDC_UPLOAD_SIMULATOR_COMMAND", transfer.simulator_command
        else:
            env_name, command = "GDC_UPLOAD_TRANSFER_TOOL", transfer.transfer_tool
        try:
            argv = shlex.split(command)
        except ValueError as error:
            raise ValueError(f"{env_name} cannot be parsed: {command!r} ({error}).") from error
        if not argv:
            raise ValueError(f"Transfer command is empty. Set {env_name}.")


def _env_path(name: str) -> Path | None:
    value = os.getenv(name, "").strip()
    if not value:
        return None
    return Path(value)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
