"""Domain models for upload report and metadata intake."""

from __future__ import annotations

from dataclasses import dataclass, field

from gdc_upload.transfer.models import JobSeed


class IntakeError(ValueError):
    """Upload inputs are missing or malformed; the run must not start."""


@dataclass(slots=True)
class UploadReportEntry:
    """One row of the GDC upload report for the selected entity type."""

    external_id: str
    related_case: str
    entity_type: str
    submitter_id: str


@dataclass(slots=True)
class FileMetadata:
    """Data file details from the GDC JSON metadata, keyed by submitter id."""

    submitter_id: str
    file_name: str
    file_size: int | None = None


@dataclass(slots=True)
class IntakeBatch:
    """Job records ready for the registry plus intake counters."""

    seeds: list[JobSeed] = field(default_factory=list)
    report_entries: int = 0
    missing_metadata: list[str] = field(default_factory=list)
    missing_files: list[str] = field(default_factory=list)

    @property
    def ready_count(self) -> int:
        return sum(1 for seed in self.seeds if seed.ready_for_upload)
