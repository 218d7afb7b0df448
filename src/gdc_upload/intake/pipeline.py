"""Build the transfer batch from upload report, metadata and delivery tree."""

from __future__ import annotations

import logging

from gdc_upload.config import IntakeSettings
from gdc_upload.intake.locator import resolve_data_file_location
from gdc_upload.intake.metadata import read_file_metadata
from gdc_upload.intake.models import IntakeBatch, IntakeError
from gdc_upload.intake.report import read_upload_report
from gdc_upload.transfer.models import JobSeed

logger = logging.getLogger(__name__)


def load_upload_batch(settings: IntakeSettings) -> IntakeBatch:
    """Read inputs and mark each report entry ready when its data file is on disk."""

    if settings.upload_report_path is None or settings.metadata_path is None:
        raise IntakeError("Upload report and GDC metadata paths are both required.")

    metadata = read_file_metadata(settings.metadata_path)
    entries = read_upload_report(settings.upload_report_path, entity_type=settings.entity_type)

    batch = IntakeBatch(report_entries=len(entries))
    for entry in entries:
        seed = JobSeed(
            external_id=entry.external_id,
            submitter_id=entry.submitter_id,
            related_case=entry.related_case,
            entity_type=entry.entity_type,
        )
        file_metadata = metadata.get(entry.submitter_id)
        if file_metadata is None:
            batch.missing_metadata.append(entry.submitter_id)
            batch.seeds.append(seed)
            continue

        seed.data_file_name = file_metadata.file_name
        seed.data_file_size = file_metadata.file_size
        location = resolve_data_file_location(
            settings.files_base_dir,
            submitter_id=entry.submitter_id,
            file_name=file_metadata.file_name,
            run_id_length=settings.run_id_length,
        )
        if location is None:
            batch.missing_files.append(file_metadata.file_name)
        else:
            seed.data_file_location = location
            seed.ready_for_upload = True
        batch.seeds.append(seed)

    logger.info(
        "Intake: entries=%d ready=%d missing_metadata=%d missing_files=%d",
        batch.report_entries,
        batch.ready_count,
        len(batch.missing_metadata),
        len(batch.missing_files),
    )
    return batch
