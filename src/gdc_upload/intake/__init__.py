"""Upload report, metadata and delivery tree intake."""

from gdc_upload.intake.models import FileMetadata, IntakeBatch, IntakeError, UploadReportEntry
from gdc_upload.intake.pipeline import load_upload_batch

__all__ = [
    "FileMetadata",
    "IntakeBatch",
    "IntakeError",
    "UploadReportEntry",
    "load_upload_batch",
]
