"""Reader for the tab-separated upload report produced by the GDC portal."""

from __future__ import annotations

import csv
import logging
from pathlib import Path

from gdc_upload.intake.models import IntakeError, UploadReportEntry

logger = logging.getLogger(__name__)

_EXTERNAL_ID_COLUMN = 0
_RELATED_CASE_COLUMN = 1
_ENTITY_TYPE_COLUMN = 2
_SUBMITTER_ID_COLUMN = 4


def read_upload_report(path: Path, *, entity_type: str) -> list[UploadReportEntry]:
    """Return report rows of ``entity_type`` in file order."""

    if not path.is_file():
        raise IntakeError(f"Upload report file not found: {path}")

    entries: list[UploadReportEntry] = []
    try:
        with path.open(encoding="utf-8", newline="") as handle:
            reader = csv.reader(handle, delimiter="\t", quoting=csv.QUOTE_NONE)
            for line_no, row in enumerate(reader, start=1):
                if len(row) <= 1:
                    continue
                if len(row) <= _ENTITY_TYPE_COLUMN or row[_ENTITY_TYPE_COLUMN] != entity_type:
                    continue
                if len(row) <= _SUBMITTER_ID_COLUMN:
                    raise IntakeError(
                        f"Upload report row {line_no} has {len(row)} columns; "
                        f"expected at least {_SUBMITTER_ID_COLUMN + 1}: {path}",
                    )
                entries.append(
                    UploadReportEntry(
                        external_id=row[_EXTERNAL_ID_COLUMN].strip(),
                        related_case=row[_RELATED_CASE_COLUMN].strip(),
                        entity_type=row[_ENTITY_TYPE_COLUMN],
                        submitter_id=row[_SUBMITTER_ID_COLUMN].strip(),
                    ),
                )
    except (OSError, UnicodeDecodeError, csv.Error) as error:
        raise IntakeError(f"Failed to read upload report {path}: {error}") from error

    logger.info("Upload report %s: %d %s rows", path, len(entries), entity_type)
    return entries
