"""Reader for the GDC JSON metadata submitted alongside the upload report."""

from __future__ import annotations

import json
from pathlib import Path

from gdc_upload.intake.models import FileMetadata, IntakeError


def read_file_metadata(path: Path) -> dict[str, FileMetadata]:
    """Map submitter id to data file name and size.

    Accepts a JSON array of entities or an object carrying that array under
    ``"data"``. Entities without ``submitter_id`` or ``file_name`` are skipped.
    """

    if not path.is_file():
        raise IntakeError(f"GDC metadata file not found: {path}")
    try:
        payload = json.loads(path.read_text("utf-8"))
    except (OSError, UnicodeDecodeError) as error:
        raise IntakeError(f"Failed to read GDC metadata file {path}: {error}") from error
    except json.JSONDecodeError as error:
        raise IntakeError(f"GDC metadata file is not valid JSON: {path}: {error.msg}") from error

    if isinstance(payload, dict):
        payload = payload.get("data")
    if not isinstance(payload, list):
        raise IntakeError(f"GDC metadata file must contain a list of entities: {path}")

    metadata: dict[str, FileMetadata] = {}
    for item in payload:
        if not isinstance(item, dict):
            continue
        submitter_id = item.get("submitter_id")
        file_name = item.get("file_name")
        if not isinstance(submitter_id, str) or not isinstance(file_name, str):
            continue
        metadata[submitter_id] = FileMetadata(
            submitter_id=submitter_id,
            file_name=file_name,
            file_size=_as_int(item.get("file_size")),
        )
    return metadata


def _as_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None
