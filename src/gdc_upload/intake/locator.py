"""Find sequence data files in the delivery tree."""

from __future__ import annotations

from pathlib import Path

UBAM_FOLDER = "uBam"
FASTQ_FOLDER = "fastq"


def delivery_folder(file_name: str) -> str:
    if "bam" in file_name:
        return UBAM_FOLDER
    if "fastq" in file_name:
        return FASTQ_FOLDER
    return ""


def resolve_data_file_location(
    base_dir: Path,
    *,
    submitter_id: str,
    file_name: str,
    run_id_length: int = 35,
) -> Path | None:
    """Return the directory holding ``file_name``, or ``None`` when it is absent.

    The run id is the leading ``run_id_length`` characters of the submitter id.
    """

    run_id = submitter_id[:run_id_length]
    location = base_dir / delivery_folder(file_name) / run_id
    if (location / file_name).is_file():
        return location
    return None
