"""CLI entrypoint for gdc-upload."""

import logging
from collections.abc import Callable
from pathlib import Path

import rich_click as click

from gdc_upload import __version__
from gdc_upload.controllers import (
    CheckFilesCommand,
    IntakeOptions,
    ScanLogsCommand,
    UploadCliController,
    UploadCommand,
)

click.rich_click.USE_MARKDOWN = True
UPLOAD_CONTROLLER = UploadCliController()


@click.group()
@click.version_option(version=__version__, prog_name="gdc-upload")
@click.option("--verbose/--quiet", default=False, help="Log debug messages to stderr.")
def gdc_upload(verbose: bool) -> None:
    """Parallel uploader of sequence data files to the GDC."""

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(threadName)s %(name)s: %(message)s",
    )


def intake_options(func: Callable[..., None]) -> Callable[..., None]:
    """Attach upload report, metadata and delivery tree options."""

    func = click.option(
        "--files-dir",
        "files_base_dir",
        type=click.Path(path_type=Path, file_okay=False),
        default=None,
        help="Base location of sequence data files. Defaults to GDC_UPLOAD_FILES_BASE_DIR.",
    )(func)
    func = click.option(
        "--metadata",
        "metadata_path",
        type=click.Path(path_type=Path, dir_okay=False),
        default=None,
        help="GDC JSON metadata for the upload report. Defaults to GDC_UPLOAD_METADATA.",
    )(func)
    return click.option(
        "--report",
        "report_path",
        type=click.Path(path_type=Path, dir_okay=False),
        default=None,
        help="Upload report TSV from the GDC portal. Defaults to GDC_UPLOAD_REPORT.",
    )(func)


@gdc_upload.command("upload")
@intake_options
@click.option(
    "--log-dir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Directory for per-worker log files.",
)
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=None,
    help="Number of simultaneous file uploads.",
)
@click.option(
    "--retries",
    "max_retries",
    type=click.IntRange(min=0),
    default=None,
    help="Max number of times to retry an upload before failing.",
)
@click.option(
    "--token",
    "token_file",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="GDC token file passed to gdc-client.",
)
@click.option(
    "--transfer-tool",
    default=None,
    help="GDC data transfer tool executable.",
)
@click.option(
    "--sim/--no-sim",
    "simulate",
    default=None,
    help="Use the simulator instead of the GDC data transfer tool.",
)
def upload(  # noqa: PLR0913
    report_path: Path | None,
    metadata_path: Path | None,
    files_base_dir: Path | None,
    log_dir: Path | None,
    workers: int | None,
    max_retries: int | None,
    token_file: Path | None,
    transfer_tool: str | None,
    simulate: bool | None,
) -> None:
    """Upload every data file from the upload report that is found on disk."""

    try:
        lines = UPLOAD_CONTROLLER.upload(
            UploadCommand(
                intake=IntakeOptions(
                    report_path=report_path,
                    metadata_path=metadata_path,
                    files_base_dir=files_base_dir,
                ),
                log_dir=log_dir,
                workers=workers,
                max_retries=max_retries,
                token_file=token_file,
                transfer_tool=transfer_tool,
                simulate=simulate,
            ),
            on_progress=click.echo,
        )
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


@gdc_upload.command("check-files")
@intake_options
@click.option(
    "--show-missing/--no-show-missing",
    default=False,
    show_default=True,
    help="List submitter ids without metadata and data files not found.",
)
def check_files(
    report_path: Path | None,
    metadata_path: Path | None,
    files_base_dir: Path | None,
    show_missing: bool,
) -> None:
    """Only look for and report on data file availability."""

    try:
        lines = UPLOAD_CONTROLLER.check_files(
            CheckFilesCommand(
                intake=IntakeOptions(
                    report_path=report_path,
                    metadata_path=metadata_path,
                    files_base_dir=files_base_dir,
                ),
                show_missing=show_missing,
            ),
        )
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


@gdc_upload.command("scan-logs")
@click.option(
    "--log-dir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Directory holding logfile-*.log files.",
)
def scan_logs(log_dir: Path | None) -> None:
    """Summarize uploaded, failed and re-queued files from worker logs."""

    try:
        lines = UPLOAD_CONTROLLER.scan_logs(ScanLogsCommand(log_dir=log_dir))
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    gdc_upload()
