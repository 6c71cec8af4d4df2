# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Sliced Upload CLI."""

# pylint: disable=too-many-arguments, line-too-long

from __future__ import annotations

import time
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import List, Optional

import typer
from rich.filesize import decimal

from slicedupload.configurator.transfer import TransferConfigurator
from slicedupload.enums import RowTemplate
from slicedupload.formatter import PanelFormatter
from slicedupload.schema.resource.v1.options import FileUploadOptions, TransferOptions
from slicedupload.sdk.client import SlicedUploadClient
from slicedupload.utils.benchmark import (
    CELL_SIZES,
    copy_slices,
    generate_cell,
    generate_csv,
)
from slicedupload.utils.decorator import check_upload
from slicedupload.utils.format import throughput_to_pretty_str

app = typer.Typer(
    help="Upload sliced files to the storage.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
    add_completion=False,
    pretty_exceptions_enable=False,
)

benchmark_panel_formatter = PanelFormatter(
    name="Benchmark",
    fields=["size", "files", "batches", "duration", "throughput", "file_id"],
    headers=["Size", "Files", "Batches", "Duration", "Throughput", "File ID"],
)


def _build_transfer_options(
    config: Optional[typer.FileText],
    batch_size: Optional[int],
    max_retries: Optional[int],
    progress: bool,
) -> TransferOptions:
    configurator = (
        TransferConfigurator.from_file(config)
        if config is not None
        else TransferConfigurator({})
    )
    return configurator.render(
        batch_size=batch_size,
        max_retries_per_batch=max_retries,
        show_progress=progress or None,
    )


@app.command()
@check_upload
def upload(
    slices: List[Path] = typer.Argument(
        ..., help="Slice files to upload, or a single directory that holds them."
    ),
    name: str = typer.Option(..., "--name", "-n", help="Name of the sliced file."),
    tags: List[str] = typer.Option([], "--tag", "-t", help="Tag of the file."),
    compress: bool = typer.Option(
        False, "--compress", help="Gzip slices before upload."
    ),
    encrypt: bool = typer.Option(
        False, "--encrypt", help="Use server-side encryption."
    ),
    batch_size: Optional[int] = typer.Option(
        None, "--batch-size", "-b", min=1, help="Number of slices uploaded together."
    ),
    max_retries: Optional[int] = typer.Option(
        None, "--max-retries", min=0, help="Retry rounds allowed per batch."
    ),
    config: Optional[typer.FileText] = typer.Option(
        None, "--config", "-f", help="Path to the transfer config YAML file."
    ),
    progress: bool = typer.Option(False, "--progress", help="Show progress bars."),
):
    """Upload a sliced file."""
    paths = (
        SlicedUploadClient.list_slices(slices[0])
        if len(slices) == 1 and slices[0].is_dir()
        else [str(s) for s in slices]
    )
    options = FileUploadOptions(
        file_name=name,
        is_sliced=True,
        is_encrypted=encrypt,
        compress=compress,
        tags=tags,
    )
    transfer_options = _build_transfer_options(
        config, batch_size, max_retries, progress
    )

    file_id = SlicedUploadClient().upload_sliced_file(paths, options, transfer_options)
    typer.secho(f"Sliced file is uploaded, file id {file_id}.", fg=typer.colors.GREEN)


@app.command("upload-file")
@check_upload
def upload_file(
    path: Path = typer.Argument(..., help="File to upload."),
    tags: List[str] = typer.Option([], "--tag", "-t", help="Tag of the file."),
    compress: bool = typer.Option(
        False, "--compress", help="Gzip the file before upload."
    ),
    encrypt: bool = typer.Option(
        False, "--encrypt", help="Use server-side encryption."
    ),
    max_retries: Optional[int] = typer.Option(
        None, "--max-retries", min=0, help="Retry rounds allowed."
    ),
    config: Optional[typer.FileText] = typer.Option(
        None, "--config", "-f", help="Path to the transfer config YAML file."
    ),
    progress: bool = typer.Option(False, "--progress", help="Show progress bars."),
):
    """Upload a single file."""
    options = FileUploadOptions(is_encrypted=encrypt, compress=compress, tags=tags)
    transfer_options = _build_transfer_options(config, None, max_retries, progress)

    file_id = SlicedUploadClient().upload_file(path, options, transfer_options)
    typer.secho(f"File is uploaded, file id {file_id}.", fg=typer.colors.GREEN)


@app.command()
@check_upload
def benchmark(
    rows: int = typer.Option(1000, "--rows", min=1, help="Rows of the generated CSV."),
    files: int = typer.Option(10, "--files", min=1, help="Number of slices."),
    row: List[RowTemplate] = typer.Option(
        [RowTemplate.K1ROW], "--row", help="Cells of a generated row."
    ),
    batch_size: Optional[int] = typer.Option(
        None, "--batch-size", "-b", min=1, help="Number of slices uploaded together."
    ),
    name: str = typer.Option(
        "slices.csv", "--name", "-n", help="Name of the sliced file."
    ),
):
    """Generate CSV slices, upload them and report the throughput."""
    cells = {template: generate_cell(size) for template, size in CELL_SIZES.items()}
    transfer_options = _build_transfer_options(None, batch_size, None, False)

    with TemporaryDirectory() as tmp_dir:
        start = time.monotonic()
        source = Path(tmp_dir) / "source.csv"
        size = generate_csv(source, rows, [cells[template] for template in row])
        slices = copy_slices(source, Path(tmp_dir) / "slices", files)
        typer.echo(f"{rows} rows copied into {files} files.")

        options = FileUploadOptions(
            file_name=name, is_sliced=True, tags=["sliced-upload-benchmark"]
        )
        file_id = SlicedUploadClient().upload_sliced_file(
            slices, options, transfer_options
        )
        duration = time.monotonic() - start

    total_size = size * files
    benchmark_panel_formatter.render(
        {
            "size": decimal(total_size),
            "files": files,
            "batches": -(-files // transfer_options.batch_size),
            "duration": f"{duration:.2f}s",
            "throughput": throughput_to_pretty_str(total_size, duration),
            "file_id": file_id,
        }
    )
