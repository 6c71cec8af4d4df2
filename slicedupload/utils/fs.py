# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Sliced Upload File System Utilities."""

from __future__ import annotations

import gzip
import os
import shutil
from pathlib import Path
from typing import Union

from slicedupload.errors import CompressionError

COMPRESSED_EXTENSIONS = ("gzip", "gz", "zip")
STAGING_DIR_PREFIX = "slicedupload-"


def get_file_size(file_path: Union[str, Path]) -> int:
    """Calculate a file size in bytes.

    Args:
        file_path (Union[str, Path]): Path to the target file.

    Returns:
        int: The size of a file.

    """
    if isinstance(file_path, str):
        return os.stat(file_path).st_size
    return file_path.stat().st_size


def is_readable(file_path: Union[str, Path]) -> bool:
    """Check that the path is a regular file the process can read."""
    return os.path.isfile(file_path) and os.access(file_path, os.R_OK)


def is_compressed(file_path: Union[str, Path]) -> bool:
    """Check whether the file extension marks an already compressed file."""
    suffix = Path(file_path).suffix.lstrip(".").lower()
    return suffix in COMPRESSED_EXTENSIONS


def gzip_file(file_path: Union[str, Path], out_dir: Union[str, Path]) -> Path:
    """Gzip a file into `out_dir`, keeping its base name.

    Args:
        file_path (Union[str, Path]): Path to the file to compress.
        out_dir (Union[str, Path]): Directory to write the compressed file into.

    Returns:
        Path: Path to the compressed file, ``<out_dir>/<basename>.gz``.

    """
    src = Path(file_path)
    dst = Path(out_dir) / f"{src.name}.gz"
    try:
        with open(src, "rb") as fin, gzip.open(dst, "wb") as fout:
            shutil.copyfileobj(fin, fout)
    except OSError as exc:
        raise CompressionError(str(src), repr(exc)) from exc
    return dst
