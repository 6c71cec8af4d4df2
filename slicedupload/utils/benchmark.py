# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Benchmark data generation."""

from __future__ import annotations

import csv
import random
import shutil
from pathlib import Path
from typing import Dict, List, Sequence

from slicedupload.enums import RowTemplate

CELL_CHARS = ["\t", "\n", "a", "b", "c", "d", "e", "f"]
CELL_SIZES: Dict[RowTemplate, int] = {
    RowTemplate.K1ROW: 1000,
    RowTemplate.K10ROW: 10000,
    RowTemplate.K100ROW: 100000,
}


def generate_cell(size: int) -> str:
    """Generate a random cell of `size` characters."""
    return "".join(random.choices(CELL_CHARS, k=size))


def generate_csv(path: Path, rows: int, row: Sequence[str]) -> int:
    """Write `rows` copies of `row` into a CSV file.

    Returns:
        int: The raw size of the generated cells in bytes.

    """
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        for _ in range(rows):
            writer.writerow(row)
    return rows * sum(len(cell) for cell in row)


def copy_slices(source: Path, out_dir: Path, files: int) -> List[Path]:
    """Copy `source` into `files` slices named ``part_<i>.csv``."""
    out_dir.mkdir(parents=True, exist_ok=True)
    slices = []
    for i in range(files):
        dst = out_dir / f"part_{i}.csv"
        shutil.copyfile(source, dst)
        slices.append(dst)
    return slices
