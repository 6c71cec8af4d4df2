# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Sliced Upload CLI Formatting Utilities."""

from __future__ import annotations

from typing import NoReturn

import typer
from rich.filesize import decimal


def secho_error_and_exit(text: str, color: str = typer.colors.RED) -> NoReturn:
    """Print error and exit."""
    typer.secho(text, err=True, fg=color)
    raise typer.Exit(1)


def throughput_to_pretty_str(size_bytes: int, seconds: float) -> str:
    """Beautify a transfer throughput."""
    if seconds <= 0:
        return "-"
    return f"{decimal(int(size_bytes / seconds))}/s"
