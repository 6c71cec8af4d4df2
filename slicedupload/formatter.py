# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Sliced Upload CLI Output Formatter."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table


def get_value(data: Dict[str, Any], keys: str) -> str:
    """Read a value from nested dicts by dot(.)-separated keys.

    Missing keys and None render as ``-``, enum members as their value.
    """
    value: Any = data
    for key in keys.split("."):
        value = value.get(key) if isinstance(value, dict) else None
    if isinstance(value, Enum):
        value = value.value
    return "-" if value is None else str(value)


@dataclass
class PanelFormatter:
    """Key-value panel of a single result."""

    name: str
    fields: List[str]
    headers: List[str]
    subtitle: Optional[str] = None

    def __post_init__(self) -> None:
        """Post-init formatter."""
        assert len(self.fields) == len(self.headers)
        self._console = Console()

    def render(self, data: Dict[str, Any]) -> None:
        """Print the panel of `data`."""
        self._console.print(self.get_renderable(data))

    def get_renderable(self, data: Dict[str, Any]) -> Panel:
        """Build the panel of `data`."""
        table = Table(box=None, show_header=False)
        table.add_column("k", style="dim bold")
        table.add_column("v")
        for header, key in zip(self.headers, self.fields):
            table.add_row(header, get_value(data, key))
        return Panel(table, title=self.name, subtitle=self.subtitle)
