# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Test Output Formatter"""

from __future__ import annotations

import pytest
from rich.panel import Panel

from slicedupload.enums import TransferState
from slicedupload.formatter import PanelFormatter, get_value


@pytest.fixture
def panel_formatter() -> PanelFormatter:
    return PanelFormatter(
        name="Benchmark",
        fields=["upload.size", "files", "state"],
        headers=["Size", "Files", "State"],
        subtitle="Sliced upload benchmark",
    )


def test_get_value():
    data = {
        "k1": {"k2": {"k3": "v1", "k4": "v2"}, "k5": "v3"},
        "k6": "v4",
        "k9": None,
        "k10": TransferState.FULFILLED,
    }

    assert get_value(data, "k1.k2.k3") == "v1"
    assert get_value(data, "k1.k2.k4") == "v2"
    assert get_value(data, "k1.k5") == "v3"
    assert get_value(data, "k6") == "v4"
    assert get_value(data, "k1.missing") == "-"
    assert get_value(data, "k6.k2") == "-"
    assert get_value(data, "k9") == "-"
    assert get_value(data, "k10") == "fulfilled"


def test_panel_formatter(
    panel_formatter: PanelFormatter, capsys: pytest.CaptureFixture
):
    data = {"upload": {"size": "15.7 MB"}, "files": 3, "state": TransferState.FULFILLED}

    panel = panel_formatter.get_renderable(data)
    assert isinstance(panel, Panel)

    panel_formatter.render(data)
    out = capsys.readouterr().out
    assert "Benchmark" in out
    assert "15.7 MB" in out
    assert "fulfilled" in out


def test_panel_formatter_mismatched_headers():
    with pytest.raises(AssertionError):
        PanelFormatter(name="Broken", fields=["a", "b"], headers=["A"])
