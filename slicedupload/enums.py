# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Sliced upload enums."""


from __future__ import annotations

from enum import Enum


class TransferState(str, Enum):
    """State of a single slice transfer."""

    PENDING = "pending"
    IN_FLIGHT = "in-flight"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


class RowTemplate(str, Enum):
    """Size of a generated benchmark cell."""

    K1ROW = "k1row"
    K10ROW = "k10row"
    K100ROW = "k100row"
