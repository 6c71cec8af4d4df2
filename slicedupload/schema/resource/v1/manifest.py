# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Sliced file manifest schemas."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict


class ManifestEntry(BaseModel):
    """Location of one uploaded slice."""

    model_config = ConfigDict(frozen=True)

    url: str


class Manifest(BaseModel):
    """Index of every slice of a sliced file."""

    model_config = ConfigDict(frozen=True)

    entries: List[ManifestEntry]
