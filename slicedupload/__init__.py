# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Sliced Upload: resumable, batched multipart uploads of sliced files."""

from __future__ import annotations

import os

from slicedupload.schema.resource.v1.options import FileUploadOptions, TransferOptions
from slicedupload.sdk.client import SlicedUploadClient

token = os.environ.get("SLICEDUPLOAD_STORAGE_API_TOKEN")
url = os.environ.get(
    "SLICEDUPLOAD_STORAGE_API_URL", "https://connection.keboola.com/"
)

__all__ = [
    "token",
    "url",
    "FileUploadOptions",
    "SlicedUploadClient",
    "TransferOptions",
]
