# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Upload option schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from slicedupload.utils.transfer import (
    AWS_RETRIES,
    DEFAULT_BATCH_SIZE,
    DEFAULT_MAX_RETRIES_PER_BATCH,
    PART_MAX_RETRIES,
    S3_MULTIPART_THRESHOLD,
)


class FileUploadOptions(BaseModel):
    """Options of the uploaded file resource."""

    file_name: Optional[str] = None
    is_sliced: bool = False
    is_encrypted: bool = False
    is_public: bool = False
    notify: bool = False
    compress: bool = False
    tags: List[str] = Field(default_factory=list)


class TransferOptions(BaseModel):
    """Options of the transfer engine."""

    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, ge=1)
    max_retries_per_batch: int = Field(default=DEFAULT_MAX_RETRIES_PER_BATCH, ge=0)
    part_max_retries: int = Field(default=PART_MAX_RETRIES, ge=1)
    aws_retries: int = Field(default=AWS_RETRIES, ge=0)
    multipart_threshold: int = Field(default=S3_MULTIPART_THRESHOLD, ge=0)
    show_progress: bool = False
