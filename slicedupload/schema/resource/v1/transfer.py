# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Transfer request and response schemas."""

from __future__ import annotations

import os
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Slice(BaseModel):
    """One local file that is a part of a sliced file."""

    model_config = ConfigDict(frozen=True)

    path: str
    size: int
    key: str

    @property
    def name(self) -> str:
        """Base name of the slice file."""
        return os.path.basename(self.path)

    @property
    def is_empty(self) -> bool:
        """Whether the slice has no content."""
        return self.size == 0


class UploadedPartETag(BaseModel):
    """Schema of entity tag info of uploaded part."""

    etag: str
    part_number: int


class UploadState(BaseModel):
    """Resumable state of a multipart upload."""

    model_config = ConfigDict(frozen=True)

    bucket: str
    key: str
    part_size: int
    upload_id: Optional[str] = None
    parts: List[UploadedPartETag] = Field(default_factory=list)


class FederationCredentials(BaseModel):
    """Temporary credentials issued for one upload."""

    model_config = ConfigDict(populate_by_name=True)

    access_key_id: str = Field(alias="AccessKeyId")
    secret_access_key: str = Field(alias="SecretAccessKey")
    session_token: str = Field(alias="SessionToken")


class UploadParams(BaseModel):
    """Destination of an upload."""

    model_config = ConfigDict(populate_by_name=True)

    bucket: str
    key: str
    acl: str
    credentials: FederationCredentials
    server_side_encryption: Optional[str] = Field(
        default=None, alias="x-amz-server-side-encryption"
    )


class PreparedFile(BaseModel):
    """File resource prepared for upload by the storage API."""

    model_config = ConfigDict(populate_by_name=True)

    id: Union[int, str]
    name: str
    region: str
    upload_params: UploadParams = Field(alias="uploadParams")
