# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Storage API Client."""

from __future__ import annotations

from typing import Any, Dict, Optional

import slicedupload
from slicedupload.client.base import HttpClient
from slicedupload.errors import AuthTokenNotFoundError
from slicedupload.logging import logger
from slicedupload.schema.resource.v1.options import FileUploadOptions
from slicedupload.schema.resource.v1.transfer import PreparedFile

TOKEN_HEADER = "X-StorageApi-Token"


class StorageApiClient(HttpClient):
    """Client of the storage API that issues upload destinations."""

    def __init__(self, url: Optional[str] = None, token: Optional[str] = None) -> None:
        """Initialize StorageApiClient.

        Args:
            url (Optional[str], optional): Storage API URL. Defaults to the
                ``SLICEDUPLOAD_STORAGE_API_URL`` environment variable.
            token (Optional[str], optional): Storage API token. Defaults to the
                ``SLICEDUPLOAD_STORAGE_API_TOKEN`` environment variable.

        """
        token = token or slicedupload.token
        if not token:
            raise AuthTokenNotFoundError(
                "Pass a token, or set 'SLICEDUPLOAD_STORAGE_API_TOKEN' environment "
                "variable."
            )
        super().__init__(url or slicedupload.url)
        self._token = token

    @property
    def default_request_options(self) -> Dict[str, Any]:
        """Common request options."""
        return {
            **super().default_request_options,
            "headers": {TOKEN_HEADER: self._token},
        }

    def prepare_file_upload(
        self, options: FileUploadOptions, size_bytes: int
    ) -> PreparedFile:
        """Prepare a file resource and get federation credentials to upload it.

        Args:
            options (FileUploadOptions): Options of the file resource.
            size_bytes (int): Total size of the file in bytes.

        Returns:
            PreparedFile: The prepared file with its upload destination.

        """
        data: Dict[str, Any] = {
            "name": options.file_name,
            "sizeBytes": size_bytes,
            "isSliced": int(options.is_sliced),
            "isEncrypted": int(options.is_encrypted),
            "isPublic": int(options.is_public),
            "notify": int(options.notify),
            "federationToken": 1,
        }
        if options.tags:
            data["tags[]"] = options.tags

        resp = self.post("v2/storage/files/prepare", data=data)
        prepared = PreparedFile.model_validate(resp.json())
        logger.debug("Prepared file %s (%s).", prepared.id, prepared.name)
        return prepared
