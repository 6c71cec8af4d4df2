# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Sliced file manifest writer."""

from __future__ import annotations

from typing import Iterable, Optional

from slicedupload.cloud.storage import ObjectStoreTransport
from slicedupload.errors import ManifestWriteFailedError, TransferError
from slicedupload.logging import logger
from slicedupload.schema.resource.v1.manifest import Manifest, ManifestEntry

MANIFEST_NAME = "manifest"


def slice_url(bucket: str, key: str) -> str:
    """Get the URL of an uploaded slice."""
    return f"s3://{bucket}/{key}"


class ManifestWriter:
    """Persists the manifest of a sliced file once every slice is uploaded."""

    def __init__(
        self,
        transport: ObjectStoreTransport,
        *,
        bucket: str,
        key_prefix: str,
        server_side_encryption: Optional[str] = None,
    ) -> None:
        """Initialize ManifestWriter."""
        self._transport = transport
        self._bucket = bucket
        self._key_prefix = key_prefix
        self._server_side_encryption = server_side_encryption

    @property
    def key(self) -> str:
        """Object key of the manifest."""
        return self._key_prefix + MANIFEST_NAME

    def write(self, entries: Iterable[ManifestEntry]) -> Manifest:
        """Serialize the entries and put them as a single manifest object.

        Raises:
            ManifestWriteFailedError: The put request failed. It is not retried.

        """
        manifest = Manifest(entries=list(entries))
        try:
            self._transport.put_object(
                bucket=self._bucket,
                key=self.key,
                body=manifest.model_dump_json().encode("utf-8"),
                server_side_encryption=self._server_side_encryption,
            )
        except TransferError as exc:
            raise ManifestWriteFailedError(self.key, str(exc)) from exc

        logger.info(
            "Manifest with %d entries is written to %s.",
            len(manifest.entries),
            slice_url(self._bucket, self.key),
        )
        return manifest
