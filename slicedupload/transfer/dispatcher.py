# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Slice enumeration and sequential batch dispatch."""

from __future__ import annotations

import os
from typing import Dict, List, Sequence

from slicedupload.errors import InvalidInputError
from slicedupload.logging import logger
from slicedupload.schema.resource.v1.manifest import ManifestEntry
from slicedupload.schema.resource.v1.transfer import Slice
from slicedupload.transfer.batch import BatchUploader
from slicedupload.transfer.manifest import slice_url
from slicedupload.utils.fs import get_file_size
from slicedupload.utils.transfer import DEFAULT_BATCH_SIZE


def check_unique_names(paths: Sequence[str]) -> None:
    """Raise `InvalidInputError` when two paths share a base name.

    Slices are keyed by base name, so such paths would overwrite each other.
    """
    seen: Dict[str, str] = {}
    for path in paths:
        name = os.path.basename(path)
        if name in seen:
            raise InvalidInputError(
                f"Slices '{seen[name]}' and '{path}' share the name '{name}'."
            )
        seen[name] = path


def enumerate_slices(paths: Sequence[str], key_prefix: str) -> List[Slice]:
    """Build slices keyed by ``<key_prefix><basename>`` in the given order."""
    check_unique_names(paths)
    return [
        Slice(
            path=path,
            size=get_file_size(path),
            key=key_prefix + os.path.basename(path),
        )
        for path in paths
    ]


class SliceDispatcher:
    """Uploads slices batch by batch and collects their manifest entries."""

    def __init__(
        self, uploader: BatchUploader, batch_size: int = DEFAULT_BATCH_SIZE
    ) -> None:
        """Initialize SliceDispatcher."""
        if batch_size < 1:
            raise InvalidInputError(f"Batch size must be positive, got {batch_size}.")
        self._uploader = uploader
        self._batch_size = batch_size
        self.batches_processed = 0
        self.retry_rounds = 0

    @staticmethod
    def partition(slices: Sequence[Slice], batch_size: int) -> List[List[Slice]]:
        """Split slices into contiguous batches of `batch_size`.

        Only the last batch may be shorter.
        """
        return [
            list(slices[i : i + batch_size]) for i in range(0, len(slices), batch_size)
        ]

    def dispatch(self, slices: Sequence[Slice]) -> List[ManifestEntry]:
        """Upload all slices, one batch at a time.

        A batch failure propagates immediately and no further batch is attempted.

        Returns:
            List[ManifestEntry]: Entries of all slices in the order of `slices`.

        """
        entries: List[ManifestEntry] = []
        batches = self.partition(slices, self._batch_size)
        for idx, batch in enumerate(batches):
            logger.info(
                "Uploading batch %d / %d (%d slices)...",
                idx + 1,
                len(batches),
                len(batch),
            )
            self.retry_rounds += self._uploader.upload(batch)
            self.batches_processed += 1
            entries.extend(
                ManifestEntry(url=slice_url(self._uploader.bucket, s.key))
                for s in batch
            )
        return entries
