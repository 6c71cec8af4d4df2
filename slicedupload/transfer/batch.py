# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Batch upload with bounded selective retries."""

from __future__ import annotations

from concurrent.futures import ALL_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import List, Optional, Sequence

from slicedupload.cloud.storage import ObjectStoreTransport
from slicedupload.enums import TransferState
from slicedupload.errors import FileNotReadableError, RetriesExhaustedError
from slicedupload.logging import logger
from slicedupload.schema.resource.v1.transfer import Slice
from slicedupload.transfer.handle import TransferHandle
from slicedupload.utils.transfer import (
    DEFAULT_MAX_RETRIES_PER_BATCH,
    get_transfer_concurrency,
)


class BatchUploader:
    """Drives every slice of a batch to the fulfilled state.

    All transfers of a round are started together, and the round ends only when
    every one of them settled. Rejected transfers are then resumed from their own
    state while fulfilled ones are left alone. Each round after the first spends
    one unit of the retry budget, no matter how many transfers it resumes.
    """

    def __init__(
        self,
        transport: ObjectStoreTransport,
        *,
        bucket: str,
        acl: Optional[str] = None,
        file_name: Optional[str] = None,
        server_side_encryption: Optional[str] = None,
        max_retries: int = DEFAULT_MAX_RETRIES_PER_BATCH,
        multipart_threshold: int = 0,
    ) -> None:
        """Initialize BatchUploader.

        Args:
            transport (ObjectStoreTransport): Object store transport.
            bucket (str): Destination bucket.
            acl (Optional[str], optional): Canned ACL of uploaded objects.
            file_name (Optional[str], optional): File name to put into the content
                disposition. Defaults to the base name of each slice.
            server_side_encryption (Optional[str], optional): Server-side encryption
                to request.
            max_retries (int, optional): Retry rounds allowed per batch.
            multipart_threshold (int, optional): Non-empty slices of at most this
                many bytes are sent with a single put. Defaults to 0, so every
                non-empty slice goes through a multipart upload.

        """
        self.transport = transport
        self.bucket = bucket
        self._acl = acl
        self._file_name = file_name
        self._server_side_encryption = server_side_encryption
        self._max_retries = max_retries
        self._multipart_threshold = multipart_threshold

    def upload(self, slices: Sequence[Slice]) -> int:
        """Upload a batch of slices.

        Args:
            slices (Sequence[Slice]): Slices of the batch.

        Raises:
            RetriesExhaustedError: Some transfers were still rejected after the retry
                budget was spent.
            FileNotReadableError: A slice could not be read during its transfer.

        Returns:
            int: The number of retry rounds spent.

        """
        handles = [self._create_handle(s) for s in slices]
        retries = 0
        while True:
            self._settle(handles)
            rejected = [h for h in handles if h.state is TransferState.REJECTED]
            if not rejected:
                return retries

            for handle in rejected:
                logger.warning(
                    "Transfer of '%s' was rejected: %r",
                    handle.slice.path,
                    handle.reason,
                )
                if isinstance(handle.reason, FileNotReadableError):
                    raise handle.reason

            retries += 1
            if retries > self._max_retries:
                raise RetriesExhaustedError(
                    rejected=[h.slice.path for h in rejected], retries=retries - 1
                )

            logger.info(
                "Retrying %d rejected transfers (retry %d / %d).",
                len(rejected),
                retries,
                self._max_retries,
            )
            handles = [h.resume() for h in rejected]

    def _create_handle(self, slice_: Slice) -> TransferHandle:
        return TransferHandle(
            slice_,
            self.transport,
            bucket=self.bucket,
            acl=self._acl,
            file_name=self._file_name,
            server_side_encryption=self._server_side_encryption,
            multipart_threshold=self._multipart_threshold,
        )

    def _settle(self, handles: List[TransferHandle]) -> None:
        """Start all handles and wait until every one of them settled."""
        if not handles:
            return

        concurrency = get_transfer_concurrency(len(handles))
        futs: List[Future] = []
        with ThreadPoolExecutor(max_workers=len(handles)) as executor:
            for handle in handles:
                fut = handle.start(executor, concurrency)
                if fut is not None:
                    futs.append(fut)
            wait(futs, return_when=ALL_COMPLETED)

        # Transfer rejections are recorded on the handles. Anything else is a bug.
        for fut in futs:
            fut.result()
