# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Resumable transfer of a single slice."""

from __future__ import annotations

from concurrent.futures import Executor, Future
from typing import Optional

from slicedupload.cloud.storage import ObjectStoreTransport
from slicedupload.enums import TransferState
from slicedupload.errors import (
    FileNotReadableError,
    MultipartUploadError,
    TransferError,
)
from slicedupload.logging import logger
from slicedupload.schema.resource.v1.transfer import Slice, UploadState
from slicedupload.utils.transfer import content_disposition


class TransferHandle:
    """Upload of one slice that can be resumed after a rejection.

    Empty slices are sent with a single ``put`` in the calling thread, because
    multipart uploads do not accept empty bodies. Slices up to `multipart_threshold`
    bytes are put on the given executor, and larger ones run as a multipart transfer
    there. A rejected transfer keeps the resumable state
    reported by the transport, and `resume` builds a new handle that continues from
    it.
    """

    def __init__(
        self,
        slice_: Slice,
        transport: ObjectStoreTransport,
        *,
        bucket: str,
        acl: Optional[str] = None,
        file_name: Optional[str] = None,
        server_side_encryption: Optional[str] = None,
        state: Optional[UploadState] = None,
        multipart_threshold: int = 0,
    ) -> None:
        """Initialize TransferHandle."""
        self.slice = slice_
        self._transport = transport
        self._bucket = bucket
        self._acl = acl
        self._file_name = file_name
        self._server_side_encryption = server_side_encryption
        self._resume_state = state
        self._multipart_threshold = multipart_threshold
        self._state = TransferState.PENDING
        self._reason: Optional[BaseException] = None

    @property
    def state(self) -> TransferState:
        """Current transfer state."""
        return self._state

    @property
    def reason(self) -> Optional[BaseException]:
        """Why the transfer was rejected."""
        return self._reason

    @property
    def resume_state(self) -> Optional[UploadState]:
        """Opaque transport state to resume the transfer from."""
        return self._resume_state

    @property
    def is_settled(self) -> bool:
        """Whether the transfer is fulfilled or rejected."""
        return self._state in (TransferState.FULFILLED, TransferState.REJECTED)

    def start(self, executor: Executor, concurrency: int) -> Optional[Future]:
        """Start the transfer.

        Args:
            executor (Executor): Executor to run a multipart transfer on.
            concurrency (int): Part concurrency of the multipart transfer.

        Returns:
            Optional[Future]: The future of the multipart transfer, or None when the
                transfer already settled synchronously.

        """
        if self._state is not TransferState.PENDING:
            raise TransferError(f"Transfer of '{self.slice.path}' already started.")

        self._state = TransferState.IN_FLIGHT
        if self.slice.is_empty:
            self._put()
            return None
        if self.slice.size <= self._multipart_threshold:
            return executor.submit(self._put)
        return executor.submit(self._multipart_upload, concurrency)

    def resume(self) -> TransferHandle:
        """Create a pending handle that continues this rejected transfer."""
        if self._state is not TransferState.REJECTED:
            raise TransferError(
                f"Only rejected transfers can be resumed: '{self.slice.path}' is "
                f"{self._state.value}."
            )
        return TransferHandle(
            self.slice,
            self._transport,
            bucket=self._bucket,
            acl=self._acl,
            file_name=self._file_name,
            server_side_encryption=self._server_side_encryption,
            state=self._resume_state,
            multipart_threshold=self._multipart_threshold,
        )

    def _put(self) -> None:
        try:
            with open(self.slice.path, "rb") as body:
                self._transport.put_object(
                    bucket=self._bucket,
                    key=self.slice.key,
                    body=body,
                    acl=self._acl,
                    content_disposition=self._content_disposition,
                    server_side_encryption=self._server_side_encryption,
                )
        except OSError as exc:
            self._reject(FileNotReadableError(self.slice.path))
            logger.debug("Cannot open '%s': %r", self.slice.path, exc)
            return
        except TransferError as exc:
            self._reject(exc)
            return
        self._state = TransferState.FULFILLED

    def _multipart_upload(self, concurrency: int) -> None:
        try:
            self._transport.multipart_upload(
                bucket=self._bucket,
                key=self.slice.key,
                file_path=self.slice.path,
                acl=self._acl,
                concurrency=concurrency,
                content_disposition=self._content_disposition,
                server_side_encryption=self._server_side_encryption,
                state=self._resume_state,
            )
        except FileNotReadableError as exc:
            self._reject(exc)
            return
        except MultipartUploadError as exc:
            self._resume_state = exc.state
            self._reject(exc.reason)
            return
        self._state = TransferState.FULFILLED

    def _reject(self, reason: BaseException) -> None:
        self._reason = reason
        self._state = TransferState.REJECTED

    @property
    def _content_disposition(self) -> str:
        return content_disposition(self._file_name or self.slice.name)
